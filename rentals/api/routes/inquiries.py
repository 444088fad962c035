"""
api/routes/inquiries.py
-----------------------
Inquiry endpoints. Each route dispatches to exactly one InquiryEngine
operation; engine errors (InquiryError) are turned into responses by the
application-level handler in main.py.

POST /inquiries                          — Open an inquiry (tenant)
GET  /inquiries                          — Caller's inquiries (paginated)
GET  /inquiries/{id}                     — One inquiry; marks it viewed
POST /inquiries/{id}/reply               — Reply (either participant)
POST /inquiries/{id}/schedule            — Schedule a viewing (landlord)
PUT  /inquiries/{id}/confirm-viewing     — Confirm the viewing (tenant)
PUT  /inquiries/{id}/status              — Overwrite status (either participant)
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status

from rentals.core.config import settings
from rentals.dependencies import get_current_actor, get_inquiry_engine
from rentals.schemas.inquiry import (
    InquiryCreate,
    InquiryListResponse,
    InquiryRead,
    InquiryStatusUpdate,
    ReplyCreate,
    ViewingSchedule,
)
from rentals.services.actors import Actor
from rentals.services.inquiry_engine import InquiryEngine

router = APIRouter(prefix="/inquiries", tags=["Inquiries"])

ActorDep = Annotated[Actor, Depends(get_current_actor)]
EngineDep = Annotated[InquiryEngine, Depends(get_inquiry_engine)]


@router.post(
    "",
    response_model=InquiryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open an inquiry on an available property",
)
async def create_inquiry(
    body: InquiryCreate,
    actor: ActorDep,
    engine: EngineDep,
) -> InquiryRead:
    inquiry = await engine.create(
        actor,
        property_id=body.property_id,
        message=body.message,
        move_in_date=body.move_in_date,
        number_of_occupants=body.number_of_occupants,
    )
    return InquiryRead.model_validate(inquiry)


@router.get(
    "",
    response_model=InquiryListResponse,
    summary="List the caller's inquiries (paginated)",
)
async def list_inquiries(
    actor: ActorDep,
    engine: EngineDep,
    page: int = Query(default=1, ge=1, description="1-based page number"),
    limit: int = Query(
        default=settings.INQUIRY_PAGE_SIZE,
        ge=1,
        le=settings.INQUIRY_MAX_PAGE_SIZE,
        description="Results per page",
    ),
    status_filter: Optional[str] = Query(
        default=None, alias="status", description="Only inquiries in this status"
    ),
    sort: Optional[str] = Query(
        default=None, description="Field to sort by, '-' prefix for descending"
    ),
) -> InquiryListResponse:
    result = await engine.list(
        actor, page=page, limit=limit, status=status_filter, sort=sort
    )
    return InquiryListResponse(
        total=result.total,
        count=len(result.items),
        page=result.page,
        pages=result.pages,
        items=[InquiryRead.model_validate(i) for i in result.items],
    )


@router.get(
    "/{inquiry_id}",
    response_model=InquiryRead,
    summary="Get one inquiry and mark it as viewed by the caller",
)
async def get_inquiry(
    inquiry_id: str,
    actor: ActorDep,
    engine: EngineDep,
) -> InquiryRead:
    inquiry = await engine.get(actor, inquiry_id)
    return InquiryRead.model_validate(inquiry)


@router.post(
    "/{inquiry_id}/reply",
    response_model=InquiryRead,
    summary="Reply to an inquiry",
)
async def reply_to_inquiry(
    inquiry_id: str,
    body: ReplyCreate,
    actor: ActorDep,
    engine: EngineDep,
) -> InquiryRead:
    inquiry = await engine.reply(actor, inquiry_id, body.message)
    return InquiryRead.model_validate(inquiry)


@router.post(
    "/{inquiry_id}/schedule",
    response_model=InquiryRead,
    summary="Schedule a viewing (landlord of record)",
)
async def schedule_viewing(
    inquiry_id: str,
    body: ViewingSchedule,
    actor: ActorDep,
    engine: EngineDep,
) -> InquiryRead:
    inquiry = await engine.schedule(
        actor,
        inquiry_id,
        viewing_date=body.date,
        viewing_time=body.time,
        notes=body.notes,
    )
    return InquiryRead.model_validate(inquiry)


@router.put(
    "/{inquiry_id}/confirm-viewing",
    response_model=InquiryRead,
    summary="Confirm a scheduled viewing (tenant of record)",
)
async def confirm_viewing(
    inquiry_id: str,
    actor: ActorDep,
    engine: EngineDep,
) -> InquiryRead:
    inquiry = await engine.confirm_viewing(actor, inquiry_id)
    return InquiryRead.model_validate(inquiry)


@router.put(
    "/{inquiry_id}/status",
    response_model=InquiryRead,
    summary="Set the inquiry status",
)
async def update_inquiry_status(
    inquiry_id: str,
    body: InquiryStatusUpdate,
    actor: ActorDep,
    engine: EngineDep,
) -> InquiryRead:
    inquiry = await engine.set_status(actor, inquiry_id, body.status)
    return InquiryRead.model_validate(inquiry)
