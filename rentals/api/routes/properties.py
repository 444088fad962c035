"""
api/routes/properties.py
------------------------
The landlord-side property endpoints inquiries rely on.

POST /properties                      — List a property (landlord)
GET  /properties/{id}                 — Property facts
PUT  /properties/{id}/availability    — Open / close a property for inquiries
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentals.db.session import get_db
from rentals.dependencies import get_current_landlord, get_current_user
from rentals.models.user import User
from rentals.schemas.property import (
    PropertyAvailabilityUpdate,
    PropertyCreate,
    PropertyRead,
)
from rentals.services.property_service import PropertyService

router = APIRouter(prefix="/properties", tags=["Properties"])


@router.post(
    "",
    response_model=PropertyRead,
    status_code=status.HTTP_201_CREATED,
    summary="List a new property",
)
async def create_property(
    body: PropertyCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    landlord: Annotated[User, Depends(get_current_landlord)],
) -> PropertyRead:
    prop = await PropertyService.create_property(db, body, landlord)
    return PropertyRead.model_validate(prop)


@router.get(
    "/{property_id}",
    response_model=PropertyRead,
    summary="Get a property",
)
async def get_property(
    property_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
) -> PropertyRead:
    prop = await PropertyService.get_property(db, property_id)
    return PropertyRead.model_validate(prop)


@router.put(
    "/{property_id}/availability",
    response_model=PropertyRead,
    summary="Open or close a property for inquiries",
)
async def set_availability(
    property_id: str,
    body: PropertyAvailabilityUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    landlord: Annotated[User, Depends(get_current_landlord)],
) -> PropertyRead:
    prop = await PropertyService.set_availability(
        db, property_id, landlord, body.is_available
    )
    return PropertyRead.model_validate(prop)
