"""
schemas/inquiry.py
------------------
Pydantic request/response models for inquiries.

Shape rules (lengths, integer bounds) are enforced here and answered with
422 by FastAPI. Fields whose absence is a lifecycle precondition (viewing
date/time, reply text, target status) are left optional so the engine can
reject them with a 400 bad_request, the same as any other engine caller.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from rentals.models.inquiry import MESSAGE_MAX_LENGTH


class InquiryCreate(BaseModel):
    property_id: str = Field(..., min_length=1, max_length=36)
    message: str = Field(
        ...,
        min_length=1,
        max_length=MESSAGE_MAX_LENGTH,
        examples=["Is the flat still available from June?"],
    )
    move_in_date: dt.date
    number_of_occupants: int = Field(default=1, ge=1)


class ReplyCreate(BaseModel):
    message: Optional[str] = Field(default=None, max_length=MESSAGE_MAX_LENGTH)


class ViewingSchedule(BaseModel):
    date: Optional[dt.date] = None
    time: Optional[str] = Field(default=None, max_length=20, examples=["10:00"])
    notes: Optional[str] = Field(default=None, max_length=MESSAGE_MAX_LENGTH)


class InquiryStatusUpdate(BaseModel):
    status: Optional[str] = Field(default=None, examples=["cancelled"])


class ReplyRead(BaseModel):
    sender_id: str
    message: str
    read: bool
    created_at: dt.datetime

    model_config = {"from_attributes": True}


class ScheduledViewingRead(BaseModel):
    date: dt.date
    time: str
    notes: Optional[str] = None
    confirmed: bool

    model_config = {"from_attributes": True}


class InquiryRead(BaseModel):
    id: str
    property_id: str
    tenant_id: str
    landlord_id: str
    message: str
    move_in_date: dt.date
    number_of_occupants: int
    status: str
    scheduled_viewing: Optional[ScheduledViewingRead] = None
    replies: list[ReplyRead]
    viewed_by_landlord: bool
    viewed_by_tenant: bool
    created_at: dt.datetime
    updated_at: dt.datetime

    model_config = {"from_attributes": True}


class InquiryListResponse(BaseModel):
    total: int
    count: int
    page: int
    pages: int
    items: list[InquiryRead]
