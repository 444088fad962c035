"""
schemas/property.py
-------------------
Pydantic models for the property facts inquiries depend on.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class PropertyCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, examples=["Sunny 2BR near the park"])
    is_available: bool = True

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return v.strip()


class PropertyAvailabilityUpdate(BaseModel):
    is_available: bool


class PropertyRead(BaseModel):
    id: str
    title: str
    landlord_id: str
    is_available: bool
    inquiry_count: int
    created_at: datetime

    model_config = {"from_attributes": True}
