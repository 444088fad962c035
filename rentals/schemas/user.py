"""
schemas/user.py
---------------
Pydantic models for User registration, login, and responses.

Security note:
  - hashed_password is NEVER included in any response schema.
  - Landlords must supply a company name at registration.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

from rentals.models.user import UserRole


class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=40)
    role: UserRole = UserRole.tenant
    company_name: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def landlord_needs_company(self) -> "UserRegister":
        if self.role is UserRole.landlord and not (self.company_name or "").strip():
            raise ValueError("Company name is required for landlords")
        return self


class UserRead(BaseModel):
    id: str
    email: str
    full_name: str
    phone: str
    role: str
    company_name: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead
