"""
models/user.py
--------------
User ORM model with marketplace roles.

Role design:
  - 'tenant':   Browses properties, opens inquiries, confirms viewings.
  - 'landlord': Lists properties, answers inquiries, schedules viewings.

The role is fixed at registration. The hashed_password column stores bcrypt
hashes only; plain text is never stored and never logged.
"""

from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentals.db.base import Base, TimestampMixin, generate_uuid


class UserRole(str, PyEnum):
    tenant = "tenant"
    landlord = "landlord"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    email: Mapped[str] = mapped_column(
        String(320), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(40), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserRole.tenant.value
    )
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Relationships
    properties: Mapped[list["Property"]] = relationship(  # noqa: F821
        "Property", back_populates="landlord", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} role={self.role}>"
