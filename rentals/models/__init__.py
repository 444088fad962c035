"""
models/__init__.py
------------------
Re-export all models so table creation (and Alembic's env.py) can import
Base and discover all tables via a single import:

    from rentals.models import Base
"""

from rentals.db.base import Base
from rentals.models.user import User, UserRole
from rentals.models.property import Property
from rentals.models.inquiry import (
    ACTIVE_STATUSES,
    Inquiry,
    InquiryReply,
    InquiryStatus,
    ScheduledViewing,
)

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Property",
    "Inquiry",
    "InquiryReply",
    "InquiryStatus",
    "ScheduledViewing",
    "ACTIVE_STATUSES",
]
