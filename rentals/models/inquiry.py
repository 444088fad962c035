"""
models/inquiry.py
-----------------
Inquiry and reply ORM models.

An inquiry is one tenant's interest request on one property. landlord_id is
copied from the property owner at creation time and, like property_id and
tenant_id, never changes afterwards.

Storage-level guarantees:
  - uq_inquiries_active_property_tenant: a partial unique index allowing at
    most one active (pending / viewed / replied / scheduled) inquiry per
    (property, tenant) pair. Concurrent creates cannot both succeed.
  - version: optimistic-concurrency counter (SQLAlchemy version_id_col).
    Every UPDATE checks and bumps it, so a writer working from a stale read
    fails with StaleDataError instead of overwriting a newer row.
  - Replies are separate rows with a per-inquiry position, unique together
    with inquiry_id. They are only ever inserted.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentals.db.base import Base, TimestampMixin, generate_uuid, utcnow

MESSAGE_MAX_LENGTH = 1000


class InquiryStatus(str, PyEnum):
    pending = "pending"
    viewed = "viewed"
    replied = "replied"
    scheduled = "scheduled"
    cancelled = "cancelled"
    completed = "completed"


ACTIVE_STATUSES = frozenset(
    {
        InquiryStatus.pending,
        InquiryStatus.viewed,
        InquiryStatus.replied,
        InquiryStatus.scheduled,
    }
)

_ACTIVE_PREDICATE = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in InquiryStatus if s in ACTIVE_STATUSES)
)


@dataclass(frozen=True)
class ScheduledViewing:
    date: date
    time: str
    notes: Optional[str]
    confirmed: bool


class InquiryReply(Base):
    __tablename__ = "inquiry_replies"
    __table_args__ = (
        UniqueConstraint("inquiry_id", "position", name="uq_inquiry_replies_position"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    inquiry_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("inquiries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # 0-based insertion index within the inquiry
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    sender_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    def __repr__(self) -> str:
        return f"<InquiryReply inquiry_id={self.inquiry_id} position={self.position}>"


class Inquiry(Base, TimestampMixin):
    __tablename__ = "inquiries"
    __table_args__ = (
        Index(
            "uq_inquiries_active_property_tenant",
            "property_id",
            "tenant_id",
            unique=True,
            postgresql_where=text(_ACTIVE_PREDICATE),
            sqlite_where=text(_ACTIVE_PREDICATE),
        ),
        Index("ix_inquiries_status_created_at", "status", "created_at"),
        CheckConstraint("tenant_id <> landlord_id", name="ck_inquiries_participants"),
        CheckConstraint("number_of_occupants >= 1", name="ck_inquiries_occupants"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    property_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    landlord_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    message: Mapped[str] = mapped_column(String(MESSAGE_MAX_LENGTH), nullable=False)
    move_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    number_of_occupants: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InquiryStatus.pending.value
    )

    # Scheduled viewing; all NULL until a landlord schedules one
    viewing_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    viewing_time: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    viewing_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    viewing_confirmed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    viewed_by_landlord: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    viewed_by_tenant: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    replies: Mapped[list[InquiryReply]] = relationship(
        InquiryReply,
        order_by=InquiryReply.position,
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def scheduled_viewing(self) -> Optional[ScheduledViewing]:
        if self.viewing_date is None:
            return None
        return ScheduledViewing(
            date=self.viewing_date,
            time=self.viewing_time,
            notes=self.viewing_notes,
            confirmed=self.viewing_confirmed,
        )

    def is_participant(self, user_id: str) -> bool:
        return user_id in (self.tenant_id, self.landlord_id)

    def __repr__(self) -> str:
        return f"<Inquiry id={self.id} status={self.status} version={self.version}>"
