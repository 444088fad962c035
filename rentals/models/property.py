"""
models/property.py
------------------
Property facts consumed by the inquiry core.

Only the attributes inquiries depend on live here: the owning landlord,
availability, and the inquiry counter. Catalog details (pricing, location,
photos, search) belong to the listing service and are not modelled.
"""

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rentals.db.base import Base, TimestampMixin, generate_uuid


class Property(Base, TimestampMixin):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    landlord_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    inquiry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    landlord: Mapped["User"] = relationship("User", back_populates="properties")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Property id={self.id} landlord_id={self.landlord_id}>"
