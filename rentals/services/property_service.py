"""
services/property_service.py
----------------------------
Property facts for the inquiry core, plus the few landlord-side writes
needed to put a property on the market.

PropertyDirectory is the read-only view the inquiry engine consumes
(owner, availability) together with the inquiry-counter bump. Lookups use
their own short sessions, like the inquiry store; the bump joins the
inquiry insert transaction. PropertyService follows the
request-scoped session style of the other services.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rentals.core.exceptions import ForbiddenError, InternalError, NotFoundError
from rentals.core.logging import get_logger
from rentals.models.property import Property
from rentals.models.user import User
from rentals.schemas.property import PropertyCreate

logger = get_logger(__name__)


@dataclass(frozen=True)
class PropertyFacts:
    id: str
    landlord_id: str
    is_available: bool


class PropertyDirectory:

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    async def get(self, property_id: str) -> Optional[PropertyFacts]:
        async with self._session_factory() as session:
            try:
                prop = await session.get(Property, property_id)
            except SQLAlchemyError as exc:
                logger.error(
                    "Property lookup failed", property_id=property_id, error=str(exc)
                )
                raise InternalError() from exc
            if prop is None:
                return None
            return PropertyFacts(
                id=prop.id,
                landlord_id=prop.landlord_id,
                is_available=prop.is_available,
            )

    async def increment_inquiry_count(
        self, session: AsyncSession, property_id: str
    ) -> None:
        """
        Atomic counter bump inside the caller's transaction.
        The caller commits, so the bump lands together with the inquiry insert.
        """
        await session.execute(
            update(Property)
            .where(Property.id == property_id)
            .values(inquiry_count=Property.inquiry_count + 1)
        )


class PropertyService:

    @staticmethod
    async def create_property(
        db: AsyncSession, data: PropertyCreate, landlord: User
    ) -> Property:
        prop = Property(
            title=data.title,
            is_available=data.is_available,
            landlord_id=landlord.id,  # Owner comes from the session, never the body
        )
        db.add(prop)
        await db.commit()
        await db.refresh(prop)
        logger.info("Property listed", property_id=prop.id, landlord_id=landlord.id)
        return prop

    @staticmethod
    async def get_property(db: AsyncSession, property_id: str) -> Property:
        result = await db.execute(select(Property).where(Property.id == property_id))
        prop = result.scalar_one_or_none()
        if prop is None:
            raise NotFoundError("Property not found")
        return prop

    @staticmethod
    async def set_availability(
        db: AsyncSession, property_id: str, landlord: User, is_available: bool
    ) -> Property:
        prop = await PropertyService.get_property(db, property_id)
        if prop.landlord_id != landlord.id:
            raise ForbiddenError("Not authorized to update this property")

        prop.is_available = is_available
        await db.commit()
        await db.refresh(prop)
        logger.info(
            "Property availability changed",
            property_id=prop.id,
            is_available=is_available,
        )
        return prop
