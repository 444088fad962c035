"""
services/inquiry_store.py
-------------------------
Durable keyed storage for inquiry records.

Every operation opens its own short session from the factory and commits
before returning, so a caller never observes a half-applied change.

Write serialization for a single inquiry is layered:
  1. An in-process asyncio.Lock per inquiry id is held for the whole
     read-modify-write, so concurrent requests in one worker queue up.
  2. The version column (SQLAlchemy version_id_col) catches writers in other
     processes; a stale write is retried from a fresh read a bounded number
     of times.

The one-active-inquiry-per-(property, tenant) rule is enforced by a partial
unique index; IntegrityError from it surfaces as ConflictError. pair_lock
lets callers serialize check-then-create for one pair within the process.
Storage failures surface as InternalError, never as raw SQLAlchemy errors.
"""

import asyncio
import math
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from rentals.core.config import settings
from rentals.core.exceptions import (
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
)
from rentals.core.logging import get_logger
from rentals.db.base import utcnow
from rentals.models.inquiry import ACTIVE_STATUSES, Inquiry, InquiryStatus

logger = get_logger(__name__)

Mutation = Callable[[Inquiry], Optional[bool]]
InsertHook = Callable[[AsyncSession], Awaitable[None]]

SORTABLE_FIELDS = {
    "created_at": Inquiry.created_at,
    "updated_at": Inquiry.updated_at,
    "status": Inquiry.status,
    "move_in_date": Inquiry.move_in_date,
    "number_of_occupants": Inquiry.number_of_occupants,
}
DEFAULT_SORT = "-created_at"


class _KeyedLocks:
    """asyncio.Lock per key, dropped automatically once nobody holds it."""

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def for_key(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock


# Shared by every store instance in the process
_record_locks = _KeyedLocks()


@dataclass(frozen=True)
class InquiryFilter:
    tenant_id: Optional[str] = None
    landlord_id: Optional[str] = None
    status: Optional[InquiryStatus] = None


@dataclass
class InquiryPage:
    items: List[Inquiry]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _order_by(sort: str):
    field = sort.lstrip("-")
    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise BadRequestError(
            f"Cannot sort by '{field}'",
            details={"sortable": sorted(SORTABLE_FIELDS)},
        )
    ordered = column.desc() if sort.startswith("-") else column.asc()
    # id breaks ties so pages never overlap
    return ordered, Inquiry.id.asc()


class InquiryStore:

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_attempts: Optional[int] = None,
    ) -> None:
        self._session_factory = session_factory
        self._max_attempts = max_attempts or settings.INQUIRY_UPDATE_MAX_ATTEMPTS

    async def _fetch(self, session: AsyncSession, inquiry_id: str) -> Inquiry:
        result = await session.execute(
            select(Inquiry)
            .where(Inquiry.id == inquiry_id)
            .execution_options(populate_existing=True)
        )
        inquiry = result.scalar_one_or_none()
        if inquiry is None:
            raise NotFoundError("Inquiry not found")
        return inquiry

    @asynccontextmanager
    async def _reading(self, event: str, **context) -> AsyncIterator[AsyncSession]:
        """Short read-only session; driver errors surface as InternalError."""
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                logger.error(event, error=str(exc), **context)
                raise InternalError() from exc

    def pair_lock(self, property_id: str, tenant_id: str) -> asyncio.Lock:
        """In-process lock serializing inquiry creation for one (property, tenant)."""
        return _record_locks.for_key(f"create:{property_id}:{tenant_id}")

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get(self, inquiry_id: str) -> Inquiry:
        """Return the inquiry with its replies, or raise NotFoundError."""
        async with self._reading("Inquiry read failed", inquiry_id=inquiry_id) as session:
            return await self._fetch(session, inquiry_id)

    async def find_active(self, property_id: str, tenant_id: str) -> Optional[Inquiry]:
        async with self._reading(
            "Active inquiry lookup failed", property_id=property_id, tenant_id=tenant_id
        ) as session:
            result = await session.execute(
                select(Inquiry).where(
                    Inquiry.property_id == property_id,
                    Inquiry.tenant_id == tenant_id,
                    Inquiry.status.in_([s.value for s in ACTIVE_STATUSES]),
                )
            )
            return result.scalars().first()

    async def list(
        self,
        filters: InquiryFilter,
        page: int = 1,
        limit: int = 20,
        sort: str = DEFAULT_SORT,
    ) -> InquiryPage:
        """
        Paginated, sorted listing.

        page is 1-based; sort is a field name from SORTABLE_FIELDS, prefixed
        with '-' for descending order.
        """
        if page < 1 or limit < 1:
            raise BadRequestError("page and limit must be positive")
        ordering = _order_by(sort or DEFAULT_SORT)

        conditions = []
        if filters.tenant_id is not None:
            conditions.append(Inquiry.tenant_id == filters.tenant_id)
        if filters.landlord_id is not None:
            conditions.append(Inquiry.landlord_id == filters.landlord_id)
        if filters.status is not None:
            conditions.append(Inquiry.status == filters.status.value)

        async with self._reading("Inquiry listing failed", sort=sort) as session:
            count_result = await session.execute(
                select(func.count()).select_from(Inquiry).where(*conditions)
            )
            total = count_result.scalar_one()

            result = await session.execute(
                select(Inquiry)
                .where(*conditions)
                .order_by(*ordering)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            items = list(result.scalars().all())

        return InquiryPage(items=items, total=total, page=page, limit=limit)

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(
        self, inquiry: Inquiry, on_insert: Optional[InsertHook] = None
    ) -> Inquiry:
        """
        Insert a new inquiry.

        on_insert runs in the same transaction after the row is flushed, so
        its writes commit together with the insert or not at all.
        Raises ConflictError if the pair already has an active inquiry.
        """
        async with self._session_factory() as session:
            session.add(inquiry)
            try:
                await session.flush()
                if on_insert is not None:
                    await on_insert(session)
                await session.commit()
                return await self._fetch(session, inquiry.id)
            except IntegrityError as exc:
                await session.rollback()
                logger.info(
                    "Active inquiry already exists",
                    property_id=inquiry.property_id,
                    tenant_id=inquiry.tenant_id,
                )
                raise ConflictError() from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(
                    "Inquiry insert failed",
                    property_id=inquiry.property_id,
                    tenant_id=inquiry.tenant_id,
                    error=str(exc),
                )
                raise InternalError() from exc

    async def update(self, inquiry_id: str, mutate: Mutation) -> Inquiry:
        """
        Atomic read-modify-write of one inquiry.

        mutate receives the freshly loaded record and changes it in place; it
        may raise an InquiryError to abort, in which case nothing is written.
        A mutate that returns False found nothing to change: the record is
        returned as loaded and no UPDATE is issued.
        A write that loses an optimistic-version race is re-run from a new
        read up to max_attempts times.
        """
        async with _record_locks.for_key(inquiry_id):
            for attempt in range(1, self._max_attempts + 1):
                async with self._session_factory() as session:
                    try:
                        inquiry = await self._fetch(session, inquiry_id)
                        if mutate(inquiry) is False:
                            return inquiry
                        # Always issue an UPDATE so the version check runs
                        inquiry.updated_at = utcnow()
                        await session.commit()
                        return await self._fetch(session, inquiry_id)
                    except StaleDataError:
                        await session.rollback()
                        logger.warning(
                            "Inquiry changed concurrently, retrying",
                            inquiry_id=inquiry_id,
                            attempt=attempt,
                        )
                        continue
                    except IntegrityError as exc:
                        await session.rollback()
                        logger.info(
                            "Update would duplicate an active inquiry",
                            inquiry_id=inquiry_id,
                        )
                        raise ConflictError(
                            "Another active inquiry exists for this property"
                        ) from exc
                    except SQLAlchemyError as exc:
                        await session.rollback()
                        logger.error(
                            "Inquiry update failed", inquiry_id=inquiry_id, error=str(exc)
                        )
                        raise InternalError() from exc

        logger.error(
            "Inquiry update abandoned after repeated conflicts",
            inquiry_id=inquiry_id,
            attempts=self._max_attempts,
        )
        raise InternalError("Inquiry is being modified concurrently; try again")
