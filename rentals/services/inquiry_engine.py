"""
services/inquiry_engine.py
--------------------------
Inquiry lifecycle: state transitions, permission checks, and the
reply / unread protocol shared by tenants and landlords.

States: pending → viewed → replied → scheduled → cancelled / completed.

Rules by operation:
  create          tenant only; property must exist and be available; at most
                  one active inquiry per (property, tenant).
  get (view)      participants only; flips the caller's viewed flag to true
                  and marks the other party's replies read. Never touches
                  status.
  reply           either participant; appends a reply, sets status=replied
                  and clears the *other* party's viewed flag.
  schedule        landlord of record; sets the viewing (unconfirmed) and
                  status=scheduled.
  confirm_viewing tenant of record; requires a scheduled viewing; idempotent.
  set_status      either participant; any status value, no transition graph.
                  This can move a scheduled inquiry back to pending, unlike
                  reply / schedule.

Every state change runs inside InquiryStore.update, so checks made inside a
mutation see the current record and a rejected call writes nothing.
"""

from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rentals.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnavailableError,
)
from rentals.core.logging import get_logger
from rentals.db.base import utcnow
from rentals.models.inquiry import (
    MESSAGE_MAX_LENGTH,
    Inquiry,
    InquiryReply,
    InquiryStatus,
)
from rentals.services.actors import Actor
from rentals.services.inquiry_store import (
    DEFAULT_SORT,
    InquiryFilter,
    InquiryPage,
    InquiryStore,
)
from rentals.services.property_service import PropertyDirectory

logger = get_logger(__name__)


def _require_message(message: Optional[str], field: str = "Message") -> str:
    if message is None or not message.strip():
        raise BadRequestError(f"{field} is required")
    if len(message) > MESSAGE_MAX_LENGTH:
        raise BadRequestError(
            f"{field} cannot exceed {MESSAGE_MAX_LENGTH} characters"
        )
    return message


def parse_status(value: Optional[str]) -> InquiryStatus:
    try:
        return InquiryStatus(value)
    except ValueError:
        raise BadRequestError(
            "Invalid status",
            details={"allowed": [s.value for s in InquiryStatus]},
        )


def _require_participant(inquiry: Inquiry, actor: Actor, action: str) -> None:
    if not inquiry.is_participant(actor.id):
        raise ForbiddenError(f"Not authorized to {action} this inquiry")


class InquiryEngine:

    def __init__(self, store: InquiryStore, properties: PropertyDirectory) -> None:
        self.store = store
        self.properties = properties

    # ── Create ───────────────────────────────────────────────────────────────

    async def create(
        self,
        actor: Actor,
        property_id: str,
        message: str,
        move_in_date: Optional[date],
        number_of_occupants: int = 1,
    ) -> Inquiry:
        """
        Open a new inquiry on an available property.

        landlord_id is copied from the property owner so a caller can never
        address an inquiry to somebody else.
        """
        actor.require_tenant("Only tenants can create inquiries")
        message = _require_message(message)
        if move_in_date is None:
            raise BadRequestError("Move-in date is required")
        if number_of_occupants is None or number_of_occupants < 1:
            raise BadRequestError("Number of occupants must be at least 1")

        prop = await self.properties.get(property_id)
        if prop is None:
            raise NotFoundError("Property not found")
        if not prop.is_available:
            raise UnavailableError()
        if prop.landlord_id == actor.id:
            raise ForbiddenError("You cannot inquire about your own property")

        async def count_inquiry(session: AsyncSession) -> None:
            await self.properties.increment_inquiry_count(session, property_id)

        # The unique index guards across processes; the lock and the lookup
        # give callers in this process a clean ConflictError
        async with self.store.pair_lock(property_id, actor.id):
            if await self.store.find_active(property_id, actor.id) is not None:
                raise ConflictError()

            # Insert and counter bump commit as one transaction
            inquiry = await self.store.create(
                Inquiry(
                    property_id=property_id,
                    tenant_id=actor.id,
                    landlord_id=prop.landlord_id,
                    message=message,
                    move_in_date=move_in_date,
                    number_of_occupants=number_of_occupants,
                    status=InquiryStatus.pending.value,
                    viewed_by_landlord=False,
                    viewed_by_tenant=False,
                ),
                on_insert=count_inquiry,
            )

        logger.info(
            "Inquiry created",
            inquiry_id=inquiry.id,
            property_id=property_id,
            tenant_id=actor.id,
            landlord_id=prop.landlord_id,
        )
        return inquiry

    # ── Read ─────────────────────────────────────────────────────────────────

    async def list(
        self,
        actor: Actor,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> InquiryPage:
        """
        Inquiries the actor takes part in, newest first by default.
        A status filter narrows the actor's own inquiries; it never widens
        the result to other users' records.
        """
        filters = InquiryFilter(
            tenant_id=actor.id if actor.is_tenant else None,
            landlord_id=actor.id if actor.is_landlord else None,
            status=parse_status(status) if status else None,
        )
        return await self.store.list(filters, page=page, limit=limit, sort=sort or DEFAULT_SORT)

    async def get(self, actor: Actor, inquiry_id: str) -> Inquiry:
        """
        Fetch one inquiry and record that the actor has seen it.

        The write only happens when the actor's viewed flag is false; a
        second read is a plain read. The flag is checked again under the
        record lock so simultaneous first reads write once.
        """
        inquiry = await self.store.get(inquiry_id)
        _require_participant(inquiry, actor, "view")

        is_landlord = actor.id == inquiry.landlord_id
        flag = "viewed_by_landlord" if is_landlord else "viewed_by_tenant"
        if getattr(inquiry, flag):
            return inquiry

        def mark_viewed(record: Inquiry) -> Optional[bool]:
            if getattr(record, flag):
                return False
            setattr(record, flag, True)
            for reply in record.replies:
                if reply.sender_id != actor.id and not reply.read:
                    reply.read = True

        inquiry = await self.store.update(inquiry_id, mark_viewed)
        logger.debug(
            "Inquiry viewed",
            inquiry_id=inquiry_id,
            actor_id=actor.id,
            party="landlord" if is_landlord else "tenant",
        )
        return inquiry

    # ── Transitions ──────────────────────────────────────────────────────────

    async def reply(self, actor: Actor, inquiry_id: str, message: str) -> Inquiry:
        """
        Append a reply from either participant.

        Status becomes replied from any prior status, including scheduled and
        the terminal ones. The recipient's viewed flag is cleared; the
        sender's own flag is left as it was.
        """
        message = _require_message(message, field="Reply message")

        def append_reply(record: Inquiry) -> None:
            _require_participant(record, actor, "reply to")
            record.replies.append(
                InquiryReply(
                    position=len(record.replies),
                    sender_id=actor.id,
                    message=message,
                    read=False,
                    created_at=utcnow(),
                )
            )
            record.status = InquiryStatus.replied.value
            if actor.id == record.landlord_id:
                record.viewed_by_tenant = False
            else:
                record.viewed_by_landlord = False

        inquiry = await self.store.update(inquiry_id, append_reply)
        logger.info(
            "Reply added",
            inquiry_id=inquiry_id,
            sender_id=actor.id,
            replies=len(inquiry.replies),
        )
        return inquiry

    async def schedule(
        self,
        actor: Actor,
        inquiry_id: str,
        viewing_date: Optional[date],
        viewing_time: Optional[str],
        notes: Optional[str] = None,
    ) -> Inquiry:
        """Landlord of record proposes a viewing; it starts unconfirmed."""
        actor.require_landlord("Only landlords can schedule viewings")
        if viewing_date is None or not viewing_time or not viewing_time.strip():
            raise BadRequestError("Date and time are required")

        def set_viewing(record: Inquiry) -> None:
            if record.landlord_id != actor.id:
                raise ForbiddenError(
                    "Not authorized to schedule viewing for this inquiry"
                )
            record.viewing_date = viewing_date
            record.viewing_time = viewing_time.strip()
            record.viewing_notes = notes
            record.viewing_confirmed = False
            record.status = InquiryStatus.scheduled.value

        inquiry = await self.store.update(inquiry_id, set_viewing)
        logger.info(
            "Viewing scheduled",
            inquiry_id=inquiry_id,
            landlord_id=actor.id,
            viewing_date=viewing_date.isoformat(),
            viewing_time=inquiry.viewing_time,
        )
        return inquiry

    async def confirm_viewing(self, actor: Actor, inquiry_id: str) -> Inquiry:
        """Tenant of record accepts the scheduled viewing. Safe to repeat."""
        actor.require_tenant("Only tenants can confirm viewings")

        def confirm(record: Inquiry) -> None:
            if record.tenant_id != actor.id:
                raise ForbiddenError("Not authorized to confirm this viewing")
            if record.scheduled_viewing is None:
                raise BadRequestError("No viewing scheduled for this inquiry")
            record.viewing_confirmed = True
            record.status = InquiryStatus.scheduled.value

        inquiry = await self.store.update(inquiry_id, confirm)
        logger.info("Viewing confirmed", inquiry_id=inquiry_id, tenant_id=actor.id)
        return inquiry

    async def set_status(self, actor: Actor, inquiry_id: str, new_status: str) -> Inquiry:
        """
        Overwrite the status with any enum value.

        No transition graph applies here. The only storage-level limit is the
        active-pair index: re-opening a closed inquiry while another one is
        active for the same property and tenant raises ConflictError.
        """
        previous = None

        def overwrite(record: Inquiry) -> None:
            nonlocal previous
            _require_participant(record, actor, "update")
            target = parse_status(new_status)
            previous = record.status
            record.status = target.value

        inquiry = await self.store.update(inquiry_id, overwrite)
        logger.info(
            "Inquiry status set",
            inquiry_id=inquiry_id,
            actor_id=actor.id,
            previous=previous,
            status=inquiry.status,
        )
        return inquiry
