"""
Test: Inquiry Lifecycle Engine
==============================

Transitions, the permission matrix for tenants and landlords, and the
reply / viewed-flag protocol.
"""

import asyncio
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from rentals.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    UnavailableError,
)
from rentals.models import InquiryStatus, Property
from rentals.services.actors import Actor

MOVE_IN = date(2025, 6, 1)
ACTIVE = ["pending", "viewed", "replied", "scheduled"]
CLOSED = ["cancelled", "completed"]


async def _inquire(engine, actor, prop, **overrides):
    kwargs = dict(
        property_id=prop.id,
        message="Interested in this place",
        move_in_date=MOVE_IN,
        number_of_occupants=1,
    )
    kwargs.update(overrides)
    return await engine.create(actor, **kwargs)


class TestCreate:

    async def test_creates_pending_inquiry(
        self, engine, session_factory, tenant_actor, listed_property, landlord
    ):
        inquiry = await _inquire(
            engine, tenant_actor, listed_property, number_of_occupants=2
        )

        assert inquiry.status == "pending"
        assert inquiry.tenant_id == tenant_actor.id
        assert inquiry.landlord_id == landlord.id
        assert inquiry.number_of_occupants == 2
        assert inquiry.viewed_by_landlord is False
        assert inquiry.viewed_by_tenant is False

        async with session_factory() as session:
            prop = await session.get(Property, listed_property.id)
            assert prop.inquiry_count == 1

    async def test_landlord_cannot_create(self, engine, landlord_actor, listed_property):
        with pytest.raises(ForbiddenError):
            await _inquire(engine, landlord_actor, listed_property)

    async def test_missing_property(self, engine, tenant_actor):
        with pytest.raises(NotFoundError):
            await engine.create(
                tenant_actor,
                property_id="no-such-property",
                message="Hi",
                move_in_date=MOVE_IN,
            )

    async def test_unavailable_property(
        self, engine, session_factory, tenant_actor, make_property, landlord
    ):
        closed = await make_property(landlord, is_available=False)

        with pytest.raises(UnavailableError):
            await _inquire(engine, tenant_actor, closed)

        async with session_factory() as session:
            prop = await session.get(Property, closed.id)
            assert prop.inquiry_count == 0

    @pytest.mark.parametrize(
        "overrides",
        [
            {"message": ""},
            {"message": "   "},
            {"message": "x" * 1001},
            {"move_in_date": None},
            {"number_of_occupants": 0},
        ],
    )
    async def test_invalid_fields(self, engine, tenant_actor, listed_property, overrides):
        with pytest.raises(BadRequestError):
            await _inquire(engine, tenant_actor, listed_property, **overrides)

    @pytest.mark.parametrize("status", ACTIVE)
    async def test_second_active_inquiry_conflicts(
        self, engine, tenant_actor, listed_property, open_inquiry, status
    ):
        await engine.set_status(tenant_actor, open_inquiry.id, status)

        with pytest.raises(ConflictError):
            await _inquire(engine, tenant_actor, listed_property)

    @pytest.mark.parametrize("status", CLOSED)
    async def test_new_inquiry_after_close(
        self, engine, tenant_actor, listed_property, open_inquiry, status
    ):
        await engine.set_status(tenant_actor, open_inquiry.id, status)

        again = await _inquire(engine, tenant_actor, listed_property)
        assert again.id != open_inquiry.id
        assert again.status == "pending"

    async def test_other_tenant_is_independent(
        self, engine, other_tenant, listed_property, open_inquiry
    ):
        inquiry = await _inquire(engine, Actor.from_user(other_tenant), listed_property)
        assert inquiry.status == "pending"

    async def test_concurrent_creates_only_one_wins(
        self, engine, tenant_actor, listed_property
    ):
        results = await asyncio.gather(
            _inquire(engine, tenant_actor, listed_property),
            _inquire(engine, tenant_actor, listed_property),
            return_exceptions=True,
        )

        created = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(created) == 1
        assert len(failed) == 1 and isinstance(failed[0], ConflictError)

    async def test_counter_failure_leaves_nothing_behind(
        self, engine, session_factory, tenant_actor, listed_property, monkeypatch
    ):
        async def broken_bump(session, property_id):
            raise OperationalError("UPDATE properties", {}, Exception("database is locked"))

        monkeypatch.setattr(engine.properties, "increment_inquiry_count", broken_bump)

        with pytest.raises(InternalError):
            await _inquire(engine, tenant_actor, listed_property)

        assert await engine.store.find_active(listed_property.id, tenant_actor.id) is None
        async with session_factory() as session:
            prop = await session.get(Property, listed_property.id)
            assert prop.inquiry_count == 0

        # The tenant is not locked out once storage recovers
        monkeypatch.undo()
        inquiry = await _inquire(engine, tenant_actor, listed_property)
        assert inquiry.status == "pending"

    async def test_property_lookup_failure_is_typed(
        self, engine, tenant_actor, listed_property, monkeypatch
    ):
        async def broken_get(self, entity, ident, **kwargs):
            raise OperationalError("SELECT properties", {}, Exception("connection reset"))

        monkeypatch.setattr("sqlalchemy.ext.asyncio.AsyncSession.get", broken_get)

        with pytest.raises(InternalError):
            await _inquire(engine, tenant_actor, listed_property)


class TestView:

    async def test_landlord_view_sets_flag_only(
        self, engine, landlord_actor, open_inquiry
    ):
        seen = await engine.get(landlord_actor, open_inquiry.id)

        assert seen.viewed_by_landlord is True
        assert seen.viewed_by_tenant is False
        assert seen.status == "pending"

    async def test_second_view_is_noop(self, engine, landlord_actor, open_inquiry):
        first = await engine.get(landlord_actor, open_inquiry.id)
        second = await engine.get(landlord_actor, open_inquiry.id)

        assert second.viewed_by_landlord is True
        assert second.version == first.version
        assert second.updated_at == first.updated_at

    async def test_simultaneous_first_views_write_once(
        self, engine, landlord_actor, open_inquiry
    ):
        first, second = await asyncio.gather(
            engine.get(landlord_actor, open_inquiry.id),
            engine.get(landlord_actor, open_inquiry.id),
        )

        assert first.viewed_by_landlord is True
        assert second.viewed_by_landlord is True
        after = await engine.store.get(open_inquiry.id)
        assert after.version == open_inquiry.version + 1

    async def test_tenant_view_sets_tenant_flag(self, engine, tenant_actor, open_inquiry):
        seen = await engine.get(tenant_actor, open_inquiry.id)

        assert seen.viewed_by_tenant is True
        assert seen.viewed_by_landlord is False

    async def test_view_marks_counterparty_replies_read(
        self, engine, tenant_actor, landlord_actor, open_inquiry
    ):
        await engine.reply(landlord_actor, open_inquiry.id, "Yes, from June")
        await engine.reply(tenant_actor, open_inquiry.id, "Great")

        seen = await engine.get(tenant_actor, open_inquiry.id)

        by_sender = {r.sender_id: r.read for r in seen.replies}
        assert by_sender[landlord_actor.id] is True
        assert by_sender[tenant_actor.id] is False

    async def test_outsiders_are_forbidden(
        self, engine, other_tenant, other_landlord, open_inquiry
    ):
        for outsider in (Actor.from_user(other_tenant), Actor.from_user(other_landlord)):
            with pytest.raises(ForbiddenError):
                await engine.get(outsider, open_inquiry.id)

    async def test_unknown_inquiry(self, engine, tenant_actor):
        with pytest.raises(NotFoundError):
            await engine.get(tenant_actor, "missing")


class TestReply:

    @pytest.mark.parametrize("prior", ACTIVE + CLOSED)
    async def test_reply_always_sets_replied(
        self, engine, tenant_actor, landlord_actor, open_inquiry, prior
    ):
        await engine.set_status(landlord_actor, open_inquiry.id, prior)

        replied = await engine.reply(landlord_actor, open_inquiry.id, "Still free")

        assert replied.status == "replied"

    async def test_landlord_reply_clears_tenant_flag_only(
        self, engine, tenant_actor, landlord_actor, open_inquiry
    ):
        await engine.get(tenant_actor, open_inquiry.id)
        await engine.get(landlord_actor, open_inquiry.id)

        replied = await engine.reply(landlord_actor, open_inquiry.id, "Available June 1")

        assert replied.viewed_by_tenant is False
        assert replied.viewed_by_landlord is True

    async def test_tenant_reply_clears_landlord_flag_only(
        self, engine, tenant_actor, landlord_actor, open_inquiry
    ):
        await engine.get(tenant_actor, open_inquiry.id)
        await engine.get(landlord_actor, open_inquiry.id)

        replied = await engine.reply(tenant_actor, open_inquiry.id, "Can I see it?")

        assert replied.viewed_by_landlord is False
        assert replied.viewed_by_tenant is True

    async def test_replies_keep_insertion_order(
        self, engine, tenant_actor, landlord_actor, open_inquiry
    ):
        texts = ["one", "two", "three", "four"]
        for n, text in enumerate(texts):
            actor = landlord_actor if n % 2 == 0 else tenant_actor
            result = await engine.reply(actor, open_inquiry.id, text)

        assert [r.message for r in result.replies] == texts
        assert all(r.read is False for r in result.replies)
        stamps = [r.created_at for r in result.replies]
        assert stamps == sorted(stamps)

    async def test_empty_reply_rejected_without_change(
        self, engine, store, landlord_actor, open_inquiry
    ):
        for message in ("", "  ", None):
            with pytest.raises(BadRequestError):
                await engine.reply(landlord_actor, open_inquiry.id, message)

        after = await store.get(open_inquiry.id)
        assert after.replies == []
        assert after.status == "pending"

    async def test_outsider_cannot_reply(self, engine, store, other_landlord, open_inquiry):
        with pytest.raises(ForbiddenError):
            await engine.reply(Actor.from_user(other_landlord), open_inquiry.id, "Hi")

        after = await store.get(open_inquiry.id)
        assert after.replies == []

    async def test_concurrent_replies_both_persist(
        self, engine, store, tenant_actor, landlord_actor, open_inquiry
    ):
        await engine.get(tenant_actor, open_inquiry.id)
        await engine.get(landlord_actor, open_inquiry.id)

        await asyncio.gather(
            engine.reply(tenant_actor, open_inquiry.id, "From tenant"),
            engine.reply(landlord_actor, open_inquiry.id, "From landlord"),
        )

        after = await store.get(open_inquiry.id)
        assert sorted(r.message for r in after.replies) == ["From landlord", "From tenant"]
        assert after.viewed_by_tenant is False
        assert after.viewed_by_landlord is False
        assert after.status == "replied"


class TestSchedule:

    async def test_landlord_schedules(self, engine, landlord_actor, open_inquiry):
        scheduled = await engine.schedule(
            landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00", "Bring ID"
        )

        assert scheduled.status == "scheduled"
        viewing = scheduled.scheduled_viewing
        assert viewing.date == date(2025, 6, 1)
        assert viewing.time == "10:00"
        assert viewing.notes == "Bring ID"
        assert viewing.confirmed is False

    async def test_rescheduling_resets_confirmation(
        self, engine, tenant_actor, landlord_actor, open_inquiry
    ):
        await engine.schedule(landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00")
        await engine.confirm_viewing(tenant_actor, open_inquiry.id)

        moved = await engine.schedule(
            landlord_actor, open_inquiry.id, date(2025, 6, 2), "14:30"
        )

        assert moved.scheduled_viewing.confirmed is False
        assert moved.scheduled_viewing.date == date(2025, 6, 2)

    async def test_other_landlord_forbidden(self, engine, store, other_landlord, open_inquiry):
        with pytest.raises(ForbiddenError):
            await engine.schedule(
                Actor.from_user(other_landlord), open_inquiry.id, date(2025, 6, 1), "10:00"
            )

        after = await store.get(open_inquiry.id)
        assert after.scheduled_viewing is None
        assert after.status == "pending"

    async def test_tenant_forbidden(self, engine, tenant_actor, open_inquiry):
        with pytest.raises(ForbiddenError):
            await engine.schedule(tenant_actor, open_inquiry.id, date(2025, 6, 1), "10:00")

    @pytest.mark.parametrize(
        "viewing_date, viewing_time",
        [(None, "10:00"), (date(2025, 6, 1), None), (date(2025, 6, 1), " ")],
    )
    async def test_date_and_time_required(
        self, engine, landlord_actor, open_inquiry, viewing_date, viewing_time
    ):
        with pytest.raises(BadRequestError):
            await engine.schedule(
                landlord_actor, open_inquiry.id, viewing_date, viewing_time
            )

    async def test_unknown_inquiry(self, engine, landlord_actor):
        with pytest.raises(NotFoundError):
            await engine.schedule(landlord_actor, "missing", date(2025, 6, 1), "10:00")


class TestConfirmViewing:

    async def test_requires_schedule(self, engine, tenant_actor, open_inquiry):
        with pytest.raises(BadRequestError):
            await engine.confirm_viewing(tenant_actor, open_inquiry.id)

    async def test_idempotent(self, engine, tenant_actor, landlord_actor, open_inquiry):
        await engine.schedule(landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00")

        first = await engine.confirm_viewing(tenant_actor, open_inquiry.id)
        second = await engine.confirm_viewing(tenant_actor, open_inquiry.id)

        for result in (first, second):
            assert result.scheduled_viewing.confirmed is True
            assert result.status == "scheduled"

    async def test_restores_scheduled_status(
        self, engine, tenant_actor, landlord_actor, open_inquiry
    ):
        await engine.schedule(landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00")
        await engine.reply(tenant_actor, open_inquiry.id, "Which entrance?")

        confirmed = await engine.confirm_viewing(tenant_actor, open_inquiry.id)

        assert confirmed.status == "scheduled"

    async def test_other_tenant_forbidden(
        self, engine, landlord_actor, other_tenant, open_inquiry
    ):
        await engine.schedule(landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00")

        with pytest.raises(ForbiddenError):
            await engine.confirm_viewing(Actor.from_user(other_tenant), open_inquiry.id)

    async def test_landlord_forbidden(self, engine, landlord_actor, open_inquiry):
        await engine.schedule(landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00")

        with pytest.raises(ForbiddenError):
            await engine.confirm_viewing(landlord_actor, open_inquiry.id)


class TestSetStatus:

    @pytest.mark.parametrize("status", [s.value for s in InquiryStatus])
    async def test_any_status_is_accepted(self, engine, tenant_actor, open_inquiry, status):
        result = await engine.set_status(tenant_actor, open_inquiry.id, status)
        assert result.status == status

    async def test_can_revert_scheduled_to_pending(
        self, engine, landlord_actor, open_inquiry
    ):
        await engine.schedule(landlord_actor, open_inquiry.id, date(2025, 6, 1), "10:00")

        reverted = await engine.set_status(landlord_actor, open_inquiry.id, "pending")

        assert reverted.status == "pending"
        assert reverted.scheduled_viewing is not None

    @pytest.mark.parametrize("bad", ["archived", "", None, "PENDING"])
    async def test_invalid_status(self, engine, store, tenant_actor, open_inquiry, bad):
        with pytest.raises(BadRequestError):
            await engine.set_status(tenant_actor, open_inquiry.id, bad)

        assert (await store.get(open_inquiry.id)).status == "pending"

    async def test_outsider_forbidden(self, engine, other_tenant, open_inquiry):
        with pytest.raises(ForbiddenError):
            await engine.set_status(Actor.from_user(other_tenant), open_inquiry.id, "cancelled")

    async def test_reopening_alongside_active_inquiry_conflicts(
        self, engine, store, tenant_actor, listed_property, open_inquiry
    ):
        await engine.set_status(tenant_actor, open_inquiry.id, "cancelled")
        await _inquire(engine, tenant_actor, listed_property)

        with pytest.raises(ConflictError):
            await engine.set_status(tenant_actor, open_inquiry.id, "pending")

        assert (await store.get(open_inquiry.id)).status == "cancelled"


class TestList:

    async def test_role_scoping(
        self, engine, make_property, landlord, other_landlord, tenant, other_tenant
    ):
        mine = await make_property(landlord)
        theirs = await make_property(other_landlord)
        t1, t2 = Actor.from_user(tenant), Actor.from_user(other_tenant)
        await _inquire(engine, t1, mine)
        await _inquire(engine, t1, theirs)
        await _inquire(engine, t2, mine)

        assert (await engine.list(t1)).total == 2
        assert (await engine.list(t2)).total == 1
        assert (await engine.list(Actor.from_user(landlord))).total == 2
        assert (await engine.list(Actor.from_user(other_landlord))).total == 1

    async def test_status_filter_narrows(self, engine, make_property, landlord, tenant):
        actor = Actor.from_user(tenant)
        first = await _inquire(engine, actor, await make_property(landlord))
        await _inquire(engine, actor, await make_property(landlord))
        await engine.set_status(actor, first.id, "cancelled")

        cancelled = await engine.list(actor, status="cancelled")

        assert cancelled.total == 1
        assert cancelled.items[0].id == first.id

    async def test_status_filter_never_widens(
        self, engine, open_inquiry, other_tenant
    ):
        result = await engine.list(Actor.from_user(other_tenant), status="pending")
        assert result.total == 0

    async def test_invalid_status_filter(self, engine, tenant_actor):
        with pytest.raises(BadRequestError):
            await engine.list(tenant_actor, status="archived")


async def test_viewing_scenario(engine, store, tenant_actor, landlord_actor, listed_property):
    inquiry = await _inquire(engine, tenant_actor, listed_property, number_of_occupants=2)
    assert inquiry.status == "pending"

    inquiry = await engine.reply(landlord_actor, inquiry.id, "available June 1")
    assert inquiry.status == "replied"
    assert inquiry.viewed_by_tenant is False

    inquiry = await engine.schedule(landlord_actor, inquiry.id, date(2025, 6, 1), "10:00")
    assert inquiry.status == "scheduled"
    assert inquiry.scheduled_viewing.confirmed is False

    inquiry = await engine.confirm_viewing(tenant_actor, inquiry.id)
    assert inquiry.scheduled_viewing.confirmed is True
    assert inquiry.status == "scheduled"

    stored = await store.get(inquiry.id)
    assert stored.tenant_id == tenant_actor.id
    assert stored.landlord_id == landlord_actor.id
    assert [r.message for r in stored.replies] == ["available June 1"]
