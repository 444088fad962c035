"""
Pytest configuration and shared fixtures.

Each test gets its own on-disk SQLite database (aiosqlite) so concurrent
sessions behave like connections from a real pool.
"""

import os

# Settings are read at import time; these must be set before rentals imports
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./rentals-test.db")

from datetime import date  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from rentals.core.security import create_access_token  # noqa: E402
from rentals.db.session import (  # noqa: E402
    build_engine,
    build_session_factory,
    get_session_factory,
)
from rentals.models import Base, Property, User, UserRole  # noqa: E402
from rentals.services.actors import Actor  # noqa: E402
from rentals.services.inquiry_engine import InquiryEngine  # noqa: E402
from rentals.services.inquiry_store import InquiryStore  # noqa: E402
from rentals.services.property_service import PropertyDirectory  # noqa: E402

MOVE_IN = date(2025, 6, 1)


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'rentals.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


async def _add(session_factory, obj):
    async with session_factory() as session:
        session.add(obj)
        await session.commit()
        await session.refresh(obj)
    return obj


@pytest.fixture
def make_user(session_factory):
    counter = {"n": 0}

    async def _make(role: UserRole) -> User:
        counter["n"] += 1
        n = counter["n"]
        return await _add(
            session_factory,
            User(
                email=f"{role.value}{n}@example.com",
                # Never verified in these tests; skips bcrypt cost
                hashed_password="not-a-real-hash",
                full_name=f"{role.value.title()} {n}",
                phone=f"+2547000000{n:02d}",
                role=role.value,
                company_name="Acme Lettings" if role is UserRole.landlord else None,
            ),
        )

    return _make


@pytest.fixture
def make_property(session_factory):
    async def _make(landlord: User, is_available: bool = True) -> Property:
        return await _add(
            session_factory,
            Property(
                title="Two-bedroom flat",
                landlord_id=landlord.id,
                is_available=is_available,
            ),
        )

    return _make


@pytest_asyncio.fixture
async def landlord(make_user) -> User:
    return await make_user(UserRole.landlord)


@pytest_asyncio.fixture
async def other_landlord(make_user) -> User:
    return await make_user(UserRole.landlord)


@pytest_asyncio.fixture
async def tenant(make_user) -> User:
    return await make_user(UserRole.tenant)


@pytest_asyncio.fixture
async def other_tenant(make_user) -> User:
    return await make_user(UserRole.tenant)


@pytest_asyncio.fixture
async def listed_property(make_property, landlord) -> Property:
    return await make_property(landlord)


@pytest.fixture
def store(session_factory) -> InquiryStore:
    return InquiryStore(session_factory)


@pytest.fixture
def properties(session_factory) -> PropertyDirectory:
    return PropertyDirectory(session_factory)


@pytest.fixture
def engine(store, properties) -> InquiryEngine:
    return InquiryEngine(store=store, properties=properties)


@pytest.fixture
def tenant_actor(tenant) -> Actor:
    return Actor.from_user(tenant)


@pytest.fixture
def landlord_actor(landlord) -> Actor:
    return Actor.from_user(landlord)


@pytest_asyncio.fixture
async def open_inquiry(engine, tenant_actor, listed_property):
    """A fresh pending inquiry from tenant to landlord on listed_property."""
    return await engine.create(
        tenant_actor,
        property_id=listed_property.id,
        message="Is the flat still available?",
        move_in_date=MOVE_IN,
        number_of_occupants=2,
    )


# ── API ──────────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory):
    from main import app

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        token = create_access_token(subject=user.id, role=user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers
