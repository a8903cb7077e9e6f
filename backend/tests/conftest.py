"""
Pytest fixtures for test database, client, and caller identities.

Each test gets a fresh SQLite database file, so concurrent sessions in the
same test really are separate connections. Redis is disabled.
"""

import os
from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from chargeshare.main import app
from chargeshare.db.base import Base
from chargeshare.db.session import get_db
from chargeshare.models.account import Account, ROLE_DRIVER, ROLE_OWNER
from chargeshare.models.charger import Charger


def auth(account: Account) -> dict:
    """Identity headers as forwarded by the upstream authenticator."""
    return {"X-User-Id": str(account.id)}


async def rollback(session: AsyncSession, *objs) -> None:
    """Roll back after an expected error and reload the objects the test keeps using.

    Rollback expires every instance in the session; async sessions cannot
    lazy-load the expired attributes afterwards.
    """
    await session.rollback()
    for obj in objs:
        await session.refresh(obj)


@pytest.fixture
def start_time() -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=2)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create tables in a throwaway database file, drop it afterwards."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'chargeshare_test.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _add(session: AsyncSession, obj):
    session.add(obj)
    await session.commit()
    await session.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> Account:
    return await _add(db_session, Account(name="Olivia Host", email="owner@example.com", role=ROLE_OWNER))


@pytest_asyncio.fixture
async def other_owner(db_session: AsyncSession) -> Account:
    return await _add(db_session, Account(name="Oscar Host", email="owner2@example.com", role=ROLE_OWNER))


@pytest_asyncio.fixture
async def driver(db_session: AsyncSession) -> Account:
    return await _add(db_session, Account(name="Dana Driver", email="driver@example.com", role=ROLE_DRIVER))


@pytest_asyncio.fixture
async def second_driver(db_session: AsyncSession) -> Account:
    return await _add(db_session, Account(name="Yuri Driver", email="driver2@example.com", role=ROLE_DRIVER))


@pytest_asyncio.fixture
async def single_slot_charger(db_session: AsyncSession, owner: Account) -> Charger:
    """A charger with totalSlots=1, availableSlots=1."""
    return await _add(db_session, Charger(
        owner_id=owner.id,
        name="Corner Lot",
        address="1 Main St",
        latitude=52.52,
        longitude=13.40,
        charger_type="Level 2",
        total_slots=1,
        available_slots=1,
    ))


@pytest_asyncio.fixture
async def charger(db_session: AsyncSession, owner: Account) -> Charger:
    """A charger with four free slots."""
    return await _add(db_session, Charger(
        owner_id=owner.id,
        name="Depot Fast Charge",
        address="99 Harbour Rd",
        latitude=48.85,
        longitude=2.35,
        charger_type="DC Fast",
        total_slots=4,
        available_slots=4,
    ))


@pytest_asyncio.fixture
async def full_charger(db_session: AsyncSession, owner: Account) -> Charger:
    """A charger with no free slots."""
    return await _add(db_session, Charger(
        owner_id=owner.id,
        name="Busy Mall",
        address="5 Mall Ave",
        latitude=40.71,
        longitude=-74.00,
        total_slots=2,
        available_slots=0,
    ))
