"""Shared fixtures for integration tests."""

import os
import random

# Bot modules read settings on import
os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest  # noqa: E402
from sqlalchemy import JSON, event  # noqa: E402
from sqlalchemy.dialects.postgresql import JSONB  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from kafanski_duel.db.models import Base, Player  # noqa: E402
from kafanski_duel.engine.locks import DuelLockRegistry  # noqa: E402


class FixedRandom(random.Random):
    """Deterministic RNG for tests.

    randint always returns the midpoint, so symmetric spreads roll 0.
    choice always picks the first template.
    random returns ``roll``; the default never triggers a foul.
    """

    def __init__(self, roll: float = 0.99) -> None:
        super().__init__(0)
        self.roll = roll

    def randint(self, a: int, b: int) -> int:
        return (a + b) // 2

    def choice(self, seq):
        return seq[0]

    def random(self) -> float:
        return self.roll


@pytest.fixture
def rng() -> FixedRandom:
    return FixedRandom()


@pytest.fixture
def locks() -> DuelLockRegistry:
    """Fresh lock registry so tests never share locks."""
    return DuelLockRegistry()


@pytest.fixture
async def async_engine():
    """Create async SQLite in-memory engine for testing."""
    # Patch JSONB to use JSON for SQLite
    for table in Base.metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine):
    """Create async session for testing with automatic rollback."""
    async_session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


async def make_player(session: AsyncSession, telegram_user_id: int, display_name: str) -> Player:
    player = Player(telegram_user_id=telegram_user_id, display_name=display_name)
    session.add(player)
    await session.flush()
    return player


@pytest.fixture
async def player1(db_session: AsyncSession) -> Player:
    """Create first test player (the usual challenger)."""
    return await make_player(db_session, 111111, "Pera")


@pytest.fixture
async def player2(db_session: AsyncSession) -> Player:
    """Create second test player (the usual challenged)."""
    return await make_player(db_session, 222222, "Mika")


@pytest.fixture
async def player3(db_session: AsyncSession) -> Player:
    """Create a third player, outside the duel."""
    return await make_player(db_session, 333333, "Laza")


@pytest.fixture
def foul_rng() -> FixedRandom:
    """RNG whose foul roll always hits."""
    return FixedRandom(roll=0.0)
