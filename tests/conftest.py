"""Pytest fixtures for Bonus Drops tests."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app, settings as app_settings
from app.database import Base, get_db


# Keep API tests focused on endpoint behavior, not auth flow.
app_settings.auth_enabled = False


# Test database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

CANONICAL_MESSAGE = "\n".join([
    "Rainbet Bonus",
    "Bonus Drop!",
    "Reward: $2-$30",
    "Wagered: $5,000-$72,000 past 30 days",
    "Claims: 200-300",
    "Claimable for 24 Hours",
    "Code: RAIN9HLC",
])


@pytest.fixture
async def db_session():
    """Create a fresh in-memory database session for each test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def client(db_session):
    """Create a test client with database override."""
    async def override_get_db():
        yield db_session
        await db_session.commit()

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def canonical_message() -> str:
    return CANONICAL_MESSAGE


def _telegram_message(
    text: str | None = CANONICAL_MESSAGE,
    *,
    chat_id: int = -1001234567890,
    message_id: int = 42,
    date: int = 1_700_000_000,
    sender_id: int | None = 777,
) -> dict:
    """Bot API message payload."""
    payload: dict = {
        "message_id": message_id,
        "chat": {"id": chat_id, "type": "supergroup", "title": "Rainbet Drops"},
        "date": date,
    }
    if text is not None:
        payload["text"] = text
    if sender_id is not None:
        payload["from"] = {"id": sender_id, "is_bot": False, "first_name": "Drops"}
    return payload


@pytest.fixture
def make_message():
    """Factory for Bot API message payloads."""
    return _telegram_message
