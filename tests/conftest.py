"""
Test configuration and fixtures for the waitlist API.

Every test gets its own SQLite database file (through aiosqlite) with the
schema created from the model metadata, so tests never share state.
"""

import os
import tempfile
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

test_dir = tempfile.mkdtemp(prefix="waitlist-tests-")
os.environ.setdefault("LOG_DIR", os.path.join(test_dir, "logs"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(test_dir, 'app.db')}"
os.environ["ENVIRONMENT"] = "local"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.platform.config import ConvertKitTags, settings
from app.platform.db.base import Base


@pytest.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'waitlist.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 15},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def convertkit_client():
    """ConvertKit client double; every call succeeds."""
    client = MagicMock()
    client.add_subscriber = AsyncMock(return_value="ck-123")
    client.tag_subscriber = AsyncMock(return_value=True)
    client.update_field = AsyncMock(return_value=True)
    return client


@pytest.fixture
def convertkit_tags():
    return ConvertKitTags(
        waitlist="tag-waitlist",
        new_referral="tag-new-referral",
        tiers={0: "tag-t0", 1: "tag-t1", 2: "tag-t2", 3: "tag-t3", 4: "tag-t4"},
    )


@pytest.fixture
def sync_adapter(convertkit_client, convertkit_tags, session_factory):
    from app.features.waitlist.services.sync import WaitlistSyncAdapter

    return WaitlistSyncAdapter(convertkit_client, convertkit_tags, session_factory=session_factory)


@pytest.fixture(autouse=True)
def no_rate_limits(monkeypatch):
    """Rate limiting is switched off unless a test configures it."""
    monkeypatch.setattr(settings, "RATE_LIMITS", {})
    monkeypatch.setattr(settings, "FORCE_IN_MEMORY_RATE_LIMITER", True)


@pytest.fixture(autouse=True)
def no_emails(monkeypatch):
    sent = MagicMock()
    monkeypatch.setattr("app.features.waitlist.utils.emailer.send_email", sent)
    return sent


@pytest.fixture
def test_app(session_factory, sync_adapter):
    """FastAPI app wired to the per-test database and the ConvertKit double."""
    from app.features.waitlist.services.sync import get_sync_adapter
    from app.main import app
    from app.platform.db.session import get_db

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sync_adapter] = lambda: sync_adapter
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://testserver",
    ) as ac:
        yield ac
