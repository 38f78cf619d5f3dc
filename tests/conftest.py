"""Shared test fixtures.

Each test gets its own SQLite ledger file so concurrent sessions behave like
separate connections.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from vpe.database import close_db, create_schema, get_session_factory, init_db
from vpe.engine.facade import ProgressionEngine
from vpe.engine_config import EngineConfig
from vpe.main import create_app

# Noon UTC, well inside a day so +hours never crosses midnight by accident
T0 = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)

ALICE = "0xa11ce0000000000000000000000000000000a11ce"
BOB = "0xb0b0000000000000000000000000000000000b0b"


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh ledger schema per test."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_schema()
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for service calls and assertions."""
    async with get_session_factory()() as session:
        yield session


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def engine(config: EngineConfig) -> ProgressionEngine:
    return ProgressionEngine(config)


@pytest_asyncio.fixture
async def client(database: None, engine: ProgressionEngine) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client over the app. The transport skips lifespan, so the engine is attached here."""
    app = create_app()
    app.state.engine = engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
