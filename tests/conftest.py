import os
import tempfile
from datetime import datetime, timezone

# Settings are read at import time, so configure them before importing the app
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{tempfile.mkdtemp(prefix='qrtrack-')}/app.db",
)
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("PUBLIC_BASE_URL", "http://test")
os.environ.setdefault("FALLBACK_URL", "/")

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport
from qrtrack_shared import ScanEvent, TrackedCode
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.core.database import build_engine, init_db
from app.main import app
from app.services.storage import CodeRepository, SqlKeyValueStore, get_code_repository


def utc(*args: int) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(*args, tzinfo=timezone.utc)


def make_code(code_id: str = "abc123", timestamps: list[datetime] | None = None) -> TrackedCode:
    """Build a tracked code whose scans happened at `timestamps`."""
    scans = [
        ScanEvent(id=f"s{i}", timestamp=ts, user_agent="pytest")
        for i, ts in enumerate(timestamps or [])
    ]
    return TrackedCode(
        id=code_id,
        name=f"Code {code_id}",
        target_url=f"https://example.com/{code_id}",
        tracking_url=f"http://test/track/{code_id}",
        created_at=utc(2024, 1, 1),
        total_scans=len(scans),
        scans=scans,
    )


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/kv.db")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine) -> SqlKeyValueStore:
    return SqlKeyValueStore(async_sessionmaker(engine, expire_on_commit=False))


@pytest.fixture
def repository(store) -> CodeRepository:
    return CodeRepository(store)


@pytest_asyncio.fixture
async def client(repository):
    """HTTP client whose routes use the per-test repository."""

    async def _repository() -> CodeRepository:
        return repository

    app.dependency_overrides[get_code_repository] = _repository
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
