"""Shared fixtures: in-memory stores, a temp-file database and an API client."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.db.database import SCHEMA_PATH


async def create_schema(db) -> None:
    await db.executescript(SCHEMA_PATH.read_text(encoding="utf-8"))
    await db.commit()


async def memory_db():
    """In-memory aiosqlite connection with the kv_store schema loaded."""
    import aiosqlite

    db = await aiosqlite.connect(":memory:")
    db.row_factory = aiosqlite.Row
    await create_schema(db)
    return db


class FakeClock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def run_db():
    """Run `test(db)` against a fresh in-memory database."""

    def _run(test):
        async def _wrapped():
            db = await memory_db()
            try:
                return await test(db)
            finally:
                await db.close()
        return asyncio.run(_wrapped())

    return _run


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def db_path(tmp_path):
    import aiosqlite

    path = tmp_path / "mathforce_test.db"

    async def _init():
        async with aiosqlite.connect(path) as db:
            await create_schema(db)

    asyncio.run(_init())
    return path


@pytest.fixture
def client(db_path):
    from fastapi.testclient import TestClient

    from app.db.database import connect, get_db
    from app.server import app
    from app.services.training_session import SessionRegistry

    async def override_get_db():
        db = await connect(str(db_path))
        try:
            yield db
        finally:
            await db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.sessions = SessionRegistry()
    yield TestClient(app)
    app.dependency_overrides.clear()
