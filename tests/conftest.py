"""Test fixtures and configuration."""

from __future__ import annotations

from datetime import datetime, timezone
from itertools import count

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from serverdeck.core.gateway import InMemoryGateway
from serverdeck.core.store import InventoryStore
from serverdeck.db.session import Base
from serverdeck.schemas.server import ServerRecord

# Use an in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_TIME = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)

_ids = count(1)


def make_server(**overrides) -> ServerRecord:
    """Build a valid server record; keyword arguments override any field."""
    n = next(_ids)
    data = {
        "id": f"srv-{n}",
        "server_name": f"server-{n}",
        "operating_system": "Ubuntu 22.04",
        "hardware_type": "VMware",
        "company": "Acme",
        "server_type": "Production",
        "location": "Berlin",
        "ip_address": f"10.0.0.{n % 250 + 1}",
        "created_at": BASE_TIME,
        "updated_at": BASE_TIME,
    }
    data.update(overrides)
    return ServerRecord.model_validate(data)


@pytest.fixture
def servers():
    return [
        make_server(id="a", server_name="alpha", location="Berlin", cores=8, tags=["web"]),
        make_server(id="b", server_name="Bravo", location="Munich", cores=16, server_type="Test"),
        make_server(id="c", server_name="charlie", location="Berlin", cores=2, backup="Yes"),
    ]


@pytest.fixture
def gateway(servers):
    return InMemoryGateway(servers)


@pytest_asyncio.fixture
async def store(gateway):
    """Store loaded from the in-memory gateway."""
    s = InventoryStore(gateway, actor="tester", page_size=2)
    assert await s.load()
    return s


@pytest_asyncio.fixture
async def session_factory():
    """Session factory over a fresh in-memory SQLite database."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    # Import all models to register them
    import serverdeck.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()
