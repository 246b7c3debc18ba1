"""
Shared pytest fixtures for device inventory tests.
"""
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from device_inventory.core.config import get_settings
from device_inventory.core.container import get_container
from device_inventory.db import models  # noqa: F401
from device_inventory.infrastructure.database.base import Base
from device_inventory.modules.devices import Device, DeviceState

BASE_TIME = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_device():
    """Factory for domain devices; ``minutes`` offsets created_at from a fixed base time."""

    def _make(
        name: str = "iPhone 15",
        brand: str = "Apple",
        state: DeviceState = DeviceState.AVAILABLE,
        device_id: int | None = 1,
        minutes: int = 0,
    ) -> Device:
        return Device(
            id=device_id,
            name=name,
            brand=brand,
            state=state,
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )

    return _make


@pytest.fixture
async def session_factory(tmp_path: Path):
    """Session factory bound to a fresh SQLite file with the schema created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'devices.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(bind=engine, expire_on_commit=False)
    finally:
        await engine.dispose()


def _clear_caches() -> None:
    get_settings.cache_clear()
    get_container.cache_clear()


@pytest.fixture
def app_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the application settings at a temporary SQLite database."""
    db_path = tmp_path / "api.db"
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DATABASE__URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("RESILIENCE__ENABLED", "false")
    _clear_caches()
    yield db_path
    _clear_caches()


@pytest.fixture
def client(app_env):
    from device_inventory.main import create_app

    app = create_app()
    with TestClient(app) as c:
        yield c
