"""SQLAlchemy powered repository for device persistence."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Sequence

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from device_inventory.db.models import DeviceRecord
from device_inventory.modules.devices.exceptions import DeviceNotFoundError, TransientStoreError
from device_inventory.modules.devices.models import Device, DeviceState

logger = logging.getLogger(__name__)

# connection level failures worth retrying; constraint and data errors are not
TRANSIENT_ERRORS = (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)


class SqlDeviceRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, device: Device) -> Device:
        async with self._store_errors("save"):
            if device.id is None:
                model = DeviceRecord(
                    name=device.name,
                    brand=device.brand,
                    state=device.state.value,
                    created_at=device.created_at,
                )
                self._session.add(model)
            else:
                model = await self._fetch_model(device.id)
                if model is None:
                    raise DeviceNotFoundError(f"Device {device.id} not found")
                # created_at is never rewritten
                model.name = device.name
                model.brand = device.brand
                model.state = device.state.value
            await self._session.flush()
            return self._to_domain(model)

    async def find_by_id(self, device_id: int) -> Device | None:
        async with self._store_errors("find_by_id"):
            model = await self._fetch_model(device_id)
            return self._to_domain(model) if model else None

    async def delete_by_id(self, device_id: int) -> None:
        async with self._store_errors("delete_by_id"):
            await self._session.execute(delete(DeviceRecord).where(DeviceRecord.id == device_id))
            await self._session.flush()

    async def exists_by_id(self, device_id: int) -> bool:
        async with self._store_errors("exists_by_id"):
            stmt = select(DeviceRecord.id).where(DeviceRecord.id == device_id).limit(1)
            result = await self._session.execute(stmt)
            return result.scalar_one_or_none() is not None

    async def find_all(
        self, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        return await self._list(select(DeviceRecord), page, size, "find_all")

    async def count_all(self) -> int:
        return await self._count(select(func.count(DeviceRecord.id)), "count_all")

    async def find_by_brand(
        self, brand: str, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        query = select(DeviceRecord).where(DeviceRecord.brand == brand)
        return await self._list(query, page, size, "find_by_brand")

    async def count_by_brand(self, brand: str) -> int:
        query = select(func.count(DeviceRecord.id)).where(DeviceRecord.brand == brand)
        return await self._count(query, "count_by_brand")

    async def find_by_state(
        self, state: DeviceState, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        query = select(DeviceRecord).where(DeviceRecord.state == state.value)
        return await self._list(query, page, size, "find_by_state")

    async def count_by_state(self, state: DeviceState) -> int:
        query = select(func.count(DeviceRecord.id)).where(DeviceRecord.state == state.value)
        return await self._count(query, "count_by_state")

    async def _list(
        self, query: Select, page: int | None, size: int | None, operation: str
    ) -> list[Device]:
        # id breaks created_at ties so pages never overlap
        query = query.order_by(DeviceRecord.created_at.desc(), DeviceRecord.id.desc())
        if size is not None:
            query = query.offset((page or 0) * size).limit(size)

        async with self._store_errors(operation):
            result = await self._session.execute(query)
            return [self._to_domain(model) for model in result.scalars().all()]

    async def _count(self, query: Select, operation: str) -> int:
        async with self._store_errors(operation):
            total = (await self._session.execute(query)).scalar() or 0
            return int(total)

    async def _fetch_model(self, device_id: int) -> DeviceRecord | None:
        stmt = select(DeviceRecord).where(DeviceRecord.id == device_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    @asynccontextmanager
    async def _store_errors(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error("Device store %s failed: %s", operation, exc)
            try:
                await self._session.rollback()
            except SQLAlchemyError:
                logger.warning("Rollback after failed %s also failed", operation, exc_info=True)
            if isinstance(exc, TRANSIENT_ERRORS):
                raise TransientStoreError(f"Device store unavailable during {operation}") from exc
            raise

    @staticmethod
    def _to_domain(model: DeviceRecord) -> Device:
        return Device(
            id=int(model.id),
            name=model.name,
            brand=model.brand,
            state=DeviceState(model.state),
            created_at=_as_utc(model.created_at),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
