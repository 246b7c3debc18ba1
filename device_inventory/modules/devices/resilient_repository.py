"""Repository decorator routing every store call through a resilience policy."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .models import Device, DeviceState
from .repository import DeviceRepository

if TYPE_CHECKING:
    from device_inventory.core.resilience import ResiliencePolicy


class ResilientDeviceRepository:
    def __init__(self, inner: DeviceRepository, policy: "ResiliencePolicy") -> None:
        self._inner = inner
        self._policy = policy

    @property
    def inner(self) -> DeviceRepository:
        return self._inner

    async def save(self, device: Device) -> Device:
        return await self._policy.execute("devices.save", self._inner.save, device)

    async def find_by_id(self, device_id: int) -> Device | None:
        return await self._policy.execute("devices.find_by_id", self._inner.find_by_id, device_id)

    async def delete_by_id(self, device_id: int) -> None:
        await self._policy.execute("devices.delete_by_id", self._inner.delete_by_id, device_id)

    async def exists_by_id(self, device_id: int) -> bool:
        return await self._policy.execute("devices.exists_by_id", self._inner.exists_by_id, device_id)

    async def find_all(
        self, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        return await self._policy.execute("devices.find_all", self._inner.find_all, page, size)

    async def count_all(self) -> int:
        return await self._policy.execute("devices.count_all", self._inner.count_all)

    async def find_by_brand(
        self, brand: str, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        return await self._policy.execute(
            "devices.find_by_brand", self._inner.find_by_brand, brand, page, size
        )

    async def count_by_brand(self, brand: str) -> int:
        return await self._policy.execute("devices.count_by_brand", self._inner.count_by_brand, brand)

    async def find_by_state(
        self, state: DeviceState, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        return await self._policy.execute(
            "devices.find_by_state", self._inner.find_by_state, state, page, size
        )

    async def count_by_state(self, state: DeviceState) -> int:
        return await self._policy.execute("devices.count_by_state", self._inner.count_by_state, state)
