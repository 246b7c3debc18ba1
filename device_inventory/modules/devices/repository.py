"""Repository protocol for device persistence operations."""

from __future__ import annotations

from typing import Protocol, Sequence

from .models import Device, DeviceState


class DeviceRepository(Protocol):
    """Store contract used by the device service.

    Listing methods return devices ordered by ``created_at`` descending.
    Passing neither ``page`` nor ``size`` returns every matching row.
    """

    async def save(self, device: Device) -> Device:
        ...

    async def find_by_id(self, device_id: int) -> Device | None:
        ...

    async def delete_by_id(self, device_id: int) -> None:
        ...

    async def exists_by_id(self, device_id: int) -> bool:
        ...

    async def find_all(
        self, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        ...

    async def count_all(self) -> int:
        ...

    async def find_by_brand(
        self, brand: str, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        ...

    async def count_by_brand(self, brand: str) -> int:
        ...

    async def find_by_state(
        self, state: DeviceState, page: int | None = None, size: int | None = None
    ) -> Sequence[Device]:
        ...

    async def count_by_state(self, state: DeviceState) -> int:
        ...
