"""Domain service orchestrating device related workflows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from .exceptions import (
    DeviceDeletionError,
    DeviceNotFoundError,
    DeviceUpdateError,
    DeviceValidationError,
)
from .models import (
    BRAND_MAX_LENGTH,
    MAX_STORE_INTEGER,
    NAME_MAX_LENGTH,
    Device,
    DevicePage,
    DeviceState,
    DeviceUpdateInput,
    is_provided,
)
from .repository import DeviceRepository
from .resilient_repository import ResilientDeviceRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from device_inventory.core.resilience import ResiliencePolicy

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class DeviceService:
    """Encapsulates the device use cases and their state rules."""

    def __init__(
        self,
        repository: DeviceRepository,
        *,
        policy: Optional["ResiliencePolicy"] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        if policy is not None:
            repository = ResilientDeviceRepository(repository, policy)
        self._repository = repository
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    @classmethod
    def with_session(
        cls,
        session: "AsyncSession",
        *,
        policy: Optional["ResiliencePolicy"] = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
        max_page_size: int = MAX_PAGE_SIZE,
    ) -> "DeviceService":
        from device_inventory.infrastructure.database.repositories import SqlDeviceRepository

        return cls(
            SqlDeviceRepository(session),
            policy=policy,
            default_page_size=default_page_size,
            max_page_size=max_page_size,
        )

    async def create_device(self, name: str, brand: str) -> Device:
        _check_text("name", name, NAME_MAX_LENGTH)
        _check_text("brand", brand, BRAND_MAX_LENGTH)

        device = await self._repository.save(Device.new(name, brand))
        logger.info("Created device %s (%s / %s)", device.id, device.name, device.brand)
        return device

    async def get_device(self, device_id: int) -> Device:
        # ids outside the store's integer range cannot exist
        device = None
        if 0 < device_id <= MAX_STORE_INTEGER:
            device = await self._repository.find_by_id(device_id)
        if device is None:
            logger.warning("Device %s not found", device_id)
            raise DeviceNotFoundError(f"Device {device_id} not found")
        return device

    async def list_devices(
        self,
        *,
        brand: str | None = None,
        state: DeviceState | str | None = None,
        page: int = 0,
        size: int | None = None,
    ) -> DevicePage:
        """List devices newest first, filtered by brand or by state.

        The filters are not combined: when both are given the brand filter
        wins and ``state`` is ignored.
        """
        size = self.default_page_size if size is None else size
        if page < 0:
            raise DeviceValidationError("page must be greater than or equal to 0")
        if size < 1 or size > self.max_page_size:
            raise DeviceValidationError(f"size must be between 1 and {self.max_page_size}")
        if (page + 1) * size > MAX_STORE_INTEGER:
            raise DeviceValidationError(f"page {page} is out of range")

        if brand is not None:
            items = await self._repository.find_by_brand(brand, page, size)
            total = await self._repository.count_by_brand(brand)
        elif state is not None:
            parsed = DeviceState.parse(state)
            if parsed is None:
                raise DeviceValidationError(f"Invalid state: {state}")
            items = await self._repository.find_by_state(parsed, page, size)
            total = await self._repository.count_by_state(parsed)
        else:
            items = await self._repository.find_all(page, size)
            total = await self._repository.count_all()

        return DevicePage(items=list(items), page=page, size=size, total_elements=total)

    async def update_device(self, device_id: int, changes: DeviceUpdateInput) -> Device:
        current = await self.get_device(device_id)

        # the guard looks at the stored state, not the requested one
        if current.is_in_use() and changes.changes_identity():
            logger.warning("Rejected name/brand change for device %s in use", device_id)
            raise DeviceUpdateError("Cannot update name or brand of device in use")

        updated = current
        if is_provided(changes.name):
            _check_text("name", changes.name, NAME_MAX_LENGTH)
            updated = updated.with_name(changes.name)
        if is_provided(changes.brand):
            _check_text("brand", changes.brand, BRAND_MAX_LENGTH)
            updated = updated.with_brand(changes.brand)
        if is_provided(changes.state):
            new_state = DeviceState.parse(changes.state)
            if new_state is None:
                raise DeviceUpdateError(f"Invalid state: {changes.state}")
            updated = updated.with_state(new_state)

        saved = await self._repository.save(updated)
        logger.info("Updated device %s (state=%s)", saved.id, saved.state.value)
        return saved

    async def delete_device(self, device_id: int) -> None:
        device = await self.get_device(device_id)
        if not device.is_deletable():
            logger.warning("Rejected deletion of device %s in state %s", device_id, device.state.value)
            raise DeviceDeletionError("Cannot delete device that is in use or inactive")

        await self._repository.delete_by_id(device_id)
        logger.info("Deleted device %s", device_id)


def _check_text(field: str, value: object, max_length: int) -> None:
    if not isinstance(value, str) or not value.strip():
        raise DeviceValidationError(f"{field} must not be blank")
    if len(value) > max_length:
        raise DeviceValidationError(f"{field} must not exceed {max_length} characters")
