"""Domain models for devices."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

NAME_MAX_LENGTH = 100
BRAND_MAX_LENGTH = 50
# largest value a SQL BIGINT / SQLite INTEGER can hold
MAX_STORE_INTEGER = 2**63 - 1


class DeviceState(str, Enum):
    AVAILABLE = "AVAILABLE"
    IN_USE = "IN_USE"
    INACTIVE = "INACTIVE"

    @classmethod
    def parse(cls, value: object) -> Optional["DeviceState"]:
        """Case-insensitive lookup, ``None`` for anything that is not exactly a known state."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        return cls.__members__.get(value.upper())


@dataclass(slots=True, frozen=True)
class Device:
    name: str
    brand: str
    state: DeviceState
    created_at: datetime
    id: Optional[int] = None

    @classmethod
    def new(cls, name: str, brand: str, *, now: datetime | None = None) -> "Device":
        return cls(
            name=name,
            brand=brand,
            state=DeviceState.AVAILABLE,
            created_at=now or datetime.now(timezone.utc),
        )

    def with_name(self, name: str) -> "Device":
        return replace(self, name=name)

    def with_brand(self, brand: str) -> "Device":
        return replace(self, brand=brand)

    def with_state(self, state: DeviceState) -> "Device":
        return replace(self, state=state)

    def is_in_use(self) -> bool:
        return self.state is DeviceState.IN_USE

    def is_deletable(self) -> bool:
        return self.state is DeviceState.AVAILABLE


# Sentinel used to differentiate between "not provided" and an explicit value.
UNSET = object()


@dataclass(slots=True)
class DeviceUpdateInput:
    name: Optional[str] | object = UNSET
    brand: Optional[str] | object = UNSET
    state: Optional[DeviceState | str] | object = UNSET

    def changes_identity(self) -> bool:
        return is_provided(self.name) or is_provided(self.brand)


def is_provided(value: object) -> bool:
    return value is not UNSET and value is not None


@dataclass(slots=True)
class DevicePage:
    """One page of a device listing, ordered newest first."""

    items: list[Device]
    page: int
    size: int
    total_elements: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_elements / self.size)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages - 1

    @property
    def has_previous(self) -> bool:
        return self.page > 0
