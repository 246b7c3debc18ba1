"""Device inventory domain: entity rules, store contract and service."""

from .exceptions import (
    CircuitOpenError,
    DeviceDeletionError,
    DeviceError,
    DeviceNotFoundError,
    DeviceUpdateError,
    DeviceValidationError,
    TransientStoreError,
)
from .models import UNSET, Device, DevicePage, DeviceState, DeviceUpdateInput
from .repository import DeviceRepository
from .resilient_repository import ResilientDeviceRepository
from .service import DeviceService

__all__ = [
    "UNSET",
    "Device",
    "DevicePage",
    "DeviceState",
    "DeviceUpdateInput",
    "DeviceRepository",
    "ResilientDeviceRepository",
    "DeviceService",
    "DeviceError",
    "DeviceValidationError",
    "DeviceNotFoundError",
    "DeviceUpdateError",
    "DeviceDeletionError",
    "TransientStoreError",
    "CircuitOpenError",
]
