"""Pydantic schemas used by the HTTP layer."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from device_inventory.modules.devices import Device, DevicePage, DeviceState


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeviceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    brand: str = Field(..., min_length=1, max_length=50)


class DeviceUpdate(BaseModel):
    """Partial update; omitted or null fields keep their stored value.

    Lengths are checked by the service, after the device lookup and the
    in-use guard.
    """

    name: Optional[str] = None
    brand: Optional[str] = None
    state: Optional[str] = Field(default=None, description="AVAILABLE, IN_USE or INACTIVE (any case)")


class DeviceResponse(CamelModel):
    id: int
    name: str
    brand: str
    state: DeviceState
    created_at: datetime

    @classmethod
    def from_domain(cls, device: Device) -> "DeviceResponse":
        return cls(
            id=device.id,
            name=device.name,
            brand=device.brand,
            state=device.state,
            created_at=device.created_at,
        )


class DevicePageResponse(CamelModel):
    content: list[DeviceResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_domain(cls, page: DevicePage) -> "DevicePageResponse":
        return cls(
            content=[DeviceResponse.from_domain(device) for device in page.items],
            page=page.page,
            size=page.size,
            total_elements=page.total_elements,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_previous=page.has_previous,
        )


class ErrorResponse(BaseModel):
    code: str
    message: str
    timestamp: datetime


class HealthResponse(BaseModel):
    status: str = "ok"
