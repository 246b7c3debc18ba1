"""Device related dependency providers."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from device_inventory.core.container import ApplicationContainer, get_container
from device_inventory.modules.devices import DeviceService

from .database import get_db_session


def get_app_container() -> ApplicationContainer:
    return get_container()


def get_device_service(
    db: AsyncSession = Depends(get_db_session),
    container: ApplicationContainer = Depends(get_app_container),
) -> DeviceService:
    pagination = container.settings.pagination
    return DeviceService.with_session(
        db,
        policy=container.resilience_policy,
        default_page_size=pagination.default_size,
        max_page_size=pagination.max_size,
    )


__all__ = [
    "get_app_container",
    "get_device_service",
]
