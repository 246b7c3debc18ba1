"""Device management endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from device_inventory.interfaces.http.deps import get_device_service
from device_inventory.modules.devices import UNSET, DeviceService, DeviceUpdateInput
from device_inventory.schemas import (
    DeviceCreate,
    DevicePageResponse,
    DeviceResponse,
    DeviceUpdate,
)

router = APIRouter()


@router.post(
    "",
    response_model=DeviceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a device",
)
async def create_device(
    payload: DeviceCreate,
    service: DeviceService = Depends(get_device_service),
):
    device = await service.create_device(payload.name, payload.brand)
    return DeviceResponse.from_domain(device)


@router.get("", response_model=DevicePageResponse, summary="List devices")
async def list_devices(
    brand: Optional[str] = Query(None, description="Exact, case-sensitive brand match"),
    state: Optional[str] = Query(None, description="AVAILABLE, IN_USE or INACTIVE; ignored when brand is set"),
    page: int = Query(0, description="Zero-based page number"),
    size: Optional[int] = Query(None, description="Page size, 1 to 100 (default 20)"),
    service: DeviceService = Depends(get_device_service),
):
    """
    Devices are always ordered newest first.
    """
    result = await service.list_devices(brand=brand, state=state, page=page, size=size)
    return DevicePageResponse.from_domain(result)


@router.get("/{device_id}", response_model=DeviceResponse, summary="Get a device")
async def get_device(device_id: int, service: DeviceService = Depends(get_device_service)):
    device = await service.get_device(device_id)
    return DeviceResponse.from_domain(device)


@router.patch("/{device_id}", response_model=DeviceResponse, summary="Partially update a device")
async def update_device(
    device_id: int,
    payload: DeviceUpdate,
    service: DeviceService = Depends(get_device_service),
):
    provided = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes = DeviceUpdateInput(
        name=provided.get("name", UNSET),
        brand=provided.get("brand", UNSET),
        state=provided.get("state", UNSET),
    )
    device = await service.update_device(device_id, changes)
    return DeviceResponse.from_domain(device)


@router.delete(
    "/{device_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete an available device",
)
async def delete_device(device_id: int, service: DeviceService = Depends(get_device_service)):
    await service.delete_device(device_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
