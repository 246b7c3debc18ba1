"""Maps domain errors onto HTTP responses with a uniform error body."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from device_inventory.modules.devices import (
    DeviceDeletionError,
    DeviceError,
    DeviceNotFoundError,
    DeviceUpdateError,
    DeviceValidationError,
    TransientStoreError,
)
from device_inventory.schemas import ErrorResponse

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[DeviceError], int] = {
    DeviceValidationError: status.HTTP_400_BAD_REQUEST,
    DeviceUpdateError: status.HTTP_400_BAD_REQUEST,
    DeviceDeletionError: status.HTTP_400_BAD_REQUEST,
    DeviceNotFoundError: status.HTTP_404_NOT_FOUND,
    TransientStoreError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = ErrorResponse(code=code, message=message, timestamp=datetime.now(timezone.utc))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def status_for(exc: DeviceError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_device_error(request: Request, exc: DeviceError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
    else:
        logger.warning("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc)
    return error_response(status_code, exc.code, str(exc))


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = ", ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    logger.warning("Validation failed for %s %s: %s", request.method, request.url.path, message)
    return error_response(status.HTTP_400_BAD_REQUEST, DeviceValidationError.code, message)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unexpected error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_SERVER_ERROR", "Internal server error"
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DeviceError, handle_device_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
