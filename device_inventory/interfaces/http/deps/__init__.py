"""Reusable FastAPI dependencies."""

from .database import get_db_session
from .devices import get_app_container, get_device_service

__all__ = [
    "get_db_session",
    "get_app_container",
    "get_device_service",
]
