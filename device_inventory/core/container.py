"""Simple dependency container for wiring core services."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from device_inventory.core.config import Settings, get_settings
from device_inventory.core.resilience import ResiliencePolicy
from device_inventory.infrastructure.database.session import get_engine


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    resilience_policy: ResiliencePolicy

    def init_infrastructure(self) -> None:
        """Ensure infrastructure singletons (database engine, etc.) are initialised."""
        get_engine()


@lru_cache()
def get_container() -> ApplicationContainer:
    settings = get_settings()
    container = ApplicationContainer(
        settings=settings,
        resilience_policy=ResiliencePolicy.from_settings(settings.resilience),
    )
    container.init_infrastructure()
    return container


__all__ = ["ApplicationContainer", "get_container"]
