"""Retry, timeout and circuit breaker policy for store calls.

One ``ResiliencePolicy`` instance is shared by the whole process so that the
circuit breaker sees every request. Only ``TransientStoreError`` and timeouts
are retried or counted as failures; domain errors pass straight through.
Every call outcome is recorded in the store metrics.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, TypeVar

from device_inventory.core.config import ResilienceSettings
from device_inventory.core.metrics import CIRCUIT_REJECTIONS, STORE_CALLS, STORE_RETRIES
from device_inventory.modules.devices.exceptions import CircuitOpenError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    def __init__(
        self,
        failure_threshold: int,
        reset_timeout: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        if (
            self._state is CircuitState.OPEN
            and self._clock() - self._opened_at >= self.reset_timeout
        ):
            self._state = CircuitState.HALF_OPEN
        return self._state

    def allow_request(self) -> bool:
        """Admit a call. While half-open only one trial call is admitted at a time."""
        state = self.state
        if state is CircuitState.OPEN:
            return False
        if state is CircuitState.HALF_OPEN:
            if self._trial_in_flight:
                return False
            self._trial_in_flight = True
        return True

    def release_trial(self) -> None:
        """End a trial call that neither succeeded nor failed against the store."""
        self._trial_in_flight = False

    def record_success(self) -> None:
        self._failures = 0
        self._trial_in_flight = False
        self._state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self._failures += 1
        self._trial_in_flight = False
        if self._state is CircuitState.HALF_OPEN or self._failures >= self.failure_threshold:
            if self._state is not CircuitState.OPEN:
                logger.error("Store circuit opened after %d consecutive failures", self._failures)
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()


class ResiliencePolicy:
    def __init__(
        self,
        *,
        max_attempts: int = 3,
        initial_backoff: float = 0.1,
        max_backoff: float = 2.0,
        backoff_multiplier: float = 2.0,
        timeout: Optional[float] = 5.0,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.max_attempts = max_attempts
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.backoff_multiplier = backoff_multiplier
        self.timeout = timeout
        self.breaker = breaker
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: ResilienceSettings) -> "ResiliencePolicy":
        if not settings.enabled:
            return cls.disabled()
        return cls(
            max_attempts=settings.max_attempts,
            initial_backoff=settings.initial_backoff,
            max_backoff=settings.max_backoff,
            backoff_multiplier=settings.backoff_multiplier,
            timeout=settings.timeout,
            breaker=CircuitBreaker(settings.failure_threshold, settings.reset_timeout),
        )

    @classmethod
    def disabled(cls) -> "ResiliencePolicy":
        return cls(max_attempts=1, timeout=None, breaker=None)

    def backoff_for(self, attempt: int) -> float:
        return min(self.initial_backoff * (self.backoff_multiplier ** attempt), self.max_backoff)

    async def execute(
        self,
        operation: str,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        if self.breaker is not None and not self.breaker.allow_request():
            CIRCUIT_REJECTIONS.labels(operation).inc()
            STORE_CALLS.labels(operation, "rejected").inc()
            raise CircuitOpenError(f"Store circuit is open, rejected {operation}")

        attempt = 0
        while True:
            try:
                result = await self._call_once(operation, fn, *args, **kwargs)
            except TransientStoreError as exc:
                if self.breaker is not None:
                    self.breaker.record_failure()
                if attempt + 1 >= self.max_attempts:
                    logger.error(
                        "%s: all %d attempts failed: %s", operation, self.max_attempts, exc
                    )
                    STORE_CALLS.labels(operation, "failure").inc()
                    raise
                if self.breaker is not None and not self.breaker.allow_request():
                    CIRCUIT_REJECTIONS.labels(operation).inc()
                    STORE_CALLS.labels(operation, "rejected").inc()
                    raise CircuitOpenError(f"Store circuit opened during {operation}") from exc
                delay = self.backoff_for(attempt)
                logger.warning(
                    "%s: attempt %d/%d failed: %s. Retrying in %.2fs",
                    operation,
                    attempt + 1,
                    self.max_attempts,
                    exc,
                    delay,
                )
                STORE_RETRIES.labels(operation).inc()
                await self._sleep(delay)
                attempt += 1
            except BaseException:
                # domain errors and cancellation say nothing about store health
                if self.breaker is not None:
                    self.breaker.release_trial()
                STORE_CALLS.labels(operation, "error").inc()
                raise
            else:
                if self.breaker is not None:
                    self.breaker.record_success()
                STORE_CALLS.labels(operation, "success").inc()
                return result

    async def _call_once(
        self, operation: str, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any
    ) -> T:
        if self.timeout is None:
            return await fn(*args, **kwargs)
        try:
            return await asyncio.wait_for(fn(*args, **kwargs), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise TransientStoreError(
                f"{operation} timed out after {self.timeout:.2f}s"
            ) from exc
