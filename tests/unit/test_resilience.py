"""
Unit tests for the retry / timeout / circuit breaker policy.
"""
import asyncio
from unittest.mock import AsyncMock

import pytest
from prometheus_client import REGISTRY

from device_inventory.core.config import ResilienceSettings
from device_inventory.core.resilience import CircuitBreaker, CircuitState, ResiliencePolicy
from device_inventory.modules.devices import (
    CircuitOpenError,
    DeviceNotFoundError,
    TransientStoreError,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


class TestRetry:
    async def test_success_on_first_attempt(self, fake_sleep, sleeps):
        policy = ResiliencePolicy(max_attempts=3, timeout=None, sleep=fake_sleep)
        fn = AsyncMock(return_value="ok")

        assert await policy.execute("op", fn, 1, key="v") == "ok"
        fn.assert_awaited_once_with(1, key="v")
        assert sleeps == []

    async def test_retries_transient_errors_with_backoff(self, fake_sleep, sleeps):
        policy = ResiliencePolicy(
            max_attempts=3,
            initial_backoff=0.1,
            backoff_multiplier=2.0,
            timeout=None,
            sleep=fake_sleep,
        )
        fn = AsyncMock(side_effect=[TransientStoreError("a"), TransientStoreError("b"), "ok"])

        assert await policy.execute("op", fn) == "ok"
        assert fn.await_count == 3
        assert sleeps == pytest.approx([0.1, 0.2])

    async def test_gives_up_after_max_attempts(self, fake_sleep, sleeps):
        policy = ResiliencePolicy(max_attempts=3, timeout=None, sleep=fake_sleep)
        fn = AsyncMock(side_effect=TransientStoreError("down"))

        with pytest.raises(TransientStoreError, match="down"):
            await policy.execute("op", fn)
        assert fn.await_count == 3
        assert len(sleeps) == 2

    async def test_domain_errors_are_not_retried(self, fake_sleep, sleeps):
        policy = ResiliencePolicy(max_attempts=3, timeout=None, sleep=fake_sleep)
        fn = AsyncMock(side_effect=DeviceNotFoundError("missing"))

        with pytest.raises(DeviceNotFoundError):
            await policy.execute("op", fn)
        assert fn.await_count == 1
        assert sleeps == []

    def test_backoff_is_capped(self):
        policy = ResiliencePolicy(initial_backoff=0.5, max_backoff=1.5, backoff_multiplier=2.0)

        assert policy.backoff_for(0) == 0.5
        assert policy.backoff_for(1) == 1.0
        assert policy.backoff_for(2) == 1.5
        assert policy.backoff_for(10) == 1.5


class TestTimeout:
    async def test_slow_call_becomes_transient_error(self, fake_sleep):
        policy = ResiliencePolicy(max_attempts=1, timeout=0.01, sleep=fake_sleep)

        async def _slow():
            await asyncio.sleep(1)

        with pytest.raises(TransientStoreError, match="timed out"):
            await policy.execute("devices.find_all", _slow)

    async def test_fast_call_within_timeout(self):
        policy = ResiliencePolicy(max_attempts=1, timeout=1.0)
        fn = AsyncMock(return_value=5)

        assert await policy.execute("op", fn) == 5


class TestCircuitBreaker:
    def test_opens_at_threshold(self):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=10, clock=FakeClock())

        breaker.record_failure()
        assert breaker.state is CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.state is CircuitState.OPEN
        assert breaker.allow_request() is False

    def test_success_resets_failure_count(self):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=10, clock=FakeClock())

        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()

        assert breaker.state is CircuitState.CLOSED

    def test_half_open_after_reset_timeout(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30, clock=clock)
        breaker.record_failure()

        clock.advance(29)
        assert breaker.state is CircuitState.OPEN
        clock.advance(1)
        assert breaker.state is CircuitState.HALF_OPEN
        assert breaker.allow_request() is True

    def test_half_open_admits_a_single_trial(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30, clock=clock)
        breaker.record_failure()
        clock.advance(30)

        admitted = [breaker.allow_request() for _ in range(3)]

        assert admitted == [True, False, False]

    def test_resolved_trial_admits_again(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=30, clock=clock)
        breaker.record_failure()
        clock.advance(30)
        assert breaker.allow_request() is True

        breaker.release_trial()

        assert breaker.state is CircuitState.HALF_OPEN
        assert breaker.allow_request() is True
        assert breaker.allow_request() is False
        breaker.record_success()
        assert [breaker.allow_request() for _ in range(2)] == [True, True]

    def test_half_open_failure_reopens(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=3, reset_timeout=5, clock=clock)
        for _ in range(3):
            breaker.record_failure()
        clock.advance(5)
        assert breaker.state is CircuitState.HALF_OPEN

        breaker.record_failure()

        assert breaker.state is CircuitState.OPEN

    def test_half_open_success_closes(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=5, clock=clock)
        breaker.record_failure()
        clock.advance(5)
        assert breaker.state is CircuitState.HALF_OPEN

        breaker.record_success()

        assert breaker.state is CircuitState.CLOSED


class TestPolicyWithBreaker:
    async def test_open_circuit_rejects_without_calling(self, fake_sleep):
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60, clock=FakeClock())
        breaker.record_failure()
        policy = ResiliencePolicy(max_attempts=3, timeout=None, breaker=breaker, sleep=fake_sleep)
        fn = AsyncMock()

        with pytest.raises(CircuitOpenError):
            await policy.execute("op", fn)
        fn.assert_not_awaited()

    async def test_circuit_opening_mid_retry_stops_retrying(self, fake_sleep, sleeps):
        breaker = CircuitBreaker(failure_threshold=2, reset_timeout=60, clock=FakeClock())
        policy = ResiliencePolicy(max_attempts=5, timeout=None, breaker=breaker, sleep=fake_sleep)
        fn = AsyncMock(side_effect=TransientStoreError("down"))

        with pytest.raises(CircuitOpenError):
            await policy.execute("op", fn)
        assert fn.await_count == 2
        assert len(sleeps) == 1

    async def test_concurrent_calls_in_half_open_get_one_trial(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=5, clock=clock)
        breaker.record_failure()
        clock.advance(5)
        policy = ResiliencePolicy(max_attempts=1, timeout=None, breaker=breaker)
        release = asyncio.Event()

        async def _trial():
            await release.wait()
            return "ok"

        trial = asyncio.create_task(policy.execute("op", _trial))
        await asyncio.sleep(0)
        with pytest.raises(CircuitOpenError):
            await policy.execute("op", AsyncMock(return_value="other"))

        release.set()
        assert await trial == "ok"
        assert breaker.state is CircuitState.CLOSED

    async def test_domain_error_in_trial_frees_the_slot(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=5, clock=clock)
        breaker.record_failure()
        clock.advance(5)
        policy = ResiliencePolicy(max_attempts=1, timeout=None, breaker=breaker)

        with pytest.raises(DeviceNotFoundError):
            await policy.execute("op", AsyncMock(side_effect=DeviceNotFoundError("missing")))

        assert breaker.state is CircuitState.HALF_OPEN
        assert await policy.execute("op", AsyncMock(return_value=1)) == 1
        assert breaker.state is CircuitState.CLOSED

    async def test_circuit_open_error_is_transient(self):
        assert issubclass(CircuitOpenError, TransientStoreError)

    async def test_success_closes_half_open_circuit(self):
        clock = FakeClock()
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=5, clock=clock)
        breaker.record_failure()
        clock.advance(5)
        policy = ResiliencePolicy(max_attempts=1, timeout=None, breaker=breaker)

        assert await policy.execute("op", AsyncMock(return_value=1)) == 1
        assert breaker.state is CircuitState.CLOSED


class TestFromSettings:
    def test_disabled_policy_is_a_single_plain_call(self):
        policy = ResiliencePolicy.from_settings(ResilienceSettings(enabled=False))

        assert policy.max_attempts == 1
        assert policy.timeout is None
        assert policy.breaker is None

    def test_enabled_policy_uses_settings(self):
        settings = ResilienceSettings(
            enabled=True,
            max_attempts=4,
            timeout=2.5,
            failure_threshold=7,
            reset_timeout=12,
        )

        policy = ResiliencePolicy.from_settings(settings)

        assert policy.max_attempts == 4
        assert policy.timeout == 2.5
        assert policy.breaker is not None
        assert policy.breaker.failure_threshold == 7
        assert policy.breaker.reset_timeout == 12


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestStoreMetrics:
    async def test_outcomes_and_retries_are_counted(self, fake_sleep):
        policy = ResiliencePolicy(max_attempts=2, timeout=None, sleep=fake_sleep)
        operation = "metrics.flaky"
        successes = _sample("device_inventory_store_calls_total", operation=operation, outcome="success")
        retries = _sample("device_inventory_store_retries_total", operation=operation)

        fn = AsyncMock(side_effect=[TransientStoreError("blip"), "ok"])
        await policy.execute(operation, fn)

        assert _sample("device_inventory_store_calls_total", operation=operation, outcome="success") == successes + 1
        assert _sample("device_inventory_store_retries_total", operation=operation) == retries + 1

    async def test_exhausted_retries_count_as_failure(self, fake_sleep):
        policy = ResiliencePolicy(max_attempts=2, timeout=None, sleep=fake_sleep)
        operation = "metrics.down"
        before = _sample("device_inventory_store_calls_total", operation=operation, outcome="failure")

        with pytest.raises(TransientStoreError):
            await policy.execute(operation, AsyncMock(side_effect=TransientStoreError("down")))

        assert _sample("device_inventory_store_calls_total", operation=operation, outcome="failure") == before + 1

    async def test_circuit_rejections_are_counted(self):
        breaker = CircuitBreaker(failure_threshold=1, reset_timeout=60, clock=FakeClock())
        breaker.record_failure()
        policy = ResiliencePolicy(max_attempts=1, timeout=None, breaker=breaker)
        operation = "metrics.rejected"
        before = _sample("device_inventory_circuit_rejections_total", operation=operation)

        with pytest.raises(CircuitOpenError):
            await policy.execute(operation, AsyncMock())

        assert _sample("device_inventory_circuit_rejections_total", operation=operation) == before + 1
        assert _sample("device_inventory_store_calls_total", operation=operation, outcome="rejected") >= 1
