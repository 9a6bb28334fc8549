from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from pycourier.config import CourierConfig, LocationSettings
from pycourier.exceptions import CourierAuthenticationError, CourierNetworkError
from pycourier.models.location import TelemetrySample
from pycourier.session import DriverRole, Session
from pycourier.telemetry import LocationTelemetryPublisher


class _FakeProvider:
    def __init__(self, *, has_permission: bool = True, grant: bool = True) -> None:
        self._has = has_permission
        self._grant = grant
        self.permission_requests = 0
        self.watches: list[tuple[Callable[[TelemetrySample], None], LocationSettings]] = []
        self.cleared: list[Any] = []

    async def has_permission(self) -> bool:
        return self._has

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self._grant

    def watch(self, on_sample: Callable[[TelemetrySample], None], on_error: Any, settings: LocationSettings) -> int:
        self.watches.append((on_sample, settings))
        return len(self.watches)

    def clear_watch(self, handle: Any) -> None:
        self.cleared.append(handle)

    def emit(self, latitude: float, longitude: float) -> None:
        on_sample, _settings = self.watches[-1]
        on_sample(TelemetrySample(latitude=latitude, longitude=longitude))


class _FakeGateway:
    def __init__(self, session: Session | None) -> None:
        self.session = session
        self.posts: list[tuple[dict[str, Any], str | None]] = []
        self.errors: list[Exception | None] = []

    async def post_location(self, sample: TelemetrySample, *, status: str | None = None) -> None:
        self.posts.append((sample.to_payload(), status))
        if self.errors:
            error = self.errors.pop(0)
            if error is not None:
                raise error


def _session(role: DriverRole = DriverRole.DELIVERY) -> Session:
    return Session(driver_id="d-1", bearer_token="tok", role=role)


def _unauthorized() -> CourierAuthenticationError:
    return CourierAuthenticationError("HTTP 401", status_code=401, endpoint="/delivery/update-location")


async def _drain() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _publisher(
    gateway: _FakeGateway,
    provider: _FakeProvider,
    on_invalid: Callable[[], None] | None = None,
    **config_kwargs: Any,
) -> LocationTelemetryPublisher:
    return LocationTelemetryPublisher(
        CourierConfig(**config_kwargs),
        gateway,  # type: ignore[arg-type]
        provider,
        on_session_invalid=on_invalid,
    )


@pytest.mark.asyncio
async def test_start_twice_creates_one_watch() -> None:
    provider = _FakeProvider()
    publisher = _publisher(_FakeGateway(_session()), provider)

    assert await publisher.start() is True
    assert await publisher.start() is True

    assert len(provider.watches) == 1
    assert provider.watches[0][1] == LocationSettings(distance_filter=10.0, interval=5.0, fastest_interval=3.0)
    assert publisher.is_active


@pytest.mark.asyncio
async def test_permission_denied_starts_nothing() -> None:
    provider = _FakeProvider(has_permission=False, grant=False)
    publisher = _publisher(_FakeGateway(_session()), provider)

    assert await publisher.start() is False

    assert provider.permission_requests == 1
    assert provider.watches == []
    assert not publisher.is_active


@pytest.mark.asyncio
async def test_permission_requested_when_missing() -> None:
    provider = _FakeProvider(has_permission=False, grant=True)
    publisher = _publisher(_FakeGateway(_session()), provider)

    assert await publisher.start() is True
    assert provider.permission_requests == 1


@pytest.mark.asyncio
async def test_non_delivery_role_or_missing_session_starts_nothing() -> None:
    provider = _FakeProvider()

    assert await _publisher(_FakeGateway(_session(DriverRole.OTHER)), provider).start() is False
    assert await _publisher(_FakeGateway(None), provider).start() is False
    assert provider.watches == []


@pytest.mark.asyncio
async def test_samples_are_forwarded() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    publisher = _publisher(gateway, provider)
    await publisher.start()

    provider.emit(12.9716, 77.5946)
    await _drain()

    assert gateway.posts == [({"latitude": 12.9716, "longitude": 77.5946}, None)]
    assert publisher.last_sample is not None


@pytest.mark.asyncio
async def test_two_consecutive_401s_invalidate_session_once() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    invalidated: list[bool] = []
    publisher = _publisher(gateway, provider, lambda: invalidated.append(True))
    await publisher.start()
    gateway.errors = [_unauthorized(), _unauthorized(), _unauthorized()]

    provider.emit(1.0, 1.0)
    await _drain()
    assert invalidated == []

    provider.emit(1.0, 1.1)
    provider.emit(1.0, 1.2)
    await _drain()

    assert invalidated == [True]
    assert publisher.auth_failures == 3


@pytest.mark.asyncio
async def test_success_resets_auth_failure_count() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    invalidated: list[bool] = []
    publisher = _publisher(gateway, provider, lambda: invalidated.append(True))
    await publisher.start()
    gateway.errors = [_unauthorized(), None, _unauthorized()]

    for lng in (1.0, 1.1, 1.2):
        provider.emit(1.0, lng)
        await _drain()

    assert invalidated == []
    assert publisher.auth_failures == 1


@pytest.mark.asyncio
async def test_network_failure_keeps_watch_running() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    publisher = _publisher(gateway, provider)
    await publisher.start()
    gateway.errors = [CourierNetworkError("HTTP 502", status_code=502)]

    provider.emit(1.0, 1.0)
    provider.emit(1.0, 1.1)
    await _drain()

    assert publisher.is_active
    assert len(gateway.posts) == 2
    assert provider.cleared == []


@pytest.mark.asyncio
async def test_stop_is_idempotent() -> None:
    provider = _FakeProvider()
    publisher = _publisher(_FakeGateway(_session()), provider)
    await publisher.start()

    await publisher.stop()
    await publisher.stop()

    assert provider.cleared == [1]
    assert not publisher.is_active


@pytest.mark.asyncio
async def test_offline_courtesy_update_on_stop() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    publisher = _publisher(gateway, provider, send_offline_on_stop=True)
    await publisher.start()
    provider.emit(12.97, 77.59)
    await _drain()

    await publisher.stop()

    assert gateway.posts[-1] == ({"latitude": 12.97, "longitude": 77.59}, "offline")


@pytest.mark.asyncio
async def test_offline_update_failure_is_swallowed() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    publisher = _publisher(gateway, provider, send_offline_on_stop=True)
    await publisher.start()
    provider.emit(12.97, 77.59)
    await _drain()
    gateway.errors = [CourierNetworkError("offline")]

    await publisher.stop()

    assert not publisher.is_active


@pytest.mark.asyncio
async def test_network_failure_between_401s_resets_auth_failure_count() -> None:
    provider = _FakeProvider()
    gateway = _FakeGateway(_session())
    invalidated: list[bool] = []
    publisher = _publisher(gateway, provider, lambda: invalidated.append(True))
    await publisher.start()
    gateway.errors = [_unauthorized(), CourierNetworkError("HTTP 500", status_code=500), _unauthorized()]

    for lng in (1.0, 1.1, 1.2):
        provider.emit(1.0, lng)
        await _drain()

    assert invalidated == []
    assert publisher.auth_failures == 1
