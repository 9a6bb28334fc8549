"""Location telemetry publisher.

Forwards device position samples to the backend while a delivery
session is online. The device location source is abstracted behind
:class:`LocationProvider`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from pycourier.config import CourierConfig, LocationSettings
from pycourier.exceptions import CourierAuthenticationError, CourierAuthMissingError, CourierNetworkError
from pycourier.gateway import RestGateway
from pycourier.models.location import TelemetrySample

_logger = logging.getLogger(__name__)

OFFLINE_STATUS = "offline"


class LocationProvider(Protocol):
    """Device location source."""

    async def has_permission(self) -> bool: ...

    async def request_permission(self) -> bool: ...

    def watch(
        self,
        on_sample: Callable[[TelemetrySample], None],
        on_error: Callable[[Exception], None],
        settings: LocationSettings,
    ) -> Any:
        """Start delivering samples; returns a handle for :meth:`clear_watch`."""
        ...

    def clear_watch(self, handle: Any) -> None: ...


SessionInvalidCallback = Callable[[], Awaitable[None] | None]


class LocationTelemetryPublisher:
    """Streams position samples to ``POST <location endpoint>``.

    Consecutive authentication failures are counted; once
    ``config.max_auth_failures`` is reached ``on_session_invalid`` is
    invoked exactly once until the publisher is restarted.
    """

    def __init__(
        self,
        config: CourierConfig,
        gateway: RestGateway,
        provider: LocationProvider,
        *,
        on_session_invalid: SessionInvalidCallback | None = None,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._provider = provider
        self._on_session_invalid = on_session_invalid
        self._watch_handle: Any = None
        self._active = False
        self._lock = asyncio.Lock()
        self._inflight: set[asyncio.Task[None]] = set()
        self._handlers: set[asyncio.Future[Any]] = set()
        self._auth_failures = 0
        self._invalid_reported = False
        self._last_sample: TelemetrySample | None = None

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def last_sample(self) -> TelemetrySample | None:
        return self._last_sample

    @property
    def auth_failures(self) -> int:
        return self._auth_failures

    async def start(self) -> bool:
        """Begin publishing. Idempotent.

        Returns ``True`` if telemetry is running after the call. Nothing
        starts without a delivery session or without location permission.
        """
        async with self._lock:
            if self._active:
                return True
            session = self._gateway.session
            if session is None:
                _logger.debug("Telemetry not started: no session")
                return False
            if not session.is_delivery:
                _logger.debug("Telemetry not started: role %s does not publish location", session.role)
                return False

            granted = await self._provider.has_permission()
            if not granted:
                granted = await self._provider.request_permission()
            if not granted:
                _logger.warning("Location permission denied; telemetry disabled")
                return False

            self._auth_failures = 0
            self._invalid_reported = False
            self._watch_handle = self._provider.watch(self._on_sample, self._on_error, self._config.location)
            self._active = True
            _logger.info("Location telemetry started for driver %s", session.driver_id)
            return True

    async def stop(self) -> None:
        """Stop publishing. Idempotent."""
        async with self._lock:
            if not self._active:
                return
            self._active = False
            handle, self._watch_handle = self._watch_handle, None
            try:
                self._provider.clear_watch(handle)
            except Exception:
                _logger.warning("Failed to clear location watch", exc_info=True)

            current = asyncio.current_task()
            for task in list(self._inflight):
                if task is not current:
                    task.cancel()
            self._inflight.clear()
            self._auth_failures = 0
            _logger.info("Location telemetry stopped")

            if self._config.send_offline_on_stop and self._last_sample is not None:
                await self._send_offline(self._last_sample)

    async def _send_offline(self, sample: TelemetrySample) -> None:
        if self._gateway.session is None:
            return
        try:
            await self._gateway.post_location(sample, status=OFFLINE_STATUS)
        except (CourierAuthMissingError, CourierNetworkError) as exc:
            _logger.warning("Offline location update failed: %s", exc)

    # ------------------------------------------------------------------
    # Provider callbacks
    # ------------------------------------------------------------------

    def _on_sample(self, sample: TelemetrySample) -> None:
        if not self._active:
            return
        self._last_sample = sample
        task = asyncio.get_running_loop().create_task(self._publish(sample))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _on_error(self, error: Exception) -> None:
        _logger.warning("Location provider error: %s", error)

    async def _publish(self, sample: TelemetrySample) -> None:
        try:
            await self._gateway.post_location(sample)
        except CourierAuthenticationError as exc:
            self._auth_failures += 1
            _logger.warning(
                "Location update rejected (%s); consecutive auth failures=%d",
                exc.status_code,
                self._auth_failures,
            )
            if self._auth_failures >= self._config.max_auth_failures:
                self._report_session_invalid()
            return
        except (CourierAuthMissingError, CourierNetworkError) as exc:
            self._auth_failures = 0
            _logger.warning("Location update failed: %s", exc)
            return
        self._auth_failures = 0
        _logger.debug("Location update sent lat=%.5f lng=%.5f", sample.latitude, sample.longitude)

    def _report_session_invalid(self) -> None:
        if self._invalid_reported or self._on_session_invalid is None:
            return
        self._invalid_reported = True
        _logger.warning("Location endpoint keeps rejecting the session; treating it as invalid")
        try:
            result = self._on_session_invalid()
        except Exception:
            _logger.warning("Session-invalid handler failed", exc_info=True)
            return
        if inspect.isawaitable(result):
            # Runs outside this task so a logout triggered here can stop us.
            task = asyncio.ensure_future(result)
            self._handlers.add(task)
            task.add_done_callback(self._handlers.discard)
