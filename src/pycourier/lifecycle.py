"""Session lifecycle manager.

Composes the REST gateway, realtime channel, order coordinator and
location telemetry for one driver session, and reacts to login, logout
and app foreground/background transitions.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Callable, Coroutine
from typing import Any

import aiohttp

from pycourier import credentials
from pycourier.channel import ChannelEvent, ChannelEventKind, Connector, RealtimeChannel
from pycourier.config import CourierConfig
from pycourier.coordinator import MapLauncher, OrderCoordinator, OrderRequestPrompt
from pycourier.credentials import CredentialStore, MemoryCredentialStore
from pycourier.exceptions import CourierAuthMissingError, CourierNetworkError
from pycourier.gateway import RestGateway
from pycourier.models.login import LoginResult
from pycourier.models.profile import DriverProfile
from pycourier.session import DriverRole, Session
from pycourier.telemetry import LocationProvider, LocationTelemetryPublisher

_logger = logging.getLogger(__name__)

OnlineListener = Callable[[bool], None]


class AppState(enum.StrEnum):
    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"


class SessionLifecycleManager:
    """Owns the channel, coordinator and telemetry of the active session.

    The driver is online exactly when the realtime channel is open; there
    is no separate online flag.

    Usage::

        manager = SessionLifecycleManager(config, gateway, store=store, http_session=http)
        await manager.restore() or await manager.login("9876543210")
        manager.coordinator.subscribe(render)
        ...
        await manager.logout()
    """

    def __init__(
        self,
        config: CourierConfig,
        gateway: RestGateway,
        *,
        store: CredentialStore | None = None,
        location_provider: LocationProvider | None = None,
        http_session: aiohttp.ClientSession | None = None,
        connector: Connector | None = None,
        map_launcher: MapLauncher | None = None,
        prompt: OrderRequestPrompt | None = None,
    ) -> None:
        self._config = config
        self._gateway = gateway
        self._store: CredentialStore = store if store is not None else MemoryCredentialStore()
        self._channel = RealtimeChannel(
            config,
            on_event=self._on_channel_event,
            http_session=http_session,
            connector=connector,
        )
        self._coordinator = OrderCoordinator(
            gateway,
            sender=self._channel,
            map_launcher=map_launcher,
            prompt=prompt,
        )
        self._telemetry: LocationTelemetryPublisher | None = None
        if location_provider is not None:
            self._telemetry = LocationTelemetryPublisher(
                config,
                gateway,
                location_provider,
                on_session_invalid=self._on_session_invalid,
            )
        self._app_state = AppState.ACTIVE
        self._online_listeners: list[OnlineListener] = []
        self._last_online = False
        self._background: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session | None:
        return self._gateway.session

    @property
    def gateway(self) -> RestGateway:
        return self._gateway

    @property
    def channel(self) -> RealtimeChannel:
        return self._channel

    @property
    def coordinator(self) -> OrderCoordinator:
        return self._coordinator

    @property
    def telemetry(self) -> LocationTelemetryPublisher | None:
        return self._telemetry

    @property
    def app_state(self) -> AppState:
        return self._app_state

    @property
    def is_online(self) -> bool:
        return self._channel.is_open

    def subscribe_online(self, listener: OnlineListener) -> Callable[[], None]:
        """Register *listener* for online/offline changes; returns an unsubscribe callable."""
        self._online_listeners.append(listener)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._online_listeners.remove(listener)

        return _unsubscribe

    def _notify_online(self) -> None:
        online = self.is_online
        if online == self._last_online:
            return
        self._last_online = online
        for listener in list(self._online_listeners):
            try:
                listener(online)
            except Exception:
                _logger.warning("Online listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Session start / stop
    # ------------------------------------------------------------------

    async def start(self, session: Session) -> None:
        """Bind *session* and open its realtime channel.

        A channel open for a different driver is closed first.
        """
        previous = self._gateway.session
        if previous is not None and previous.driver_id != session.driver_id:
            await self.stop()
        self._gateway.bind(session)
        _logger.info("Starting session for driver %s", session.driver_id)
        await self._channel.connect(session.driver_id)

    async def stop(self) -> None:
        """Go offline: close the channel and stop telemetry. The session stays bound."""
        await self._channel.close()
        if self._telemetry is not None:
            await self._telemetry.stop()
        self._notify_online()

    async def login(self, phone_number: str) -> LoginResult:
        """Log in with a 10-digit phone number and start the resulting session.

        Raises
        ------
        ValueError
            If *phone_number* is not exactly 10 digits (no request is sent).
        CourierAuthenticationError
            If the backend returns no token or driver id.
        CourierNetworkError
            On transport failure.
        """
        result = await self._gateway.login(phone_number)
        session = Session(driver_id=result.id, bearer_token=result.token, role=DriverRole.DELIVERY)
        try:
            await credentials.save_session(self._store, session)
        except Exception:
            _logger.warning("Could not persist session", exc_info=True)
        await self.start(session)
        return result

    async def restore(self) -> Session | None:
        """Resume a saved session on cold start, if one is stored."""
        try:
            session = await credentials.load_session(self._store)
        except Exception:
            _logger.warning("Could not read saved session", exc_info=True)
            return None
        if session is None:
            _logger.debug("No saved session")
            return None
        await self.start(session)
        return session

    async def logout(self) -> None:
        """Tear the session down. Always completes; storage failures are logged."""
        _logger.info("Logging out")
        await self._channel.close()
        if self._telemetry is not None:
            await self._telemetry.stop()
        try:
            await credentials.clear_session(self._store)
        except Exception:
            _logger.warning("Could not clear stored credentials", exc_info=True)
        current = asyncio.current_task()
        for task in list(self._background):
            if task is not current:
                task.cancel()
        self._coordinator.clear()
        self._gateway.bind(None)
        self._notify_online()

    async def set_online(self, online: bool) -> None:
        """Go online (open the channel) or offline (close it, stop telemetry).

        Raises
        ------
        CourierAuthMissingError
            When going online without a session.
        """
        if not online:
            await self.stop()
            return
        session = self._gateway.session
        if session is None:
            raise CourierAuthMissingError("Cannot go online without a session")
        if not self._channel.is_open:
            await self._channel.connect(session.driver_id)

    async def on_app_state_change(self, state: AppState | str) -> None:
        """Handle a foreground/background transition.

        Returning to the foreground with a session re-opens the channel;
        the open event refreshes orders and ensures telemetry. If the
        channel stays closed, orders are refreshed over REST anyway.
        """
        state = AppState(state)
        previous, self._app_state = self._app_state, state
        if state != AppState.ACTIVE or previous == AppState.ACTIVE:
            return
        session = self._gateway.session
        if session is None:
            return
        _logger.debug("App returned to foreground; reconnecting driver %s", session.driver_id)
        await self._channel.connect(session.driver_id)
        if not self._channel.is_open:
            await self._coordinator.refresh()

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def fetch_profile(self) -> DriverProfile:
        """Fetch the driver profile, cache it on the session and persist it."""
        profile = await self._gateway.fetch_profile()
        await self.save_profile(profile)
        return profile

    async def save_profile(self, profile: DriverProfile) -> None:
        session = self._gateway.session
        if session is not None:
            self._gateway.bind(session.with_profile(profile))
        try:
            await credentials.save_profile(self._store, profile)
        except Exception:
            _logger.warning("Could not persist driver profile", exc_info=True)

    # ------------------------------------------------------------------
    # Channel events
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, Any], name: str) -> None:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    def _on_background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.warning("Background task %s failed", task.get_name(), exc_info=exc)

    def _on_channel_event(self, event: ChannelEvent) -> None:
        session = self._gateway.session
        if session is None or event.driver_id != session.driver_id:
            _logger.debug("Ignoring channel event %s for inactive driver %s", event.kind, event.driver_id)
            self._notify_online()
            return

        if event.kind == ChannelEventKind.OPEN:
            self._notify_online()
            self._spawn(self._on_channel_open(), "courier-channel-open")
        elif event.kind == ChannelEventKind.MESSAGE and event.message is not None:
            self._spawn(self._coordinator.apply_push_event(event.message), "courier-push-event")
        elif event.kind == ChannelEventKind.CLOSED:
            self._notify_online()
            if self._telemetry is not None:
                self._spawn(self._telemetry.stop(), "courier-telemetry-stop")

    async def _on_channel_open(self) -> None:
        await self._coordinator.refresh()
        try:
            await self.fetch_profile()
        except (CourierAuthMissingError, CourierNetworkError) as exc:
            _logger.warning("Profile fetch failed: %s", exc)
        await self._ensure_telemetry()

    async def _ensure_telemetry(self) -> None:
        session = self._gateway.session
        if self._telemetry is None or session is None or not session.is_delivery:
            return
        if not self._channel.is_open:
            return
        await self._telemetry.start()

    async def _on_session_invalid(self) -> None:
        _logger.warning("Session rejected by the backend; logging out")
        await self.logout()
