"""High-level async client for the delivery dispatch backend."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from pycourier._transport import HttpTransport
from pycourier.channel import Connector
from pycourier.config import CourierConfig
from pycourier.coordinator import MapLauncher, OrderCoordinator, OrderRequestPrompt
from pycourier.credentials import CredentialStore
from pycourier.exceptions import CourierError
from pycourier.gateway import RestGateway
from pycourier.lifecycle import AppState, SessionLifecycleManager
from pycourier.models.login import LoginResult
from pycourier.models.messages import OrderDecision
from pycourier.models.order import DeliveryStatus, Order
from pycourier.session import Session
from pycourier.telemetry import LocationProvider

_logger = logging.getLogger(__name__)


class CourierClient:
    """Async client for a delivery driver session.

    Usage::

        async with CourierClient(config, store=store, location_provider=gps) as client:
            if await client.restore() is None:
                await client.login("9876543210")
            client.coordinator.subscribe(render)
            await client.advance_status(order_id, DeliveryStatus.CHEF_ARRIVED)
    """

    def __init__(
        self,
        config: CourierConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        store: CredentialStore | None = None,
        location_provider: LocationProvider | None = None,
        map_launcher: MapLauncher | None = None,
        prompt: OrderRequestPrompt | None = None,
        connector: Connector | None = None,
    ) -> None:
        self._config = config or CourierConfig()
        self._external_session = session is not None
        self._http_session = session
        self._store = store
        self._location_provider = location_provider
        self._map_launcher = map_launcher
        self._prompt = prompt
        self._connector = connector
        self._manager: SessionLifecycleManager | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CourierClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        transport = HttpTransport(self._config, self._http_session)
        gateway = RestGateway(self._config, transport)
        self._manager = SessionLifecycleManager(
            self._config,
            gateway,
            store=self._store,
            location_provider=self._location_provider,
            http_session=self._http_session,
            connector=self._connector,
            map_launcher=self._map_launcher,
            prompt=self._prompt,
        )
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._manager is not None:
            await self._manager.stop()
            self._manager = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _require_manager(self) -> SessionLifecycleManager:
        if self._manager is None:
            raise CourierError("Client not initialized. Use 'async with CourierClient(...) as client:'")
        return self._manager

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> CourierConfig:
        return self._config

    @property
    def lifecycle(self) -> SessionLifecycleManager:
        return self._require_manager()

    @property
    def coordinator(self) -> OrderCoordinator:
        return self._require_manager().coordinator

    @property
    def session(self) -> Session | None:
        return self._require_manager().session

    @property
    def is_online(self) -> bool:
        return self._manager is not None and self._manager.is_online

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(self, phone_number: str) -> LoginResult:
        return await self._require_manager().login(phone_number)

    async def restore(self) -> Session | None:
        return await self._require_manager().restore()

    async def logout(self) -> None:
        await self._require_manager().logout()

    async def set_online(self, online: bool) -> None:
        await self._require_manager().set_online(online)

    async def on_app_state_change(self, state: AppState | str) -> None:
        await self._require_manager().on_app_state_change(state)

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def refresh_orders(self) -> None:
        await self._require_manager().coordinator.refresh(raise_errors=True)

    async def respond(self, order_id: str, decision: OrderDecision | str) -> None:
        await self._require_manager().coordinator.respond(order_id, decision)

    async def advance_status(self, order_id: str, next_status: DeliveryStatus | str) -> Order:
        return await self._require_manager().coordinator.advance_status(order_id, next_status)

    async def fetch_order_detail(self, order_id: str) -> Order:
        return await self._require_manager().coordinator.fetch_order_detail(order_id)
