"""REST gateway: the authenticated HTTP surface used by the core."""

from __future__ import annotations

from typing import Any

from pycourier._api import location as _location_api
from pycourier._api import login as _login_api
from pycourier._api import orders as _orders_api
from pycourier._api import profile as _profile_api
from pycourier._transport import Transport
from pycourier.config import CourierConfig
from pycourier.ingestion.orders import OrdersPage
from pycourier.models.location import TelemetrySample
from pycourier.models.login import LoginResult
from pycourier.models.order import DeliveryStatus, Order
from pycourier.models.profile import DriverProfile
from pycourier.session import Session


class RestGateway:
    """HTTP client bound to a base URL and the current bearer token.

    Every authenticated call raises
    :class:`~pycourier.exceptions.CourierAuthMissingError` without
    touching the network when no session is bound.
    """

    def __init__(self, config: CourierConfig, transport: Transport, session: Session | None = None) -> None:
        self._config = config
        self._transport = transport
        self._session = session

    @property
    def session(self) -> Session | None:
        return self._session

    def bind(self, session: Session | None) -> None:
        """Bind (or with ``None``, unbind) the session used for auth."""
        self._session = session

    async def login(self, phone_number: str) -> LoginResult:
        return await _login_api.login(self._transport, phone_number)

    async def fetch_profile(self) -> DriverProfile:
        return await _profile_api.fetch_profile(self._session, self._transport)

    async def fetch_orders(self) -> OrdersPage:
        return await _orders_api.fetch_orders(self._config, self._session, self._transport)

    async def fetch_order_detail(self, order_id: str) -> Order:
        return await _orders_api.fetch_order_detail(self._session, self._transport, order_id)

    async def update_order_status(self, order_id: str, status: DeliveryStatus) -> dict[str, Any]:
        return await _orders_api.update_order_status(self._session, self._transport, order_id, status)

    async def post_location(self, sample: TelemetrySample, *, status: str | None = None) -> None:
        await _location_api.post_location(self._config, self._session, self._transport, sample, status=status)
