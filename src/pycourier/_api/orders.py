"""Order endpoints.

Endpoints:
  - GET /deliveryboy/orders (or /orders/delivery/me)
  - GET /deliveryordertrack/{orderId}
  - PUT /orderdeliveryupdate/{orderId}/status
"""

from __future__ import annotations

import logging
from typing import Any

from pycourier._api._common import ensure_object, require_session
from pycourier._constants import order_status_endpoint, order_track_endpoint
from pycourier._transport import Transport
from pycourier.config import CourierConfig
from pycourier.ingestion.orders import OrdersPage, parse_order_detail, parse_orders_response
from pycourier.models.order import DeliveryStatus, Order
from pycourier.session import Session

_logger = logging.getLogger(__name__)


async def fetch_orders(config: CourierConfig, session: Session | None, transport: Transport) -> OrdersPage:
    """Fetch the driver's ongoing and past orders."""
    active = require_session(session, "fetch_orders")
    response = await transport.request("GET", config.orders_endpoint, token=active.bearer_token)
    page = parse_orders_response(response)
    _logger.debug("Orders fetched: ongoing=%d history=%d", len(page.ongoing), len(page.history))
    return page


async def fetch_order_detail(session: Session | None, transport: Transport, order_id: str) -> Order:
    """Fetch a single order."""
    active = require_session(session, "fetch_order_detail")
    endpoint = order_track_endpoint(order_id)
    response = await transport.request("GET", endpoint, token=active.bearer_token)
    return parse_order_detail(ensure_object(response, endpoint))


async def update_order_status(
    session: Session | None,
    transport: Transport,
    order_id: str,
    status: DeliveryStatus,
) -> dict[str, Any]:
    """Persist a delivery status change.

    The body carries the client status name verbatim, e.g.
    ``{"status": "chef_arrived"}``.
    """
    active = require_session(session, "update_order_status")
    endpoint = order_status_endpoint(order_id)
    response = await transport.request(
        "PUT",
        endpoint,
        token=active.bearer_token,
        json_body={"status": status.value},
    )
    return response if isinstance(response, dict) else {}
