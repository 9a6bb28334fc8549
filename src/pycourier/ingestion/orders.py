"""Order list ingestion.

Translates the order endpoints' response shapes into normalized
:class:`~pycourier.models.order.Order` partitions. Two shapes exist in
the wild and both are accepted:

- ``{"status": "success", "ongoing_orders": [...], "past_orders": [...]}``
- ``{"orders": [...]}`` (or a bare list), partitioned by status
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from pycourier.exceptions import CourierNetworkError
from pycourier.models.order import Order

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrdersPage:
    """A full order fetch, split into ongoing and history."""

    ongoing: tuple[Order, ...] = ()
    history: tuple[Order, ...] = ()

    @property
    def order_ids(self) -> frozenset[str]:
        return frozenset(o.id for o in (*self.ongoing, *self.history))


def _parse_orders(items: Any) -> list[Order]:
    if not isinstance(items, list):
        return []
    parsed: list[Order] = []
    for item in items:
        if not isinstance(item, dict):
            _logger.warning("Skipping non-object order entry: %r", type(item).__name__)
            continue
        try:
            order = Order.model_validate(item)
        except ValidationError:
            _logger.warning("Skipping unparseable order entry", exc_info=True)
            continue
        if not order.id:
            _logger.warning("Skipping order entry without id")
            continue
        parsed.append(order)
    return parsed


def parse_orders_response(payload: Any) -> OrdersPage:
    """Normalize an order-list response into an :class:`OrdersPage`.

    Orders listed under ``past_orders`` always land in history; orders
    from any other list land in history only when their status is
    terminal. An id present in both partitions is kept in history.
    """
    if isinstance(payload, list):
        payload = {"orders": payload}
    if not isinstance(payload, dict):
        raise CourierNetworkError(f"Unexpected orders payload type: {type(payload).__name__}")

    ongoing: dict[str, Order] = {}
    history: dict[str, Order] = {}

    if "ongoing_orders" in payload or "past_orders" in payload:
        candidates = _parse_orders(payload.get("ongoing_orders"))
        for order in _parse_orders(payload.get("past_orders")):
            history[order.id] = order
    elif "orders" in payload:
        candidates = _parse_orders(payload.get("orders"))
    else:
        # {"status": "error"} style responses carry no orders at all.
        _logger.debug("Orders response without order lists status=%s", payload.get("status"))
        candidates = []

    for order in candidates:
        if order.id in history:
            continue
        if order.is_terminal:
            history[order.id] = order
        else:
            ongoing[order.id] = order

    return OrdersPage(ongoing=tuple(ongoing.values()), history=tuple(history.values()))


def parse_order_detail(payload: Any) -> Order:
    """Parse ``GET /deliveryordertrack/{id}``: ``{"order": {...}}`` or a bare order."""
    if not isinstance(payload, dict):
        raise CourierNetworkError(f"Unexpected order payload type: {type(payload).__name__}")
    nested = payload.get("order")
    body = nested if isinstance(nested, dict) else payload
    orders = _parse_orders([body])
    if not orders:
        raise CourierNetworkError("Order detail response carries no order")
    return orders[0]
