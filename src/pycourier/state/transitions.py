"""Delivery status state machine.

Only forward, single-step transitions are legal::

    assigned / order_accepted -> chef_arrived -> picked_up
        -> navigating_customer -> customer_arrived -> delivered

``navigating_customer`` is client-local: it records the driver's
navigation intent and is never sent to the backend.
"""

from __future__ import annotations

from dataclasses import dataclass

from pycourier.exceptions import CourierInvalidTransitionError
from pycourier.models.order import DeliveryStatus


@dataclass(frozen=True)
class TransitionRule:
    """The single legal step out of a status."""

    target: DeliveryStatus
    label: str
    client_local: bool = False


_ARRIVED_AT_RESTAURANT = TransitionRule(DeliveryStatus.CHEF_ARRIVED, "Arrived at Restaurant")

TRANSITIONS: dict[DeliveryStatus, TransitionRule] = {
    DeliveryStatus.ASSIGNED: _ARRIVED_AT_RESTAURANT,
    DeliveryStatus.ORDER_ACCEPTED: _ARRIVED_AT_RESTAURANT,
    DeliveryStatus.CHEF_ARRIVED: TransitionRule(DeliveryStatus.PICKED_UP, "Picked Up Order"),
    DeliveryStatus.PICKED_UP: TransitionRule(
        DeliveryStatus.NAVIGATING_CUSTOMER,
        "Navigate to Customer",
        client_local=True,
    ),
    DeliveryStatus.NAVIGATING_CUSTOMER: TransitionRule(DeliveryStatus.CUSTOMER_ARRIVED, "Arrived at Customer"),
    DeliveryStatus.CUSTOMER_ARRIVED: TransitionRule(DeliveryStatus.DELIVERED, "Complete Delivery"),
}


def next_transition(current: DeliveryStatus) -> TransitionRule | None:
    """Return the rule the UI should offer for *current*, if any."""
    return TRANSITIONS.get(current)


def is_legal(current: DeliveryStatus, requested: DeliveryStatus) -> bool:
    rule = TRANSITIONS.get(current)
    return rule is not None and rule.target == requested


def validate_transition(order_id: str, current: DeliveryStatus, requested: DeliveryStatus) -> TransitionRule:
    """Return the matching rule or raise :class:`CourierInvalidTransitionError`."""
    rule = TRANSITIONS.get(current)
    if rule is None or rule.target != requested:
        raise CourierInvalidTransitionError(
            f"Order {order_id}: cannot move from {current.value} to {requested.value}",
            order_id=order_id,
            current=current.value,
            requested=requested.value,
        )
    return rule
