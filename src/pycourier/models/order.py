"""Order model and delivery status vocabulary."""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from pydantic import Field

from pycourier._constants import DEFAULT_CUSTOMER_LABEL, UNKNOWN_CUSTOMER_NAME
from pycourier.ingestion.normalize import first_meaningful, nested_get, parse_timestamp, safe_float, safe_str
from pycourier.models._base import CourierBaseModel

# Backend spellings that differ from the client vocabulary. Different
# backend builds have used each of these for the same milestone.
_STATUS_ALIASES: dict[str, str] = {
    "picked": "picked_up",
    "pickedup": "picked_up",
    "arrived": "chef_arrived",
    "out_for_delivery": "navigating_customer",
    "ontheway": "navigating_customer",
    "navigate_customer": "navigating_customer",
    "canceled": "cancelled",
    "rejected": "cancelled",
}


class DeliveryStatus(enum.StrEnum):
    """Per-order delivery progress as seen by the driver.

    Values the backend sends that have no mapped member resolve to
    ``UNKNOWN`` instead of raising ``ValueError``; known backend aliases
    (``picked``, ``out_for_delivery`` ...) resolve to their canonical
    member.
    """

    ASSIGNED = "assigned"
    ORDER_ACCEPTED = "order_accepted"
    CHEF_ARRIVED = "chef_arrived"
    PICKED_UP = "picked_up"
    NAVIGATING_CUSTOMER = "navigating_customer"
    CUSTOMER_ARRIVED = "customer_arrived"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> DeliveryStatus:
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_").replace(" ", "_")
            key = _STATUS_ALIASES.get(key, _STATUS_ALIASES.get(key.replace("_", ""), key))
            for member in cls:
                if member.value == key:
                    return member
        return cls.UNKNOWN

    @property
    def is_terminal(self) -> bool:
        """Whether an order in this status belongs to history."""
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[DeliveryStatus] = frozenset({DeliveryStatus.DELIVERED, DeliveryStatus.CANCELLED})


def _customer_label(values: dict[str, Any]) -> str:
    for path in (("customer", "name"), ("user", "name")):
        name = safe_str(nested_get(values, *path))
        if name and name != UNKNOWN_CUSTOMER_NAME:
            return name
    return safe_str(nested_get(values, "address", "label")) or DEFAULT_CUSTOMER_LABEL


def _items_summary(items: Any) -> str:
    if not isinstance(items, list):
        return ""
    parts: list[str] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = safe_str(item.get("food_name") or item.get("name"))
        if name is None:
            continue
        quantity = item.get("quantity")
        parts.append(f"{quantity}x {name}" if quantity is not None else name)
    return ", ".join(parts)


def _customer_coordinates(values: dict[str, Any]) -> tuple[float, float] | None:
    # GeoJSON order: [longitude, latitude]
    coords = nested_get(values, "address", "coordinates")
    if not isinstance(coords, list) or len(coords) != 2:
        return None
    lng, lat = safe_float(coords[0]), safe_float(coords[1])
    if lat is None or lng is None:
        return None
    return lat, lng


_DERIVED_ONLY_FIELDS: tuple[str, ...] = (
    "last_updated_at",
    "customer_name",
    "order_number",
    "total_amount",
    "chef_name",
    "items_summary",
    "customer_coordinates",
)


class Order(CourierBaseModel):
    """An order visible to the driver.

    Built from the raw backend payload with ``Order.model_validate``;
    the display fields are derived once at parse time.

    Parameters
    ----------
    id : str
        Order id (``_id`` on the wire, ``id`` on some endpoints).
    delivery_status : DeliveryStatus
        Normalized delivery progress.
    last_updated_at : datetime
        Server ``updated_at`` when present, else when the client last
        changed or observed the order.
    customer_name : str
        Customer name, else delivery-address label, else ``"Customer"``.
    order_number : str
        Last five characters of the id, uppercased.
    total_amount : float
        ``total_price``, else ``total``, else ``0``.
    created_at : datetime or None
        Order creation time.
    chef_name : str or None
        Name of the preparing chef/merchant.
    items_summary : str
        ``"2x Paneer Roll, 1x Lassi"`` style summary.
    customer_coordinates : tuple of float or None
        ``(latitude, longitude)`` of the delivery address.
    raw : dict
        Original payload.
    """

    id: str
    delivery_status: DeliveryStatus = DeliveryStatus.UNKNOWN
    last_updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    customer_name: str = DEFAULT_CUSTOMER_LABEL
    order_number: str = "N/A"
    total_amount: float = 0.0
    created_at: datetime | None = None
    chef_name: str | None = None
    items_summary: str = ""
    customer_coordinates: tuple[float, float] | None = None

    @classmethod
    def _from_payload(cls, values: dict[str, Any]) -> dict[str, Any]:
        order_id = safe_str(first_meaningful(values.get("_id"), values.get("id"))) or ""
        status_value = first_meaningful(values.get("delivery_status"), values.get("status"))
        derived: dict[str, Any] = {
            "id": order_id,
            "delivery_status": DeliveryStatus(str(status_value)) if status_value else DeliveryStatus.UNKNOWN,
            "customer_name": _customer_label(values),
            "order_number": order_id[-5:].upper() if order_id else "N/A",
            "total_amount": safe_float(first_meaningful(values.get("total_price"), values.get("total"))) or 0.0,
            "created_at": parse_timestamp(values.get("created_at")),
            "chef_name": safe_str(nested_get(values, "chef", "name")),
            "items_summary": _items_summary(values.get("items")),
            "customer_coordinates": _customer_coordinates(values),
        }
        updated_at = parse_timestamp(values.get("updated_at"))
        if updated_at is not None:
            derived["last_updated_at"] = updated_at
        # Explicit field values (tests, model_copy round-trips) win over derived ones.
        for name in _DERIVED_ONLY_FIELDS:
            if name in values:
                derived[name] = values[name]
        return derived

    @property
    def is_terminal(self) -> bool:
        return self.delivery_status.is_terminal

    def with_status(self, status: DeliveryStatus, *, at: datetime | None = None) -> Order:
        """Return a copy carrying *status*, stamped with *at* (default now)."""
        return self.model_copy(
            update={
                "delivery_status": status,
                "last_updated_at": at or datetime.now(UTC),
            }
        )
