"""Data models for dispatch backend payloads and realtime messages."""

from pycourier.models._base import CourierBaseModel
from pycourier.models.location import TelemetrySample
from pycourier.models.login import LoginResult
from pycourier.models.messages import (
    ORDER_EVENT_TYPES,
    ChannelMessage,
    MessageType,
    OrderDecision,
    order_response_message,
    ping_message,
)
from pycourier.models.order import TERMINAL_STATUSES, DeliveryStatus, Order
from pycourier.models.profile import DriverProfile

__all__ = [
    "ORDER_EVENT_TYPES",
    "TERMINAL_STATUSES",
    "ChannelMessage",
    "CourierBaseModel",
    "DeliveryStatus",
    "DriverProfile",
    "LoginResult",
    "MessageType",
    "Order",
    "OrderDecision",
    "TelemetrySample",
    "order_response_message",
    "ping_message",
]
