"""Realtime channel message models.

Inbound frames are JSON objects with a ``type`` field. Outbound frames
are built with :func:`ping_message` and :func:`order_response_message`.
"""

from __future__ import annotations

import enum
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pycourier.exceptions import CourierMalformedMessageError
from pycourier.ingestion.normalize import safe_str


class MessageType(enum.StrEnum):
    """``type`` values the dispatch server pushes."""

    ORDER_REQUEST = "order_request"
    ORDER_ACCEPTED = "order_accepted"
    ORDER_STATUS = "order_status"
    ORDER_UPDATE = "order_update"
    PONG = "pong"


#: Message types that invalidate the coordinator's order view.
ORDER_EVENT_TYPES: frozenset[MessageType] = frozenset(
    {
        MessageType.ORDER_REQUEST,
        MessageType.ORDER_ACCEPTED,
        MessageType.ORDER_STATUS,
        MessageType.ORDER_UPDATE,
    }
)


class OrderDecision(enum.StrEnum):
    """Driver response to an incoming order request."""

    ACCEPT = "accept"
    REJECT = "reject"


class ChannelMessage(BaseModel):
    """A parsed inbound realtime frame.

    ``type`` is kept as the raw string so unknown message types survive
    parsing; use :attr:`kind` for the typed view.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    order_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @field_validator("order_id", mode="before")
    @classmethod
    def _coerce_order_id(cls, value: Any) -> str | None:
        return safe_str(value)

    @property
    def kind(self) -> MessageType | None:
        try:
            return MessageType(self.type)
        except ValueError:
            return None

    @classmethod
    def from_frame(cls, frame: str | bytes) -> ChannelMessage:
        """Parse a text frame.

        Raises
        ------
        CourierMalformedMessageError
            If the frame is not a JSON object with a string ``type``.
        """
        text = frame.decode("utf-8", errors="replace") if isinstance(frame, bytes) else frame
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CourierMalformedMessageError(f"Frame is not JSON: {exc}", frame=text[:200]) from exc
        if not isinstance(data, dict):
            raise CourierMalformedMessageError("Frame is not a JSON object", frame=text[:200])
        message_type = data.get("type")
        if not isinstance(message_type, str) or not message_type:
            raise CourierMalformedMessageError("Frame has no message type", frame=text[:200])
        return cls(type=message_type, order_id=data.get("order_id"), raw=data)


def ping_message() -> dict[str, str]:
    return {"type": "ping"}


def order_response_message(order_id: str, decision: OrderDecision) -> dict[str, str]:
    return {"type": "order_response", "order_id": order_id, "response": decision.value}
