from __future__ import annotations

import pytest

from pycourier.exceptions import CourierMalformedMessageError
from pycourier.models.messages import ChannelMessage, MessageType, OrderDecision, order_response_message, ping_message


def test_parse_order_request() -> None:
    message = ChannelMessage.from_frame(b'{"type": "order_request", "order_id": 123, "eta": 5}')

    assert message.kind == MessageType.ORDER_REQUEST
    assert message.order_id == "123"
    assert message.raw["eta"] == 5


def test_unknown_type_survives_parsing() -> None:
    message = ChannelMessage.from_frame('{"type": "chat"}')

    assert message.type == "chat"
    assert message.kind is None
    assert message.order_id is None


@pytest.mark.parametrize("frame", ["", "nope", "[]", '"order_request"', '{"type": 5}', '{"type": ""}'])
def test_malformed_frames_raise(frame: str) -> None:
    with pytest.raises(CourierMalformedMessageError):
        ChannelMessage.from_frame(frame)


def test_outbound_messages() -> None:
    assert ping_message() == {"type": "ping"}
    assert order_response_message("order-1", OrderDecision.ACCEPT) == {
        "type": "order_response",
        "order_id": "order-1",
        "response": "accept",
    }
