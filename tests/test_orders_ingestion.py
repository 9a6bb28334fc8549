"""Tests for order-list ingestion across both response shapes."""

from __future__ import annotations

import pytest

from pycourier.exceptions import CourierNetworkError
from pycourier.ingestion.orders import parse_order_detail, parse_orders_response
from pycourier.models.order import DeliveryStatus

_ONGOING = {"_id": "abc12345", "delivery_status": "order_accepted", "user": {"name": "Ravi"}}
_PICKED = {"_id": "def67890", "status": "picked"}
_DONE = {"_id": "ghi11111", "delivery_status": "delivered"}


def _ids(orders: tuple) -> list[str]:
    return [o.id for o in orders]


def test_partitioned_and_flat_shapes_normalize_identically() -> None:
    partitioned = parse_orders_response(
        {"status": "success", "ongoing_orders": [_ONGOING, _PICKED], "past_orders": [_DONE]}
    )
    flat = parse_orders_response({"orders": [_ONGOING, _PICKED, _DONE]})

    assert _ids(partitioned.ongoing) == _ids(flat.ongoing) == ["abc12345", "def67890"]
    assert _ids(partitioned.history) == _ids(flat.history) == ["ghi11111"]
    assert partitioned.ongoing[1].delivery_status == DeliveryStatus.PICKED_UP


def test_bare_list_is_partitioned_by_status() -> None:
    page = parse_orders_response([_ONGOING, {"_id": "zzz99999", "status": "cancelled"}])

    assert _ids(page.ongoing) == ["abc12345"]
    assert _ids(page.history) == ["zzz99999"]


def test_past_orders_always_land_in_history() -> None:
    stale = {"_id": "old00001", "delivery_status": "picked_up"}
    page = parse_orders_response({"ongoing_orders": [], "past_orders": [stale]})

    assert page.ongoing == ()
    assert _ids(page.history) == ["old00001"]


def test_terminal_entry_in_ongoing_list_moves_to_history() -> None:
    page = parse_orders_response({"ongoing_orders": [_ONGOING, _DONE], "past_orders": []})

    assert _ids(page.ongoing) == ["abc12345"]
    assert _ids(page.history) == ["ghi11111"]


def test_duplicate_id_kept_in_history_only() -> None:
    page = parse_orders_response({"ongoing_orders": [_ONGOING], "past_orders": [dict(_ONGOING, delivery_status="delivered")]})

    assert page.ongoing == ()
    assert _ids(page.history) == ["abc12345"]


def test_status_only_response_is_empty_page() -> None:
    page = parse_orders_response({"status": "error"})

    assert page.ongoing == ()
    assert page.history == ()
    assert page.order_ids == frozenset()


def test_invalid_entries_are_skipped() -> None:
    page = parse_orders_response({"orders": [_ONGOING, "garbage", {"status": "assigned"}, None]})

    assert _ids(page.ongoing) == ["abc12345"]


def test_non_object_payload_raises() -> None:
    with pytest.raises(CourierNetworkError):
        parse_orders_response("<html>")


def test_order_detail_accepts_wrapped_and_bare_shapes() -> None:
    wrapped = parse_order_detail({"status": "success", "order": _PICKED})
    bare = parse_order_detail(_PICKED)

    assert wrapped.id == bare.id == "def67890"
    assert wrapped.delivery_status == DeliveryStatus.PICKED_UP


def test_order_detail_without_order_raises() -> None:
    with pytest.raises(CourierNetworkError):
        parse_order_detail({"status": "error", "message": "not found"})
