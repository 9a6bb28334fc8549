from __future__ import annotations

from datetime import UTC, datetime

from pycourier.ingestion.normalize import first_meaningful, nested_get, parse_timestamp, safe_float, safe_str


def test_safe_float_rejects_bools_blanks_and_nan() -> None:
    assert safe_float(True) is None
    assert safe_float("") is None
    assert safe_float("nan") is None
    assert safe_float("12.5") == 12.5
    assert safe_float(3) == 3.0


def test_safe_str_strips_and_drops_empty() -> None:
    assert safe_str("  Ravi ") == "Ravi"
    assert safe_str("   ") is None
    assert safe_str(None) is None
    assert safe_str(42) == "42"


def test_nested_get_returns_none_on_any_miss() -> None:
    data = {"address": {"label": "Home"}, "user": "not-a-dict"}

    assert nested_get(data, "address", "label") == "Home"
    assert nested_get(data, "address", "coordinates") is None
    assert nested_get(data, "user", "name") is None


def test_first_meaningful_skips_zero_and_empty() -> None:
    assert first_meaningful(None, "", 0, 99) == 99
    assert first_meaningful(None, "") is None
    assert first_meaningful("a", "b") == "a"


def test_parse_timestamp_iso_with_z() -> None:
    assert parse_timestamp("2026-02-12T20:34:07Z") == datetime(2026, 2, 12, 20, 34, 7, tzinfo=UTC)


def test_parse_timestamp_naive_iso_assumed_utc() -> None:
    assert parse_timestamp("2026-02-12T20:34:07") == datetime(2026, 2, 12, 20, 34, 7, tzinfo=UTC)


def test_parse_timestamp_epoch_seconds_and_ms() -> None:
    expected = datetime.fromtimestamp(1_770_928_447, tz=UTC)
    assert parse_timestamp(1_770_928_447) == expected
    assert parse_timestamp(1_770_928_447_000) == expected
    assert parse_timestamp("1770928447") == expected


def test_parse_timestamp_rejects_garbage() -> None:
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(0) is None
    assert parse_timestamp(None) is None


def test_safe_float_rejects_infinity() -> None:
    assert safe_float("Infinity") is None
    assert safe_float(float("-inf")) is None


def test_parse_timestamp_out_of_range_is_none() -> None:
    assert parse_timestamp(1e300) is None
    assert parse_timestamp("1e300") is None
    assert parse_timestamp("Infinity") is None
