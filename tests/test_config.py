from __future__ import annotations

import pytest

from pycourier.config import CourierConfig, LocationSettings
from pycourier.exceptions import CourierConfigError


def test_defaults() -> None:
    config = CourierConfig()

    assert config.base_url == "http://3.110.207.229/api"
    assert config.orders_endpoint == "/deliveryboy/orders"
    assert config.location_endpoint == "/delivery/update-location"
    assert config.request_timeout == 15.0
    assert config.reconnect_delay == 5.0
    assert config.max_auth_failures == 2
    assert config.location == LocationSettings(10.0, 5.0, 3.0, True)
    assert config.channel_base_url == "ws://3.110.207.229/api"


def test_channel_url_derivation() -> None:
    assert CourierConfig(base_url="https://api.example.test/api/").channel_base_url == "wss://api.example.test/api"
    assert CourierConfig(ws_url="ws://push.example.test/").channel_base_url == "ws://push.example.test"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"base_url": ""},
        {"request_timeout": 0},
        {"reconnect_delay": -1},
        {"max_auth_failures": 0},
    ],
)
def test_invalid_values_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(CourierConfigError):
        CourierConfig(**kwargs)  # type: ignore[arg-type]


def test_from_env_reads_courier_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COURIER_BASE_URL", "https://dispatch.example.test/api")
    monkeypatch.setenv("COURIER_ORDERS_ENDPOINT", "/orders/delivery/me")
    monkeypatch.setenv("COURIER_LOCATION_ENDPOINT", "/deliveryupdate")
    monkeypatch.setenv("COURIER_REQUEST_TIMEOUT", "7.5")
    monkeypatch.setenv("COURIER_MAX_AUTH_FAILURES", "3")
    monkeypatch.setenv("COURIER_RECONNECT_ENABLED", "no")
    monkeypatch.setenv("COURIER_SEND_OFFLINE_ON_STOP", "true")
    monkeypatch.setenv("COURIER_LOCATION_DISTANCE_FILTER", "25")

    config = CourierConfig.from_env()

    assert config.base_url == "https://dispatch.example.test/api"
    assert config.orders_endpoint == "/orders/delivery/me"
    assert config.location_endpoint == "/deliveryupdate"
    assert config.request_timeout == 7.5
    assert config.max_auth_failures == 3
    assert config.reconnect_enabled is False
    assert config.send_offline_on_stop is True
    assert config.location.distance_filter == 25.0
    assert config.location.interval == 5.0


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COURIER_RECONNECT_DELAY", "30")

    config = CourierConfig.from_env(reconnect_delay=1.0, location={"interval": 2.0})

    assert config.reconnect_delay == 1.0
    assert config.location.interval == 2.0


def test_from_env_rejects_non_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COURIER_REQUEST_TIMEOUT", "soon")

    with pytest.raises(CourierConfigError):
        CourierConfig.from_env()
