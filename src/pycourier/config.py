"""Client configuration for pycourier."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pycourier._constants import BASE_URL, LOCATION_ENDPOINT, ORDERS_ENDPOINT
from pycourier.exceptions import CourierConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(env_key: str, value: str, cast: type[float] | type[int]) -> float | int:
    try:
        return cast(value)
    except ValueError as exc:
        raise CourierConfigError(f"{env_key} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class LocationSettings:
    """Sampling options handed to the platform location watch.

    These mirror the options a mobile geolocation service accepts and
    are not hard contracts: the platform may deliver samples more or
    less often.
    """

    distance_filter: float = 10.0
    interval: float = 5.0
    fastest_interval: float = 3.0
    high_accuracy: bool = True


@dataclasses.dataclass(frozen=True)
class CourierConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        REST API base URL (including the ``/api`` prefix).
    ws_url : str or None
        Realtime channel base URL. Derived from *base_url* when ``None``
        (``http`` becomes ``ws``, ``https`` becomes ``wss``).
    orders_endpoint : str
        Endpoint used to fetch the driver's ongoing and past orders.
    location_endpoint : str
        Endpoint receiving location telemetry samples.
    request_timeout : float
        Total per-request timeout in seconds for REST calls.
    reconnect_enabled : bool
        Reconnect the realtime channel after abnormal closes.
    reconnect_delay : float
        Seconds to wait before a reconnect attempt.
    location : LocationSettings
        Location watch sampling options.
    send_offline_on_stop : bool
        Post a final ``status="offline"`` location update when telemetry
        stops.
    max_auth_failures : int
        Consecutive HTTP 401 responses from telemetry calls after which
        the session is treated as invalid.
    """

    base_url: str = BASE_URL
    ws_url: str | None = None
    orders_endpoint: str = ORDERS_ENDPOINT
    location_endpoint: str = LOCATION_ENDPOINT
    request_timeout: float = 15.0
    reconnect_enabled: bool = True
    reconnect_delay: float = 5.0
    location: LocationSettings = dataclasses.field(default_factory=LocationSettings)
    send_offline_on_stop: bool = False
    max_auth_failures: int = 2

    def __post_init__(self) -> None:
        if not self.base_url:
            raise CourierConfigError("base_url must be non-empty")
        if self.request_timeout <= 0:
            raise CourierConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.reconnect_delay < 0:
            raise CourierConfigError(f"reconnect_delay must not be negative, got {self.reconnect_delay}")
        if self.max_auth_failures < 1:
            raise CourierConfigError(f"max_auth_failures must be at least 1, got {self.max_auth_failures}")

    @property
    def channel_base_url(self) -> str:
        """Base URL of the realtime channel endpoint."""
        if self.ws_url:
            return self.ws_url.rstrip("/")
        base = self.base_url.rstrip("/")
        if base.startswith("https://"):
            return "wss://" + base[len("https://") :]
        if base.startswith("http://"):
            return "ws://" + base[len("http://") :]
        return base

    @classmethod
    def from_env(cls, **overrides: Any) -> CourierConfig:
        """Create configuration from environment variables.

        Reads optional ``COURIER_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        CourierConfig
            Populated configuration.
        """
        env = os.environ

        location_kwargs: dict[str, Any] = {}
        _ENV_LOCATION_MAP = {
            "COURIER_LOCATION_DISTANCE_FILTER": "distance_filter",
            "COURIER_LOCATION_INTERVAL": "interval",
            "COURIER_LOCATION_FASTEST_INTERVAL": "fastest_interval",
        }
        for env_key, field_name in _ENV_LOCATION_MAP.items():
            val = env.get(env_key)
            if val is not None:
                location_kwargs[field_name] = _env_number(env_key, val, float)
        accuracy_env = env.get("COURIER_LOCATION_HIGH_ACCURACY")
        if accuracy_env is not None:
            location_kwargs["high_accuracy"] = _env_bool(accuracy_env, True)

        # Allow overriding location fields via a nested dict
        location_overrides = overrides.pop("location", None)
        if isinstance(location_overrides, dict):
            location_kwargs.update(location_overrides)
        elif isinstance(location_overrides, LocationSettings):
            location_kwargs = dataclasses.asdict(location_overrides)

        location = LocationSettings(**location_kwargs) if location_kwargs else LocationSettings()

        _ENV_CONFIG_MAP = {
            "COURIER_BASE_URL": "base_url",
            "COURIER_WS_URL": "ws_url",
            "COURIER_ORDERS_ENDPOINT": "orders_endpoint",
            "COURIER_LOCATION_ENDPOINT": "location_endpoint",
        }
        config_kwargs: dict[str, Any] = {"location": location}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[float] | type[int]]] = {
            "COURIER_REQUEST_TIMEOUT": ("request_timeout", float),
            "COURIER_RECONNECT_DELAY": ("reconnect_delay", float),
            "COURIER_MAX_AUTH_FAILURES": ("max_auth_failures", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val, cast)

        if "reconnect_enabled" not in overrides:
            config_kwargs["reconnect_enabled"] = _env_bool(env.get("COURIER_RECONNECT_ENABLED"), True)

        if "send_offline_on_stop" not in overrides:
            config_kwargs["send_offline_on_stop"] = _env_bool(
                env.get("COURIER_SEND_OFFLINE_ON_STOP"),
                False,
            )

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
