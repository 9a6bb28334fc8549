"""pycourier - Async session and order-coordination core for delivery drivers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycourier")
except PackageNotFoundError:
    __version__ = "0+local"
from pycourier.channel import ChannelEvent, ChannelEventKind, ConnectionState, RealtimeChannel
from pycourier.client import CourierClient
from pycourier.config import CourierConfig, LocationSettings
from pycourier.coordinator import MapLauncher, MessageSender, OrderCoordinator, OrderRequestPrompt
from pycourier.credentials import CredentialStore, JsonFileCredentialStore, MemoryCredentialStore
from pycourier.exceptions import (
    CourierAuthenticationError,
    CourierAuthMissingError,
    CourierChannelError,
    CourierConfigError,
    CourierError,
    CourierInvalidTransitionError,
    CourierMalformedMessageError,
    CourierNetworkError,
    CourierStateError,
    CourierTransitionInProgressError,
)
from pycourier.gateway import RestGateway
from pycourier.lifecycle import AppState, SessionLifecycleManager
from pycourier.models import (
    ChannelMessage,
    DeliveryStatus,
    DriverProfile,
    LoginResult,
    MessageType,
    Order,
    OrderDecision,
    TelemetrySample,
)
from pycourier.session import DriverRole, Session
from pycourier.state.events import OrdersSnapshot
from pycourier.telemetry import LocationProvider, LocationTelemetryPublisher

__all__ = [
    "__version__",
    "AppState",
    "ChannelEvent",
    "ChannelEventKind",
    "ChannelMessage",
    "ConnectionState",
    "CourierAuthMissingError",
    "CourierAuthenticationError",
    "CourierChannelError",
    "CourierClient",
    "CourierConfig",
    "CourierConfigError",
    "CourierError",
    "CourierInvalidTransitionError",
    "CourierMalformedMessageError",
    "CourierNetworkError",
    "CourierStateError",
    "CourierTransitionInProgressError",
    "CredentialStore",
    "DeliveryStatus",
    "DriverProfile",
    "DriverRole",
    "JsonFileCredentialStore",
    "LocationProvider",
    "LocationSettings",
    "LocationTelemetryPublisher",
    "LoginResult",
    "MapLauncher",
    "MemoryCredentialStore",
    "MessageSender",
    "MessageType",
    "Order",
    "OrderCoordinator",
    "OrderDecision",
    "OrderRequestPrompt",
    "OrdersSnapshot",
    "RealtimeChannel",
    "RestGateway",
    "Session",
    "SessionLifecycleManager",
    "TelemetrySample",
]
