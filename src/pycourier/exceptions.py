"""Custom exception hierarchy for pycourier."""

from __future__ import annotations


class CourierError(Exception):
    """Base exception for all pycourier errors."""


class CourierConfigError(CourierError):
    """Invalid or missing configuration."""


class CourierAuthMissingError(CourierError):
    """An operation that needs a session was attempted without one.

    Raised before any network call is made.
    """


class CourierStateError(CourierError):
    """Local order-state validation failure; never reaches the network."""

    def __init__(
        self,
        message: str,
        *,
        order_id: str = "",
        current: str = "",
        requested: str = "",
    ) -> None:
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(message)


class CourierInvalidTransitionError(CourierStateError):
    """Requested delivery status is not the legal successor of the current one."""


class CourierTransitionInProgressError(CourierStateError):
    """A status transition for the same order is already in flight."""


class CourierNetworkError(CourierError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class CourierAuthenticationError(CourierNetworkError):
    """Login rejected or bearer token refused (HTTP 401)."""


class CourierChannelError(CourierError):
    """Realtime channel failure.

    Transport-level failures are recovered internally by the reconnect
    policy. This is only raised to callers trying to send while the
    channel is not open.
    """


class CourierMalformedMessageError(CourierError):
    """A realtime frame could not be parsed into a message."""

    def __init__(self, message: str, *, frame: str = "") -> None:
        self.frame = frame
        super().__init__(message)
