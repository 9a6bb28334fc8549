"""Shared helpers for endpoint modules."""

from __future__ import annotations

from typing import Any

from pycourier.exceptions import CourierAuthMissingError, CourierNetworkError
from pycourier.session import Session


def require_session(session: Session | None, operation: str) -> Session:
    """Return *session* or fail fast before any network call."""
    if session is None:
        raise CourierAuthMissingError(f"{operation} requires an active session")
    return session


def ensure_object(payload: Any, endpoint: str) -> dict[str, Any]:
    """Validate that a decoded response body is a JSON object."""
    if not isinstance(payload, dict):
        raise CourierNetworkError(
            f"Expected a JSON object from {endpoint}, got {type(payload).__name__}",
            endpoint=endpoint,
        )
    return payload
