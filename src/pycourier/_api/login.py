"""Login endpoint.

Endpoint:
  - POST /delivery/users
"""

from __future__ import annotations

import logging
import re
from typing import Any

from pydantic import ValidationError

from pycourier._api._common import ensure_object
from pycourier._constants import LOGIN_ENDPOINT
from pycourier._redact import redact_for_log
from pycourier._transport import Transport
from pycourier.exceptions import CourierAuthenticationError
from pycourier.models.login import LoginResult

_logger = logging.getLogger(__name__)

_PHONE_RE = re.compile(r"^\d{10}$")


def build_login_request(phone_number: str) -> dict[str, str]:
    """Build the login body.

    Raises :class:`ValueError` unless *phone_number* is exactly ten digits.
    """
    number = phone_number.strip()
    if not _PHONE_RE.match(number):
        raise ValueError("phone number must be exactly 10 digits")
    return {"phone_number": number}


def parse_login_response(response: dict[str, Any]) -> LoginResult:
    """Parse a login response.

    Raises
    ------
    CourierAuthenticationError
        If the response does not carry both ``id`` and ``token``.
    """
    _logger.debug("Login response parsed=%s", redact_for_log(response))
    if not response.get("token") or not (response.get("id") or response.get("_id")):
        message = response.get("message") or "Unable to login"
        raise CourierAuthenticationError(f"Login failed: {message}", endpoint=LOGIN_ENDPOINT)
    try:
        return LoginResult.model_validate(response)
    except ValidationError as exc:
        raise CourierAuthenticationError(
            f"Login response malformed: {exc.error_count()} validation error(s)",
            endpoint=LOGIN_ENDPOINT,
        ) from exc


async def login(transport: Transport, phone_number: str) -> LoginResult:
    """Log in by phone number."""
    body = build_login_request(phone_number)
    response = await transport.request("POST", LOGIN_ENDPOINT, json_body=body)
    return parse_login_response(ensure_object(response, LOGIN_ENDPOINT))
