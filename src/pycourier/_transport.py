"""HTTP transport with bearer authentication and error mapping."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pycourier._constants import USER_AGENT
from pycourier._redact import redact_for_log
from pycourier.config import CourierConfig
from pycourier.exceptions import CourierAuthenticationError, CourierNetworkError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        json_body: Mapping[str, Any] | None = None,
    ) -> Any: ...


def _error_detail(text: str) -> str:
    """Best-effort extraction of the server's error message."""
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return text[:200]
    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return text[:200]


class HttpTransport:
    """JSON-over-HTTP transport bound to the configured base URL."""

    def __init__(self, config: CourierConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        token: str | None = None,
        json_body: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises
        ------
        CourierAuthenticationError
            On HTTP 401.
        CourierNetworkError
            On connection failures, timeouts, other non-2xx statuses,
            or a body that is not JSON.
        """
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        if token:
            headers["authorization"] = f"Bearer {token}"

        url = f"{self._config.base_url.rstrip('/')}{endpoint}"
        _logger.debug("%s %s body=%s", method, url, redact_for_log(json_body))

        try:
            async with self._http.request(
                method,
                url,
                json=dict(json_body) if json_body is not None else None,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise CourierNetworkError(f"Request to {endpoint} failed: {exc}", endpoint=endpoint) from exc
        except asyncio.TimeoutError as exc:
            raise CourierNetworkError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc

        if status == 401:
            raise CourierAuthenticationError(
                f"HTTP 401 from {endpoint}: {_error_detail(text)}",
                status_code=status,
                endpoint=endpoint,
            )
        if not 200 <= status < 300:
            raise CourierNetworkError(
                f"HTTP {status} from {endpoint}: {_error_detail(text)}",
                status_code=status,
                endpoint=endpoint,
            )

        if not text.strip():
            return {}
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CourierNetworkError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                status_code=status,
                endpoint=endpoint,
            ) from exc

        _logger.debug("%s %s -> %s %s", method, endpoint, status, redact_for_log(result))
        return result
