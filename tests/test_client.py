from __future__ import annotations

import aiohttp
import pytest

from pycourier.client import CourierClient
from pycourier.config import CourierConfig
from pycourier.credentials import MemoryCredentialStore
from pycourier.exceptions import CourierError


def test_client_requires_context_manager() -> None:
    client = CourierClient(CourierConfig())

    with pytest.raises(CourierError):
        _ = client.coordinator
    assert client.is_online is False


@pytest.mark.asyncio
async def test_client_owns_http_session() -> None:
    client = CourierClient(CourierConfig(), store=MemoryCredentialStore())

    async with client:
        http = client._http_session  # type: ignore[attr-defined]
        assert isinstance(http, aiohttp.ClientSession)
        assert client.session is None
        assert await client.restore() is None
        assert client.coordinator.snapshot.ongoing == ()

    assert http.closed
    assert client._manager is None  # type: ignore[attr-defined]


@pytest.mark.asyncio
async def test_client_leaves_external_http_session_open() -> None:
    async with aiohttp.ClientSession() as http:
        async with CourierClient(CourierConfig(), session=http) as client:
            assert client.lifecycle.session is None
        assert not http.closed
