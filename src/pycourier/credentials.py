"""Credential persistence.

The host application supplies a :class:`CredentialStore`; two stores
ship with the library. Session helpers map a :class:`Session` onto the
``@delivery_*`` keys.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError

from pycourier._constants import (
    STORAGE_DRIVER_ID_KEY,
    STORAGE_KEYS,
    STORAGE_PROFILE_KEY,
    STORAGE_ROLE_KEY,
    STORAGE_TOKEN_KEY,
)
from pycourier.models.profile import DriverProfile
from pycourier.session import DriverRole, Session

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class CredentialStore(Protocol):
    """Async opaque key-value persistence."""

    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def remove_item(self, key: str) -> None: ...

    async def multi_remove(self, keys: Iterable[str]) -> None: ...


class MemoryCredentialStore:
    """Process-local store; contents are lost on exit."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    async def multi_remove(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._items.pop(key, None)

    def as_dict(self) -> dict[str, str]:
        return dict(self._items)


class JsonFileCredentialStore:
    """Store backed by a single JSON object file.

    File IO runs in the default executor. Writes go to a sibling temp
    file which then replaces the target.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Credential file %s is corrupt; treating as empty", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write(self, items: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(items, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp, self._path)

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        return await asyncio.get_running_loop().run_in_executor(None, func, *args)

    async def get_item(self, key: str) -> str | None:
        async with self._lock:
            items = await self._run(self._read)
        return items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            items = await self._run(self._read)
            items[key] = value
            await self._run(self._write, items)

    async def remove_item(self, key: str) -> None:
        await self.multi_remove([key])

    async def multi_remove(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        async with self._lock:
            items = await self._run(self._read)
            if not any(k in items for k in keys):
                return
            for key in keys:
                items.pop(key, None)
            await self._run(self._write, items)


# ----------------------------------------------------------------------
# Session mapping
# ----------------------------------------------------------------------


async def load_session(store: CredentialStore) -> Session | None:
    """Rebuild the saved session, or ``None`` if token or driver id is missing."""
    token = await store.get_item(STORAGE_TOKEN_KEY)
    driver_id = await store.get_item(STORAGE_DRIVER_ID_KEY)
    if not token or not driver_id:
        return None
    role = await store.get_item(STORAGE_ROLE_KEY)
    profile = await load_profile(store)
    try:
        return Session(
            driver_id=driver_id,
            bearer_token=token,
            role=DriverRole(role) if role else DriverRole.DELIVERY,
            profile=profile,
        )
    except ValidationError:
        _logger.warning("Saved session is invalid; ignoring it", exc_info=True)
        return None


async def load_profile(store: CredentialStore) -> DriverProfile | None:
    blob = await store.get_item(STORAGE_PROFILE_KEY)
    if not blob:
        return None
    try:
        return DriverProfile.model_validate(json.loads(blob))
    except (json.JSONDecodeError, ValidationError):
        _logger.warning("Saved driver profile is unreadable; dropping it")
        return None


async def save_session(store: CredentialStore, session: Session) -> None:
    await store.set_item(STORAGE_TOKEN_KEY, session.bearer_token)
    await store.set_item(STORAGE_DRIVER_ID_KEY, session.driver_id)
    await store.set_item(STORAGE_ROLE_KEY, session.role.value)
    if session.profile is not None:
        await save_profile(store, session.profile)


async def save_profile(store: CredentialStore, profile: DriverProfile) -> None:
    blob = profile.raw or profile.model_dump(mode="json", exclude={"raw"})
    await store.set_item(STORAGE_PROFILE_KEY, json.dumps(blob))


async def clear_session(store: CredentialStore) -> None:
    await store.multi_remove(STORAGE_KEYS)
