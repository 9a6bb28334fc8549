from __future__ import annotations

import json
from pathlib import Path

import pytest

from pycourier.credentials import (
    JsonFileCredentialStore,
    MemoryCredentialStore,
    clear_session,
    load_session,
    save_profile,
    save_session,
)
from pycourier.models.profile import DriverProfile
from pycourier.session import DriverRole, Session


@pytest.mark.asyncio
async def test_session_round_trip_through_memory_store() -> None:
    store = MemoryCredentialStore()
    profile = DriverProfile.model_validate({"_id": "d-1", "name": "Arjun", "vehicle": "bike"})
    session = Session(driver_id="d-1", bearer_token="tok", profile=profile)

    await save_session(store, session)
    loaded = await load_session(store)

    assert loaded is not None
    assert loaded.driver_id == "d-1"
    assert loaded.bearer_token == "tok"
    assert loaded.role == DriverRole.DELIVERY
    assert loaded.profile is not None
    assert loaded.profile.name == "Arjun"
    assert loaded.profile.raw["vehicle"] == "bike"


@pytest.mark.asyncio
async def test_load_session_requires_token_and_driver_id() -> None:
    assert await load_session(MemoryCredentialStore({"@delivery_token": "tok"})) is None
    assert await load_session(MemoryCredentialStore({"@delivery_id": "d-1"})) is None


@pytest.mark.asyncio
async def test_unreadable_profile_is_dropped() -> None:
    store = MemoryCredentialStore(
        {"@delivery_token": "tok", "@delivery_id": "d-1", "@delivery_profile": "{not json"}
    )

    loaded = await load_session(store)

    assert loaded is not None
    assert loaded.profile is None


@pytest.mark.asyncio
async def test_clear_session_removes_all_keys_only() -> None:
    store = MemoryCredentialStore({"unrelated": "keep"})
    await save_session(store, Session(driver_id="d-1", bearer_token="tok"))
    await save_profile(store, DriverProfile.model_validate({"_id": "d-1"}))

    await clear_session(store)

    assert store.as_dict() == {"unrelated": "keep"}


@pytest.mark.asyncio
async def test_json_file_store_persists_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "credentials.json"
    first = JsonFileCredentialStore(path)
    await save_session(first, Session(driver_id="d-1", bearer_token="tok", role=DriverRole.DELIVERY))

    second = JsonFileCredentialStore(path)
    loaded = await load_session(second)

    assert loaded is not None
    assert loaded.bearer_token == "tok"
    assert json.loads(path.read_text(encoding="utf-8"))["@delivery_id"] == "d-1"

    await second.remove_item("@delivery_token")
    assert await first.get_item("@delivery_token") is None
    assert await first.get_item("@delivery_id") == "d-1"


@pytest.mark.asyncio
async def test_json_file_store_treats_corrupt_file_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("[oops", encoding="utf-8")
    store = JsonFileCredentialStore(path)

    assert await store.get_item("@delivery_token") is None
    await store.set_item("@delivery_token", "tok")
    assert await store.get_item("@delivery_token") == "tok"
