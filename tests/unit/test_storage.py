"""
Unit tests for the in-memory and JSON file key/value stores.
"""

import json
import stat
from pathlib import Path

import pytest

from src.adapters.storage.file import JsonFileKeyValueStore
from src.adapters.storage.memory import InMemoryKeyValueStore
from src.domain.custody import KeyCustody
from tests.conftest import TEST_PRIVATE_KEY


@pytest.fixture(params=["memory", "file"])
def kv_store(request: pytest.FixtureRequest, tmp_path: Path):
    if request.param == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(tmp_path / "credential.json")


class TestKeyValueStoreContract:
    """Behaviour shared by every KeyValueStore implementation."""

    def test_missing_key_returns_none(self, kv_store) -> None:
        assert kv_store.get("wallet_private_key") is None

    def test_set_then_get(self, kv_store) -> None:
        kv_store.set("wallet_private_key", "0xabc")

        assert kv_store.get("wallet_private_key") == "0xabc"

    def test_set_overwrites(self, kv_store) -> None:
        kv_store.set("wallet_private_key", "0xabc")
        kv_store.set("wallet_private_key", "0xdef")

        assert kv_store.get("wallet_private_key") == "0xdef"

    def test_remove_is_idempotent(self, kv_store) -> None:
        kv_store.set("wallet_private_key", "0xabc")

        kv_store.remove("wallet_private_key")
        kv_store.remove("wallet_private_key")

        assert kv_store.get("wallet_private_key") is None

    def test_keys_are_independent(self, kv_store) -> None:
        kv_store.set("a", "1")
        kv_store.set("b", "2")
        kv_store.remove("a")

        assert kv_store.get("b") == "2"


class TestJsonFileKeyValueStore:
    """File-specific behaviour."""

    def test_file_is_owner_only(self, tmp_path: Path) -> None:
        path = tmp_path / "credential.json"
        JsonFileKeyValueStore(path).set("wallet_private_key", "0xabc")

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "credential.json"
        JsonFileKeyValueStore(path).set("k", "v")

        assert json.loads(path.read_text()) == {"k": "v"}

    def test_no_temporary_file_left_behind(self, tmp_path: Path) -> None:
        path = tmp_path / "credential.json"
        JsonFileKeyValueStore(path).set("k", "v")

        assert [p.name for p in tmp_path.iterdir()] == ["credential.json"]

    def test_wallet_survives_new_store_instance(self, tmp_path: Path) -> None:
        path = tmp_path / "credential.json"
        first = KeyCustody(JsonFileKeyValueStore(path))
        first.persist(first.import_key(TEST_PRIVATE_KEY))

        loaded = KeyCustody(JsonFileKeyValueStore(path)).load()

        assert loaded is not None
        assert loaded.private_key == f"0x{TEST_PRIVATE_KEY}"
