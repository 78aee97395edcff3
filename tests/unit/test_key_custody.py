"""
Unit tests for KeyCustody.

Tests verify:
- Key generation
- Import normalization (prefix, case, whitespace)
- InvalidKeyFormat classification (charset vs length)
- Single-slot persistence, load and confirmed clear
"""

import re
from unittest.mock import Mock

import pytest
from eth_account import Account

from src.adapters.storage.memory import InMemoryKeyValueStore
from src.domain.custody import KeyCustody
from src.domain.exceptions import ConfirmationRequired, InvalidKeyFormat, InvalidKeyReason
from tests.conftest import TEST_PRIVATE_KEY

EXPECTED_ADDRESS = Account.from_key("0x" + TEST_PRIVATE_KEY).address


class TestGenerate:
    """Tests for fresh key generation."""

    def test_generate_returns_valid_credential(self, custody: KeyCustody) -> None:
        """Generated key is 32 bytes of hex and derives its address."""
        credential = custody.generate()

        assert re.fullmatch(r"0x[0-9a-f]{64}", credential.private_key)
        assert re.fullmatch(r"0x[0-9a-fA-F]{40}", credential.address)
        assert Account.from_key(credential.private_key).address == credential.address

    def test_generated_keys_vary(self, custody: KeyCustody) -> None:
        """Generation is random."""
        keys = {custody.generate().private_key for _ in range(5)}
        assert len(keys) == 5

    def test_generate_does_not_persist(self, custody: KeyCustody, store: InMemoryKeyValueStore) -> None:
        """Generating alone leaves custody and store empty."""
        custody.generate()

        assert custody.active is None
        assert store.get("wallet_private_key") is None

    def test_repr_masks_private_key(self, custody: KeyCustody) -> None:
        """Key material never appears in repr (and therefore in logs)."""
        credential = custody.generate()
        assert credential.private_key not in repr(credential)
        assert credential.private_key[2:] not in repr(credential)


class TestImport:
    """Tests for importing raw private keys."""

    @pytest.mark.parametrize(
        "raw",
        [
            TEST_PRIVATE_KEY,
            "0x" + TEST_PRIVATE_KEY,
            "0X" + TEST_PRIVATE_KEY.upper(),
            "  0x" + TEST_PRIVATE_KEY + "\n",
            TEST_PRIVATE_KEY[:20] + " \t" + TEST_PRIVATE_KEY[20:40] + "\n" + TEST_PRIVATE_KEY[40:],
        ],
    )
    def test_well_formed_keys_import(self, custody: KeyCustody, raw: str) -> None:
        """Prefix, case and whitespace variants yield the same credential."""
        credential = custody.import_key(raw)

        assert credential.address == EXPECTED_ADDRESS
        assert credential.private_key == "0x" + TEST_PRIVATE_KEY

    @pytest.mark.parametrize(
        "raw",
        [
            "g" + TEST_PRIVATE_KEY[1:],
            TEST_PRIVATE_KEY[:-1] + "z",
            "0x" + "xy" * 32,
            "not a key",
        ],
    )
    def test_non_hex_is_charset_error(self, custody: KeyCustody, raw: str) -> None:
        """Non-hex characters fail with reason CHARSET."""
        with pytest.raises(InvalidKeyFormat) as exc_info:
            custody.import_key(raw)
        assert exc_info.value.reason is InvalidKeyReason.CHARSET

    @pytest.mark.parametrize(
        "raw",
        ["", "0x", TEST_PRIVATE_KEY[:-2], TEST_PRIVATE_KEY + "ab", "0x" + TEST_PRIVATE_KEY[:32]],
    )
    def test_wrong_length_is_length_error(self, custody: KeyCustody, raw: str) -> None:
        """Hex input of the wrong size fails with reason LENGTH."""
        with pytest.raises(InvalidKeyFormat) as exc_info:
            custody.import_key(raw)
        assert exc_info.value.reason is InvalidKeyReason.LENGTH

    def test_malformed_key_never_touches_store(self) -> None:
        """Failed import performs no storage calls."""
        store = Mock()
        custody = KeyCustody(store)

        with pytest.raises(InvalidKeyFormat):
            custody.import_key("0x1234")

        store.set.assert_not_called()
        store.remove.assert_not_called()
        assert custody.active is None


class TestPersistence:
    """Tests for persist / load / clear."""

    def test_generate_persist_load_import_round_trip(self, store: InMemoryKeyValueStore) -> None:
        """A persisted generated key loads and re-imports to the same address."""
        custody = KeyCustody(store)
        generated = custody.generate()
        custody.persist(generated)

        loaded = KeyCustody(store).load()

        assert loaded is not None
        assert loaded.address == generated.address
        assert custody.import_key(loaded.private_key).address == generated.address

    def test_persist_activates_credential(self, custody: KeyCustody) -> None:
        credential = custody.generate()
        custody.persist(credential)
        assert custody.active == credential

    def test_persist_overwrites_single_slot(self, custody: KeyCustody, store: InMemoryKeyValueStore) -> None:
        """Only the last persisted credential survives."""
        first = custody.generate()
        second = custody.import_key(TEST_PRIVATE_KEY)
        custody.persist(first)
        custody.persist(second)

        assert store.get("wallet_private_key") == second.private_key
        assert KeyCustody(store).load().address == EXPECTED_ADDRESS

    def test_persist_uses_configured_storage_key(self) -> None:
        store = Mock()
        custody = KeyCustody(store, storage_key="custom_key")
        credential = custody.generate()

        custody.persist(credential)

        store.set.assert_called_once_with("custom_key", credential.private_key)

    def test_load_returns_none_when_empty(self, custody: KeyCustody) -> None:
        assert custody.load() is None
        assert custody.active is None

    def test_load_rejects_corrupt_value(self, store: InMemoryKeyValueStore) -> None:
        store.set("wallet_private_key", "garbage")
        with pytest.raises(InvalidKeyFormat):
            KeyCustody(store).load()

    def test_clear_requires_confirmation(self, custody: KeyCustody, store: InMemoryKeyValueStore) -> None:
        """Unconfirmed clear raises and keeps the key."""
        credential = custody.generate()
        custody.persist(credential)

        with pytest.raises(ConfirmationRequired):
            custody.clear(confirmed=False)

        assert custody.active == credential
        assert store.get("wallet_private_key") == credential.private_key

    def test_clear_erases_key(self, custody: KeyCustody, store: InMemoryKeyValueStore) -> None:
        custody.persist(custody.generate())

        custody.clear(confirmed=True)

        assert custody.active is None
        assert store.get("wallet_private_key") is None
        assert custody.load() is None

    def test_clear_touches_store_once(self) -> None:
        store = Mock()
        custody = KeyCustody(store)

        custody.clear(confirmed=True)

        store.remove.assert_called_once_with("wallet_private_key")
