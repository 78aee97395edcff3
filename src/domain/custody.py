"""
Key custody - Single-slot ownership of the signing credential.

KeyCustody generates or imports a private key, persists it under one fixed
storage key and keeps the active credential for the session. The key
material never leaves this object except through a bound signer.
"""

import logging
import re

from eth_account import Account

from .exceptions import ConfirmationRequired, InvalidKeyFormat, InvalidKeyReason
from .models import Credential
from .ports import KeyValueStore

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"[0-9a-fA-F]*")
_WHITESPACE_RE = re.compile(r"\s+")
_KEY_HEX_LENGTH = 64  # 32 bytes


class KeyCustody:
    """
    Owns the one active credential of a session.

    Persistence touches the store exactly once per call and never the network.
    """

    def __init__(self, store: KeyValueStore, storage_key: str = "wallet_private_key") -> None:
        self._store = store
        self._storage_key = storage_key
        self._active: Credential | None = None

    @property
    def active(self) -> Credential | None:
        """Credential currently in custody, if any."""
        return self._active

    def generate(self) -> Credential:
        """Create a credential from a fresh cryptographically random key."""
        account = Account.create()
        private_key = "0x" + account.key.hex().removeprefix("0x")
        credential = Credential(private_key=private_key, address=account.address)
        logger.info("Generated new wallet %s", credential.address)
        return credential

    def import_key(self, raw_key: str) -> Credential:
        """
        Validate a raw private key and derive its address.

        Whitespace anywhere in the input is dropped and an optional 0x/0X
        prefix is accepted.

        Raises:
            InvalidKeyFormat: reason CHARSET for non-hex input, LENGTH for
                anything but 32 bytes, OUT_OF_RANGE for keys outside the
                curve order
        """
        cleaned = _WHITESPACE_RE.sub("", raw_key)
        if cleaned[:2] in ("0x", "0X"):
            cleaned = cleaned[2:]

        if not _HEX_RE.fullmatch(cleaned):
            raise InvalidKeyFormat(InvalidKeyReason.CHARSET, "private key must be hexadecimal")
        if len(cleaned) != _KEY_HEX_LENGTH:
            raise InvalidKeyFormat(
                InvalidKeyReason.LENGTH,
                f"private key must be {_KEY_HEX_LENGTH} hex characters, got {len(cleaned)}",
            )

        normalized = "0x" + cleaned.lower()
        try:
            account = Account.from_key(normalized)
        except Exception as e:  # eth_keys raises its own ValidationError
            raise InvalidKeyFormat(InvalidKeyReason.OUT_OF_RANGE, str(e)) from None

        return Credential(private_key=normalized, address=account.address)

    def persist(self, credential: Credential) -> None:
        """Store credential in the single slot, replacing any prior one, and activate it."""
        self._store.set(self._storage_key, credential.private_key)
        self._active = credential
        logger.info("Persisted wallet %s", credential.address)

    def load(self) -> Credential | None:
        """
        Load and activate the persisted credential.

        Returns:
            The credential, or None if nothing is persisted

        Raises:
            InvalidKeyFormat: If the stored value is not a valid key
        """
        raw = self._store.get(self._storage_key)
        if raw is None:
            return None
        credential = self.import_key(raw)
        self._active = credential
        logger.info("Loaded wallet %s", credential.address)
        return credential

    def clear(self, *, confirmed: bool) -> None:
        """
        Erase the persisted credential and empty custody.

        Irreversible, so the caller must pass confirmed=True.

        Raises:
            ConfirmationRequired: If confirmed is False
        """
        if not confirmed:
            raise ConfirmationRequired("clearing the wallet requires explicit confirmation")
        self._store.remove(self._storage_key)
        address = self._active.address if self._active else None
        self._active = None
        logger.info("Cleared wallet %s", address)
