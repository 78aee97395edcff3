"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from decimal import Decimal
from enum import Enum
from typing import Protocol

from .models import Credential, DonationRequest, Identity, ModerationVerdict, TransferResult, TxReceipt


class VerificationState(str, Enum):
    """
    Registry verification state for the current (identity, session) pair.

    State Transitions:
    - UNKNOWN -> CHECKING (first check, or identity change)
    - CHECKING -> VERIFIED (registry reports existence; terminal)
    - CHECKING -> NOT_FOUND (registry reports absence; polling continues)
    - CHECKING -> UNKNOWN (polling stopped before the pending check answered)
    - any -> UNKNOWN (identity changed or custody cleared)
    """

    UNKNOWN = "UNKNOWN"
    CHECKING = "CHECKING"
    VERIFIED = "VERIFIED"
    NOT_FOUND = "NOT_FOUND"


class KeyValueStore(Protocol):
    """Port interface for durable local storage of the credential slot."""

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store value under key, overwriting any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete key. Removing an absent key is not an error."""
        ...


class ChainClient(Protocol):
    """
    Port interface for the remote ledger, bound to one signer.

    Amounts are whole token units (Decimal); adapters convert to and from
    the token's base units. Every call may raise ChainUnavailable or
    ChainRejected.
    """

    @property
    def address(self) -> str:
        """Address of the bound signer."""
        ...

    async def registry_exists(self, identity: Identity) -> bool:
        """
        Ask the registry contract whether identity is registered.

        Args:
            identity: Target identity (adapters send the lowercase form)

        Returns:
            True if the registry reports the identity as existing
        """
        ...

    async def token_balance(self, address: str) -> Decimal:
        """Token balance held by address."""
        ...

    async def token_allowance(self, owner: str, spender: str) -> Decimal:
        """Amount owner has authorized spender to transfer."""
        ...

    async def token_approve(self, spender: str, amount: Decimal) -> TxReceipt:
        """Set the signer's allowance for spender and wait for confirmation."""
        ...

    async def token_transfer_to_identity(
        self, identity: Identity, token_address: str, amount: Decimal
    ) -> TxReceipt:
        """Donate amount of token to identity through the donation contract."""
        ...

    async def close(self) -> None:
        """Release the endpoint connection; the client is not used afterwards."""
        ...


class ChainClientFactory(Protocol):
    """Binds a credential to the configured remote endpoint."""

    def __call__(self, credential: Credential) -> ChainClient: ...


class MessageModerator(Protocol):
    """Port interface for donation message classification."""

    async def classify(self, text: str) -> ModerationVerdict:
        """
        Classify message text.

        Raises:
            ModerationUnavailable: If the moderator cannot produce a verdict
        """
        ...


class DonationRecorder(Protocol):
    """Port interface for the external donation ledger/logger."""

    async def record(
        self, request: DonationRequest, result: TransferResult, wallet_address: str
    ) -> None:
        """Record a completed donation for dashboard display."""
        ...

