"""
Domain models - Value objects passed between pipeline components.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from .exceptions import DonationError, ErrorKind, TransferStep


@dataclass(frozen=True)
class Identity:
    """
    Streaming-platform account a donation targets.

    The display form is kept as detected; registry lookups and identity
    comparisons always go through the lowercase canonical form.
    """

    name: str
    platform: str

    def normalized(self) -> "Identity":
        """Return the lowercase canonical form used against the registry."""
        return Identity(self.name.strip().lower(), self.platform.strip().lower())

    def same_as(self, other: "Identity | None") -> bool:
        """Case-insensitive identity comparison."""
        return other is not None and self.normalized() == other.normalized()


@dataclass(frozen=True)
class Credential:
    """Signing key material and the address derived from it."""

    private_key: str = field(repr=False)
    address: str

    def __repr__(self) -> str:
        return f"Credential(address={self.address!r}, private_key=***)"


@dataclass(frozen=True)
class TxReceipt:
    """Confirmed transaction as reported by the ledger."""

    transaction_id: str
    block_number: int | None = None


@dataclass(frozen=True)
class DonationRequest:
    """A single donation attempt, consumed by the transfer orchestrator."""

    identity: Identity
    amount: Decimal
    message: str = ""
    content_url: str = ""
    initiated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class TransferResult:
    """Terminal outcome of a transfer (or of its rejection)."""

    success: bool
    transaction_id: str | None = None
    error_kind: ErrorKind | None = None
    error: DonationError | None = None
    failed_step: TransferStep | None = None

    @classmethod
    def succeeded(cls, transaction_id: str) -> "TransferResult":
        return cls(success=True, transaction_id=transaction_id)

    @classmethod
    def failed(cls, error: DonationError) -> "TransferResult":
        return cls(
            success=False,
            error_kind=error.kind,
            error=error,
            failed_step=error.step,
        )

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable


@dataclass(frozen=True)
class ModerationVerdict:
    """Moderator's classification of a donation message."""

    appropriate: bool
    reason: str = ""


@dataclass(frozen=True)
class WalletStatus:
    """Token balance and allowance granted to the donation contract."""

    address: str
    balance: Decimal
    allowance: Decimal
