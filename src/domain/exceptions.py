"""
Domain exceptions - Semantic error types for the donation pipeline.

Every exception carries a stable ErrorKind so that callers (the API layer,
tests, the TransferResult) can classify failures without string matching.
Chain errors may be annotated with the TransferStep that raised them; the
annotation never changes the exception type or its kind.
"""

from decimal import Decimal
from enum import Enum


class ErrorKind(str, Enum):
    """Stable failure classification exposed to callers."""

    INVALID_KEY_FORMAT = "invalid_key_format"
    CHAIN_UNAVAILABLE = "chain_unavailable"
    CHAIN_REJECTED = "chain_rejected"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    APPROVAL_MISMATCH = "approval_mismatch"
    NOT_VERIFIED = "not_verified"
    TRANSFER_IN_PROGRESS = "transfer_in_progress"
    MODERATION_UNAVAILABLE = "moderation_unavailable"
    INVALID_REQUEST = "invalid_request"
    NO_CREDENTIAL = "no_credential"
    MESSAGE_FLAGGED = "message_flagged"
    CONFIRMATION_REQUIRED = "confirmation_required"


class TransferStep(str, Enum):
    """Suspension points of the token-transfer protocol, in execution order."""

    BALANCE_CHECK = "balance_check"
    ALLOWANCE_CHECK = "allowance_check"
    ALLOWANCE_RESET = "allowance_reset"
    ALLOWANCE_GRANT = "allowance_grant"
    TRANSFER = "transfer"


class InvalidKeyReason(str, Enum):
    """Why a raw private key was refused."""

    CHARSET = "charset"
    LENGTH = "length"
    OUT_OF_RANGE = "out_of_range"


class DonationError(Exception):
    """Base class for donation domain errors."""

    kind: ErrorKind = ErrorKind.CHAIN_REJECTED
    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.step: TransferStep | None = None


class InvalidKeyFormat(DonationError):
    """Raw key is not a 32-byte hex private key."""

    kind = ErrorKind.INVALID_KEY_FORMAT

    def __init__(self, reason: InvalidKeyReason, message: str = "") -> None:
        super().__init__(message or f"invalid private key ({reason.value})")
        self.reason = reason


class ChainError(DonationError):
    """Base class for failures reported by the ledger endpoint."""


class ChainUnavailable(ChainError):
    """Endpoint unreachable or confirmation wait exhausted. Safe to retry."""

    kind = ErrorKind.CHAIN_UNAVAILABLE
    retryable = True


class ChainRejected(ChainError):
    """Node or contract refused the call. Retrying needs different input."""

    kind = ErrorKind.CHAIN_REJECTED


class InsufficientFunds(DonationError):
    """Token balance is below the requested amount."""

    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, available: Decimal, requested: Decimal) -> None:
        super().__init__(
            f"insufficient token balance: have {available}, need {requested}"
        )
        self.available = available
        self.requested = requested


class ApprovalMismatch(DonationError):
    """Allowance still below the requested amount after a confirmed approval."""

    kind = ErrorKind.APPROVAL_MISMATCH

    def __init__(self, allowance: Decimal, requested: Decimal) -> None:
        super().__init__(
            f"approval not applied: allowance {allowance}, need {requested}"
        )
        self.allowance = allowance
        self.requested = requested


class NotVerified(DonationError):
    """Target identity is not verified in the registry."""

    kind = ErrorKind.NOT_VERIFIED


class TransferInProgress(DonationError):
    """Another transfer is running against the same signer."""

    kind = ErrorKind.TRANSFER_IN_PROGRESS


class ModerationUnavailable(DonationError):
    """Moderator could not be reached. Non-fatal, callers fail open."""

    kind = ErrorKind.MODERATION_UNAVAILABLE
    retryable = True


class InvalidRequest(DonationError):
    """Donation request failed input validation."""

    kind = ErrorKind.INVALID_REQUEST


class NoCredential(DonationError):
    """No active signing credential in custody."""

    kind = ErrorKind.NO_CREDENTIAL


class MessageFlagged(DonationError):
    """Moderator flagged the donation message."""

    kind = ErrorKind.MESSAGE_FLAGGED

    def __init__(self, reason: str) -> None:
        super().__init__(f"message flagged: {reason}" if reason else "message flagged")
        self.reason = reason


class ConfirmationRequired(DonationError):
    """Irreversible action attempted without explicit confirmation."""

    kind = ErrorKind.CONFIRMATION_REQUIRED


def classify_error(exc: BaseException) -> DonationError:
    """
    Map an arbitrary exception onto the domain taxonomy.

    Domain errors pass through untouched. Transport-level failures become
    ChainUnavailable; everything else is treated as a rejection.
    """
    if isinstance(exc, DonationError):
        return exc
    if isinstance(exc, (OSError, TimeoutError)):
        classified: DonationError = ChainUnavailable(str(exc) or type(exc).__name__)
    else:
        classified = ChainRejected(str(exc) or type(exc).__name__)
    classified.__cause__ = exc
    return classified
