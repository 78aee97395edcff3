"""
Domain layer - Donation submission pipeline.

This package contains the core logic for sending a token donation to a
registered streaming identity: key custody, registry verification polling,
the token-transfer protocol and the submission use case. It defines its own
port interfaces for infrastructure abstraction; adapters implement them.
"""

from .custody import KeyCustody
from .exceptions import (
    ApprovalMismatch,
    ChainError,
    ChainRejected,
    ChainUnavailable,
    ConfirmationRequired,
    DonationError,
    ErrorKind,
    InsufficientFunds,
    InvalidKeyFormat,
    InvalidKeyReason,
    InvalidRequest,
    MessageFlagged,
    ModerationUnavailable,
    NoCredential,
    NotVerified,
    TransferInProgress,
    TransferStep,
)
from .models import (
    Credential,
    DonationRequest,
    Identity,
    ModerationVerdict,
    TransferResult,
    TxReceipt,
    WalletStatus,
)
from .poller import RegistrationPoller, VerificationCell
from .ports import (
    ChainClient,
    ChainClientFactory,
    DonationRecorder,
    KeyValueStore,
    MessageModerator,
    VerificationState,
)
from .session import DonationSession
from .submission import DonationSubmission
from .transfer import TransferOrchestrator

__all__ = [
    "ApprovalMismatch",
    "ChainClient",
    "ChainClientFactory",
    "ChainError",
    "ChainRejected",
    "ChainUnavailable",
    "ConfirmationRequired",
    "Credential",
    "DonationError",
    "DonationRecorder",
    "DonationRequest",
    "DonationSession",
    "DonationSubmission",
    "ErrorKind",
    "Identity",
    "InsufficientFunds",
    "InvalidKeyFormat",
    "InvalidKeyReason",
    "InvalidRequest",
    "KeyCustody",
    "KeyValueStore",
    "MessageFlagged",
    "MessageModerator",
    "ModerationUnavailable",
    "ModerationVerdict",
    "NoCredential",
    "NotVerified",
    "RegistrationPoller",
    "TransferInProgress",
    "TransferOrchestrator",
    "TransferResult",
    "TransferStep",
    "TxReceipt",
    "VerificationCell",
    "VerificationState",
    "WalletStatus",
]
