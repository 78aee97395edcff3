"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.domain.exceptions import ErrorKind
from src.domain.ports import VerificationState


class ImportWalletRequest(BaseModel):
    """Request model for importing an existing private key."""

    private_key: str = Field(
        ...,
        min_length=1,
        description="64 hex characters, optional 0x prefix; whitespace is ignored",
    )


class WalletResponse(BaseModel):
    """Response model for a connected wallet."""

    address: str


class WalletStatusResponse(BaseModel):
    """Response model for wallet balance and allowance."""

    address: str
    balance: Decimal
    allowance: Decimal


class IdentityRequest(BaseModel):
    """Request model for the detected streaming identity."""

    name: str = Field(..., min_length=1, description="Account name on the platform")
    platform: str = Field(..., min_length=1, description="Platform tag, e.g. Twitch")


class VerificationResponse(BaseModel):
    """Response model for the registry verification state."""

    name: str | None
    platform: str | None
    state: VerificationState
    polling: bool


class CheckResponse(VerificationResponse):
    """Response model for a manual verification check."""

    found: bool


class DonationBody(BaseModel):
    """Request model for a donation to the current identity."""

    amount: Decimal = Field(..., gt=0, description="Amount in whole token units")
    message: str = Field("", description="Optional message, limited by MESSAGE_MAX_LENGTH")
    content_url: str = Field("", description="Page the donation is made from")
    force: bool = Field(False, description="Send even if the message is flagged")


class DonationResponse(BaseModel):
    """Response model for a confirmed donation."""

    message: str
    transaction_id: str


class MessageResponse(BaseModel):
    """Generic acknowledgement."""

    message: str


class ErrorDetail(BaseModel):
    """Classified domain error."""

    message: str
    kind: ErrorKind
    retryable: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: ErrorDetail
