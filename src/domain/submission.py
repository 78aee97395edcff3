"""
Donation submission - Use-case coordinator for a single donation.

Validates the request, requires a verified identity and an active credential,
runs the message through the moderator and drives the transfer orchestrator.
Two failure policies apply:

- moderation is fail-open: a moderator that cannot answer lets the message through
- recording is best-effort: a failed ledger write is logged and never changes
  the reported transfer outcome
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .custody import KeyCustody
from .exceptions import (
    DonationError,
    InvalidRequest,
    MessageFlagged,
    NoCredential,
    NotVerified,
)
from .models import DonationRequest, Identity, ModerationVerdict, TransferResult
from .poller import VerificationCell
from .ports import ChainClient, DonationRecorder, MessageModerator
from .transfer import TransferOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class DonationSubmission:
    """
    Domain service for submitting donations.

    Preconditions are checked before any ledger call; a failed precondition
    comes back as a failed TransferResult with the matching error kind.
    """

    custody: KeyCustody
    cell: VerificationCell
    orchestrator: TransferOrchestrator
    client_provider: Callable[[], ChainClient | None]
    moderator: MessageModerator | None = None
    recorder: DonationRecorder | None = None
    message_max_length: int = 150
    token_decimals: int = 6

    async def submit(
        self,
        identity: Identity | None,
        amount: Decimal | str,
        message: str = "",
        *,
        content_url: str = "",
        force: bool = False,
    ) -> TransferResult:
        """
        Submit a donation to identity.

        Args:
            identity: Target identity as detected (None if nothing detected)
            amount: Whole token units, must be positive
            message: Optional message (at most message_max_length characters)
            content_url: Page the donation was made from, forwarded to the ledger
            force: Send even if the moderator flags the message

        Returns:
            TransferResult of the transfer, or of the rejected precondition
        """
        try:
            request = self._build_request(identity, amount, message, content_url)
            client = self._require_client()
            if not self.cell.is_verified(request.identity):
                raise NotVerified("verify the content creator before donating")
            if request.message.strip() and not force:
                verdict = await self._moderate(request.message)
                if not verdict.appropriate:
                    raise MessageFlagged(verdict.reason)
        except DonationError as e:
            logger.info("Donation rejected: %s", e)
            return TransferResult.failed(e)

        result = await self.orchestrator.execute(request, client, self.cell.state)
        if result.success:
            await self._record_best_effort(request, result, client.address)
        return result

    def _build_request(
        self, identity: Identity | None, amount: Decimal | str, message: str, content_url: str
    ) -> DonationRequest:
        if identity is None:
            raise InvalidRequest("no content creator detected")
        try:
            value = Decimal(amount)
        except (InvalidOperation, TypeError, ValueError):
            raise InvalidRequest(f"invalid amount: {amount!r}") from None
        if not value.is_finite() or value <= 0:
            raise InvalidRequest("amount must be greater than zero")
        scaled = value.scaleb(self.token_decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidRequest(f"amount supports at most {self.token_decimals} decimal places")
        message = message.strip()
        if len(message) > self.message_max_length:
            raise InvalidRequest(f"message must be at most {self.message_max_length} characters")
        return DonationRequest(
            identity=identity, amount=value, message=message, content_url=content_url
        )

    def _require_client(self) -> ChainClient:
        client = self.client_provider()
        if self.custody.active is None or client is None:
            raise NoCredential("connect a wallet before donating")
        return client

    async def _moderate(self, message: str) -> ModerationVerdict:
        """Fail-open moderation: any moderator failure counts as appropriate."""
        if self.moderator is None:
            return ModerationVerdict(appropriate=True)
        try:
            return await self.moderator.classify(message)
        except Exception as e:
            logger.warning("Moderation unavailable, allowing message: %s", e)
            return ModerationVerdict(appropriate=True)

    async def _record_best_effort(
        self, request: DonationRequest, result: TransferResult, wallet_address: str
    ) -> None:
        """Best-effort ledger write: failures are logged, never raised."""
        if self.recorder is None:
            return
        try:
            await self.recorder.record(request, result, wallet_address)
        except Exception as e:
            logger.warning("Ledger logging failed, donation was successful: %s", e)
