"""
Donation session - One viewer's wallet, target identity and verification.

Wires custody, the bound chain client, the registration poller and the
submission service together, and applies the lifecycle rules between them:

- connecting binds a client and starts verifying the current identity
- changing identity stops the previous loop and resets to UNKNOWN
- logging out clears custody, stops polling, resets to UNKNOWN and closes the client
- a corrupt credential slot leaves the session disconnected on resume
"""

import logging
from decimal import Decimal

from .custody import KeyCustody
from .exceptions import InvalidKeyFormat, InvalidRequest, NoCredential
from .models import Credential, Identity, TransferResult, WalletStatus
from .poller import RegistrationPoller, VerificationCell
from .ports import ChainClient, ChainClientFactory, DonationRecorder, MessageModerator, VerificationState
from .submission import DonationSubmission
from .transfer import TransferOrchestrator

logger = logging.getLogger(__name__)


class DonationSession:
    """Single-session facade over the donation pipeline."""

    def __init__(
        self,
        custody: KeyCustody,
        client_factory: ChainClientFactory,
        orchestrator: TransferOrchestrator,
        *,
        moderator: MessageModerator | None = None,
        recorder: DonationRecorder | None = None,
        poll_interval_seconds: float = 10.0,
        message_max_length: int = 150,
        token_decimals: int = 6,
    ) -> None:
        self.custody = custody
        self.orchestrator = orchestrator
        self.cell = VerificationCell()
        self._client_factory = client_factory
        self._client: ChainClient | None = None
        self.poller = RegistrationPoller(self.cell, self._current_client, poll_interval_seconds)
        self.submission = DonationSubmission(
            custody=custody,
            cell=self.cell,
            orchestrator=orchestrator,
            client_provider=self._current_client,
            moderator=moderator,
            recorder=recorder,
            message_max_length=message_max_length,
            token_decimals=token_decimals,
        )

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def identity(self) -> Identity | None:
        return self.cell.identity

    @property
    def verification(self) -> VerificationState:
        return self.cell.state

    def _current_client(self) -> ChainClient | None:
        return self._client

    async def resume(self) -> Credential | None:
        """
        Bind the persisted wallet if there is one; never creates a wallet.

        An unreadable slot is logged and skipped so the service can still start;
        import_wallet() or logout() then replaces or clears it.
        """
        try:
            credential = self.custody.load()
        except InvalidKeyFormat as e:
            logger.warning("Stored wallet is unreadable (%s), staying disconnected", e.reason.value)
            return None
        if credential is not None:
            await self._bind(credential)
        return credential

    async def connect(self) -> Credential:
        """Load the persisted wallet, or create and persist a new one, and bind it."""
        credential = self.custody.load()
        if credential is None:
            credential = self.custody.generate()
            self.custody.persist(credential)
        await self._bind(credential)
        return credential

    async def import_wallet(self, raw_key: str) -> Credential:
        """
        Replace the wallet with an imported key.

        Raises:
            InvalidKeyFormat: If raw_key is malformed (custody is left untouched)
        """
        credential = self.custody.import_key(raw_key)
        self.custody.persist(credential)
        await self._bind(credential)
        return credential

    async def logout(self, *, confirmed: bool) -> None:
        """
        Clear the wallet and forget the verification state.

        Raises:
            ConfirmationRequired: If confirmed is False
        """
        self.custody.clear(confirmed=confirmed)
        self.poller.reset(None)
        await self._release_client()
        logger.info("Session logged out")

    async def set_identity(self, identity: Identity | None) -> VerificationState:
        """Track a newly detected identity, or none, and verify it if connected."""
        if identity is not None and identity.same_as(self.cell.identity) and (
            self.poller.active or self.cell.state is VerificationState.VERIFIED
        ):
            return self.cell.state

        self.poller.reset(identity)
        if identity is not None and self.connected:
            await self.poller.start(identity)
        return self.cell.state

    async def verify_now(self) -> bool:
        """Manual check of the current identity."""
        if self.cell.identity is None:
            raise InvalidRequest("no content creator detected")
        return await self.poller.check_once(self.cell.identity)

    async def wallet_status(self) -> WalletStatus:
        """Balance and allowance towards the donation contract."""
        if self._client is None:
            raise NoCredential("connect a wallet first")
        address = self._client.address
        balance = await self._client.token_balance(address)
        allowance = await self._client.token_allowance(address, self.orchestrator.spender_address)
        return WalletStatus(address=address, balance=balance, allowance=allowance)

    async def donate(
        self, amount: Decimal | str, message: str = "", *, content_url: str = "", force: bool = False
    ) -> TransferResult:
        return await self.submission.submit(
            self.cell.identity, amount, message, content_url=content_url, force=force
        )

    async def close(self) -> None:
        """Stop polling and release the bound client."""
        self.poller.stop()
        await self._release_client()

    async def _bind(self, credential: Credential) -> None:
        previous, self._client = self._client, self._client_factory(credential)
        if previous is not None and previous is not self._client:
            await previous.close()
        logger.info("Wallet %s connected", credential.address)
        identity = self.cell.identity
        if identity is not None and not self.cell.is_verified(identity):
            await self.poller.start(identity)

    async def _release_client(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.close()
