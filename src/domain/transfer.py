"""
Transfer orchestrator - Token donation protocol.

Protocol (strictly ordered, each step awaits the ledger):

1. BALANCE_CHECK    read signer balance; stop with InsufficientFunds if short
2. ALLOWANCE_CHECK  read allowance granted to the donation contract
3. ALLOWANCE_RESET  0 < allowance < amount: approve(0) and wait
4. ALLOWANCE_GRANT  allowance < amount: approve(amount), wait, re-read;
                    ApprovalMismatch if still short
5. TRANSFER         donate to the lowercase identity and wait
6. return TransferResult(success=True, transaction_id)

Nothing is retried here. Replaying a step after an ambiguous failure can
record a donation twice, so retries belong to the caller.
"""

import contextlib
import logging
from collections.abc import Iterator
from decimal import Decimal

from .exceptions import (
    ApprovalMismatch,
    DonationError,
    InsufficientFunds,
    NotVerified,
    TransferInProgress,
    TransferStep,
    classify_error,
)
from .models import DonationRequest, TransferResult
from .ports import ChainClient, VerificationState

logger = logging.getLogger(__name__)


class TransferOrchestrator:
    """
    Runs the multi-step transfer for one donation request at a time per signer.

    Attributes:
        token_address: Token contract the donation is paid in
        spender_address: Donation contract that receives the allowance
    """

    def __init__(self, token_address: str, spender_address: str) -> None:
        self.token_address = token_address
        self.spender_address = spender_address
        self._in_flight: set[str] = set()

    def is_busy(self, signer_address: str) -> bool:
        return signer_address.lower() in self._in_flight

    async def execute(
        self,
        request: DonationRequest,
        client: ChainClient,
        verification: VerificationState,
    ) -> TransferResult:
        """
        Execute the transfer protocol for request.

        The caller owns the registry check; this method only asserts that it
        reported VERIFIED.

        Returns:
            TransferResult; failures carry the error kind and the failing step
        """
        if verification is not VerificationState.VERIFIED:
            return TransferResult.failed(NotVerified("identity is not verified in the registry"))

        signer = client.address.lower()
        if signer in self._in_flight:
            logger.warning("Rejected concurrent transfer for %s", client.address)
            return TransferResult.failed(TransferInProgress("a donation is already being processed"))

        self._in_flight.add(signer)
        try:
            transaction_id = await self._run_steps(request, client)
        except Exception as e:
            error = classify_error(e)
            logger.error(
                "Donation to %s failed at %s: %s",
                request.identity.name,
                error.step.value if error.step else "unknown step",
                error,
            )
            return TransferResult.failed(error)
        finally:
            self._in_flight.discard(signer)

        logger.info("Donation to %s confirmed: %s", request.identity.name, transaction_id)
        return TransferResult.succeeded(transaction_id)

    async def _run_steps(self, request: DonationRequest, client: ChainClient) -> str:
        amount = request.amount
        owner = client.address

        with _step(TransferStep.BALANCE_CHECK):
            balance = await client.token_balance(owner)
            logger.info("Token balance: %s", balance)
            if balance < amount:
                raise InsufficientFunds(available=balance, requested=amount)

        with _step(TransferStep.ALLOWANCE_CHECK):
            allowance = await client.token_allowance(owner, self.spender_address)
            logger.info("Current allowance: %s", allowance)

        if allowance < amount:
            if allowance > 0:
                with _step(TransferStep.ALLOWANCE_RESET):
                    logger.info("Resetting allowance to 0")
                    await client.token_approve(self.spender_address, Decimal(0))

            with _step(TransferStep.ALLOWANCE_GRANT):
                logger.info("Approving %s for donation contract", amount)
                await client.token_approve(self.spender_address, amount)
                granted = await client.token_allowance(owner, self.spender_address)
                if granted < amount:
                    raise ApprovalMismatch(allowance=granted, requested=amount)
        else:
            logger.info("Sufficient allowance already exists")

        with _step(TransferStep.TRANSFER):
            receipt = await client.token_transfer_to_identity(
                request.identity.normalized(), self.token_address, amount
            )
        return receipt.transaction_id


@contextlib.contextmanager
def _step(step: TransferStep) -> Iterator[None]:
    """Annotate errors raised inside the block with the step that raised them."""
    try:
        yield
    except DonationError as e:
        if e.step is None:
            e.step = step
        raise
    except Exception as e:
        error = classify_error(e)
        error.step = step
        raise error from e
