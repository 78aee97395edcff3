"""
Web3 chain client adapter - Implements ChainClient protocol.

This module provides the EVM implementation of the domain's chain port
using web3.py (AsyncWeb3 over JSON-RPC) and eth-account for local signing.

The adapter is the only place that sees raw provider responses. It converts
token base units to Decimal token amounts, lowercases identities before they
reach the registry, and translates provider errors:

- transport failures, HTTP errors, receipt wait exhaustion -> ChainUnavailable
- contract reverts, RPC errors, receipts with status 0      -> ChainRejected
"""

import contextlib
import logging
from collections.abc import AsyncIterator
from decimal import Decimal
from typing import Any

import aiohttp
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from src.adapters.chain.abi import DONATION_ABI, ERC20_ABI
from src.config.settings import Settings
from src.domain.exceptions import ChainRejected, ChainUnavailable
from src.domain.models import Credential, Identity, TxReceipt

logger = logging.getLogger(__name__)


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a token amount to integer base units, refusing sub-unit precision."""
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{amount} has more than {decimals} decimal places")
    return int(scaled)


def from_base_units(raw: int, decimals: int) -> Decimal:
    """Convert integer base units to a token amount."""
    return Decimal(raw).scaleb(-decimals)


@contextlib.asynccontextmanager
async def translate_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise provider errors as ChainUnavailable / ChainRejected."""
    try:
        yield
    except TimeExhausted as e:
        raise ChainUnavailable(f"{operation}: confirmation wait timed out") from e
    except ContractLogicError as e:
        raise ChainRejected(f"{operation}: contract reverted: {e}") from e
    except (aiohttp.ClientError, OSError, TimeoutError) as e:
        raise ChainUnavailable(f"{operation}: endpoint unavailable: {e}") from e
    except (Web3Exception, ValueError) as e:
        raise ChainRejected(f"{operation}: {e}") from e


class Web3ChainClient:
    """
    Implements ChainClient protocol via web3.py.

    Uses structural subtyping - no explicit inheritance from Protocol.
    The credential is lent for signing only; the key is never sent anywhere.
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        credential: Credential,
        *,
        donation_contract_address: str,
        token_address: str,
        chain_id: int,
        token_decimals: int = 6,
        confirmation_timeout_seconds: float = 120.0,
    ) -> None:
        """
        Initialize client bound to one signer.

        Args:
            w3: AsyncWeb3 instance connected to the endpoint
            credential: Signing credential lent by KeyCustody
            donation_contract_address: Registry + donation contract
            token_address: Token used for balance/allowance/approve
            chain_id: Chain id included in signed transactions
            token_decimals: Base-unit exponent of the token
            confirmation_timeout_seconds: Receipt wait before ChainUnavailable
        """
        self._w3 = w3
        self._account = Account.from_key(credential.private_key)
        self._chain_id = chain_id
        self._decimals = token_decimals
        self._timeout = confirmation_timeout_seconds
        self._donation = w3.eth.contract(
            address=Web3.to_checksum_address(donation_contract_address), abi=DONATION_ABI
        )
        self._token = w3.eth.contract(address=Web3.to_checksum_address(token_address), abi=ERC20_ABI)

    @classmethod
    def from_settings(cls, credential: Credential, settings: Settings) -> "Web3ChainClient":
        """Bind credential to the endpoint and contracts from settings."""
        w3 = AsyncWeb3(AsyncHTTPProvider(settings.rpc_url))
        return cls(
            w3,
            credential,
            donation_contract_address=settings.donation_contract_address,
            token_address=settings.token_address,
            chain_id=settings.chain_id,
            token_decimals=settings.token_decimals,
            confirmation_timeout_seconds=settings.confirmation_timeout_seconds,
        )

    @property
    def address(self) -> str:
        return self._account.address

    async def registry_exists(self, identity: Identity) -> bool:
        canonical = identity.normalized()
        async with translate_errors("registry check"):
            exists = await self._donation.functions.contentExistsCheck(
                canonical.name, canonical.platform
            ).call()
        logger.debug("contentExistsCheck(%s, %s) -> %s", canonical.name, canonical.platform, exists)
        return bool(exists)

    async def token_balance(self, address: str) -> Decimal:
        async with translate_errors("balance"):
            raw = await self._token.functions.balanceOf(Web3.to_checksum_address(address)).call()
        return from_base_units(raw, self._decimals)

    async def token_allowance(self, owner: str, spender: str) -> Decimal:
        async with translate_errors("allowance"):
            raw = await self._token.functions.allowance(
                Web3.to_checksum_address(owner), Web3.to_checksum_address(spender)
            ).call()
        return from_base_units(raw, self._decimals)

    async def token_approve(self, spender: str, amount: Decimal) -> TxReceipt:
        call = self._token.functions.approve(
            Web3.to_checksum_address(spender), to_base_units(amount, self._decimals)
        )
        return await self._transact(call, "approve")

    async def token_transfer_to_identity(
        self, identity: Identity, token_address: str, amount: Decimal
    ) -> TxReceipt:
        canonical = identity.normalized()
        call = self._donation.functions.donateTokenToContent(
            canonical.name,
            canonical.platform,
            Web3.to_checksum_address(token_address),
            to_base_units(amount, self._decimals),
        )
        return await self._transact(call, "donate")

    async def _transact(self, call: Any, operation: str) -> TxReceipt:
        """Build, sign, send and wait for a contract transaction."""
        async with translate_errors(operation):
            nonce = await self._w3.eth.get_transaction_count(self.address, "pending")
            tx = await call.build_transaction(
                {"from": self.address, "nonce": nonce, "chainId": self._chain_id}
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("Sent %s transaction %s", operation, Web3.to_hex(tx_hash))
            receipt = await self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._timeout)

        transaction_id = Web3.to_hex(receipt["transactionHash"])
        if receipt["status"] != 1:
            raise ChainRejected(f"{operation}: transaction {transaction_id} reverted")
        return TxReceipt(transaction_id=transaction_id, block_number=receipt.get("blockNumber"))

    async def close(self) -> None:
        """Close the provider's cached HTTP session."""
        await self._w3.provider.disconnect()
        logger.debug("Disconnected provider for %s", self.address)
