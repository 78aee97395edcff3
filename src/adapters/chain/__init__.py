"""Chain adapters - Ledger endpoint implementations."""

from .web3_client import Web3ChainClient

__all__ = ["Web3ChainClient"]
