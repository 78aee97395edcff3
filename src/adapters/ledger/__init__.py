"""Ledger adapters - Completed donation logging implementations."""

from .http import HttpDonationLedger

__all__ = ["HttpDonationLedger"]
