"""
FastAPI dependencies - Dependency injection factories.

This module wires the domain session together from settings and provides
Depends() factories for injecting it into routes.
"""

from functools import partial

import httpx
from fastapi import Request

from src.adapters.chain.web3_client import Web3ChainClient
from src.adapters.ledger.http import HttpDonationLedger
from src.adapters.moderation.http import HttpMessageModerator
from src.config.settings import Settings
from src.domain.custody import KeyCustody
from src.domain.ports import KeyValueStore
from src.domain.session import DonationSession
from src.domain.transfer import TransferOrchestrator


def build_session(
    settings: Settings, store: KeyValueStore, http_client: httpx.AsyncClient
) -> DonationSession:
    """
    Create the donation session with injected adapters.

    Wires custody, the web3 client factory, the orchestrator and the HTTP
    collaborators (moderation, ledger) for the domain session.
    """
    custody = KeyCustody(store, settings.credential_storage_key)
    orchestrator = TransferOrchestrator(
        token_address=settings.token_address,
        spender_address=settings.donation_contract_address,
    )
    return DonationSession(
        custody,
        partial(Web3ChainClient.from_settings, settings=settings),
        orchestrator,
        moderator=HttpMessageModerator(http_client, settings.moderation_url),
        recorder=HttpDonationLedger(http_client, settings.ledger_url, settings.donor_name),
        poll_interval_seconds=settings.poll_interval_seconds,
        message_max_length=settings.message_max_length,
        token_decimals=settings.token_decimals,
    )


def get_session(request: Request) -> DonationSession:
    """
    Get the donation session from app state.

    The session is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.session
