"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- Identities and a fixed test private key
- Fake chain client and in-memory credential store
"""

from decimal import Decimal

import pytest

from src.adapters.storage.memory import InMemoryKeyValueStore
from src.domain.custody import KeyCustody
from src.domain.models import Identity
from src.domain.transfer import TransferOrchestrator
from tests.fakes import SPENDER, TOKEN, FakeChainClient

# Well-known throwaway key from the eth-account documentation.
TEST_PRIVATE_KEY = "4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


@pytest.fixture
def identity() -> Identity:
    return Identity(name="Foo", platform="Twitch")


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient(balance=Decimal("100"))


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def custody(store: InMemoryKeyValueStore) -> KeyCustody:
    return KeyCustody(store)


@pytest.fixture
def orchestrator() -> TransferOrchestrator:
    return TransferOrchestrator(token_address=TOKEN, spender_address=SPENDER)
