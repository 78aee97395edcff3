"""
Unit tests for DonationSession lifecycle and the end-to-end donation path.
"""

import asyncio
from decimal import Decimal

import pytest

from src.adapters.storage.memory import InMemoryKeyValueStore
from src.domain.custody import KeyCustody
from src.domain.exceptions import ConfirmationRequired, ErrorKind, InvalidKeyFormat, InvalidRequest, NoCredential
from src.domain.models import Identity
from src.domain.ports import VerificationState
from src.domain.session import DonationSession
from src.domain.transfer import TransferOrchestrator
from tests.conftest import TEST_PRIVATE_KEY
from tests.fakes import FakeChainClient, bind_to

INTERVAL = 0.01


def make_session(
    chain: FakeChainClient, store: InMemoryKeyValueStore | None = None
) -> DonationSession:
    return DonationSession(
        KeyCustody(store or InMemoryKeyValueStore()),
        bind_to(chain),
        TransferOrchestrator(token_address="0x" + "22" * 20, spender_address="0x" + "33" * 20),
        poll_interval_seconds=INTERVAL,
    )


class TestWalletLifecycle:
    """Tests for connect / import / logout."""

    def test_connect_generates_and_persists(self, chain: FakeChainClient) -> None:
        store = InMemoryKeyValueStore()
        session = make_session(chain, store)

        credential = asyncio.run(session.connect())

        assert session.connected
        assert chain.address == credential.address
        assert store.get("wallet_private_key") == credential.private_key

    def test_connect_reuses_persisted_wallet(self, chain: FakeChainClient) -> None:
        store = InMemoryKeyValueStore()
        first = asyncio.run(make_session(chain, store).connect())

        second = asyncio.run(make_session(chain, store).connect())

        assert second.address == first.address

    def test_resume_with_corrupt_slot_stays_disconnected(self, chain: FakeChainClient) -> None:
        store = InMemoryKeyValueStore()
        store.set("wallet_private_key", "not-a-key")
        session = make_session(chain, store)

        assert asyncio.run(session.resume()) is None
        assert not session.connected
        assert session.custody.active is None

    def test_import_replaces_corrupt_slot(self, chain: FakeChainClient) -> None:
        store = InMemoryKeyValueStore()
        store.set("wallet_private_key", "0x" + "zz" * 32)
        session = make_session(chain, store)
        asyncio.run(session.resume())

        credential = asyncio.run(session.import_wallet(TEST_PRIVATE_KEY))

        assert session.connected
        assert store.get("wallet_private_key") == credential.private_key

    def test_close_releases_client(self, chain: FakeChainClient, identity: Identity) -> None:
        async def scenario() -> None:
            session = make_session(chain)
            await session.connect()
            await session.set_identity(identity)

            await session.close()

            assert chain.closed == 1
            assert not session.connected
            assert not session.poller.active

        asyncio.run(scenario())

    def test_rebind_closes_previous_client(self, chain: FakeChainClient) -> None:
        other = FakeChainClient()
        clients = iter([chain, other])
        session = DonationSession(
            KeyCustody(InMemoryKeyValueStore()),
            lambda credential: next(clients),
            TransferOrchestrator(token_address="0x" + "22" * 20, spender_address="0x" + "33" * 20),
        )
        asyncio.run(session.connect())

        asyncio.run(session.import_wallet(TEST_PRIVATE_KEY))

        assert chain.closed == 1
        assert other.closed == 0

    def test_resume_without_wallet_stays_disconnected(self, chain: FakeChainClient) -> None:
        session = make_session(chain)

        assert asyncio.run(session.resume()) is None
        assert not session.connected

    def test_import_replaces_wallet(self, chain: FakeChainClient) -> None:
        store = InMemoryKeyValueStore()
        session = make_session(chain, store)
        asyncio.run(session.connect())

        credential = asyncio.run(session.import_wallet("0x" + TEST_PRIVATE_KEY))

        assert store.get("wallet_private_key") == "0x" + TEST_PRIVATE_KEY
        assert chain.address == credential.address

    def test_bad_import_keeps_current_wallet(self, chain: FakeChainClient) -> None:
        store = InMemoryKeyValueStore()
        session = make_session(chain, store)
        credential = asyncio.run(session.connect())

        with pytest.raises(InvalidKeyFormat):
            asyncio.run(session.import_wallet("0xnothex"))

        assert store.get("wallet_private_key") == credential.private_key
        assert session.custody.active == credential

    def test_logout_requires_confirmation(self, chain: FakeChainClient) -> None:
        session = make_session(chain)
        asyncio.run(session.connect())

        with pytest.raises(ConfirmationRequired):
            asyncio.run(session.logout(confirmed=False))
        assert session.connected
        assert chain.closed == 0

    def test_logout_resets_verification(self, chain: FakeChainClient, identity: Identity) -> None:
        async def scenario() -> None:
            session = make_session(chain)
            await session.connect()
            await session.set_identity(identity)
            assert session.poller.active

            await session.logout(confirmed=True)

            assert not session.connected
            assert chain.closed == 1
            assert not session.poller.active
            assert session.verification is VerificationState.UNKNOWN
            assert session.identity is None

        asyncio.run(scenario())

    def test_wallet_status(self, chain: FakeChainClient) -> None:
        chain.allowance = Decimal("7")
        session = make_session(chain)
        asyncio.run(session.connect())

        status = asyncio.run(session.wallet_status())

        assert status.balance == Decimal("100")
        assert status.allowance == Decimal("7")
        assert status.address == chain.address

    def test_wallet_status_requires_wallet(self, chain: FakeChainClient) -> None:
        with pytest.raises(NoCredential):
            asyncio.run(make_session(chain).wallet_status())


class TestIdentityTracking:
    """Tests for identity changes and verification."""

    def test_identity_before_connect_is_unknown(self, chain: FakeChainClient, identity: Identity) -> None:
        async def scenario() -> None:
            session = make_session(chain)

            state = await session.set_identity(identity)

            assert state is VerificationState.UNKNOWN
            assert chain.calls == []

            chain.registered.add(("foo", "twitch"))
            await session.connect()
            assert session.verification is VerificationState.VERIFIED

        asyncio.run(scenario())

    def test_clearing_identity_stops_polling(self, chain: FakeChainClient, identity: Identity) -> None:
        async def scenario() -> None:
            session = make_session(chain)
            await session.connect()
            await session.set_identity(identity)

            state = await session.set_identity(None)

            assert state is VerificationState.UNKNOWN
            assert not session.poller.active

        asyncio.run(scenario())

    def test_verify_now_without_identity(self, chain: FakeChainClient) -> None:
        session = make_session(chain)
        asyncio.run(session.connect())

        with pytest.raises(InvalidRequest):
            asyncio.run(session.verify_now())


class TestEndToEnd:
    """Foo on Twitch: rejected while unregistered, donated once registered."""

    def test_donation_after_registration(self, chain: FakeChainClient) -> None:
        async def scenario() -> None:
            session = make_session(chain)
            await session.connect()
            await session.set_identity(Identity(name="Foo", platform="Twitch"))
            assert session.verification is VerificationState.NOT_FOUND

            rejected = await session.donate("10")
            assert rejected.success is False
            assert rejected.error_kind is ErrorKind.NOT_VERIFIED
            assert "token_balance" not in chain.call_names

            chain.registered.add(("foo", "twitch"))
            for _ in range(50):
                if session.verification is VerificationState.VERIFIED:
                    break
                await asyncio.sleep(INTERVAL)
            assert session.verification is VerificationState.VERIFIED
            assert not session.poller.active

            result = await session.donate("10")

            assert result.success is True
            assert result.transaction_id
            transfer_calls = [name for name in chain.call_names if name != "registry_exists"]
            assert transfer_calls == [
                "token_balance",
                "token_allowance",
                "token_approve",
                "token_allowance",
                "token_transfer_to_identity",
            ]

        asyncio.run(scenario())
