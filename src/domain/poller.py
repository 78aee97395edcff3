"""
Registration poller - Keeps the verification state of one identity fresh.

State Machine
=============

States (VerificationState):
- UNKNOWN: no check has run for the current identity
- CHECKING: a check for the current identity is pending
- VERIFIED: registry reported the identity (terminal, polling stops)
- NOT_FOUND: registry reported absence (polling continues)

Transitions:
    UNKNOWN   -> CHECKING   (start, or identity change)
    CHECKING  -> VERIFIED   (registry reports existence)
    CHECKING  -> NOT_FOUND  (registry reports absence)
    NOT_FOUND -> VERIFIED   (a later scheduled or manual check finds it)
    CHECKING  -> UNKNOWN    (stopped before the pending check answered)
    any       -> UNKNOWN    (identity changed, custody cleared)

Every state-invalidating action (start, stop, identity change, reset) bumps
a generation counter. A check captures the generation when it is issued and
its result is applied only if the generation is still current, so a slow
answer for a previous identity can never overwrite the state of the next one.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable

from .exceptions import ChainError, NoCredential
from .models import Identity
from .ports import ChainClient, VerificationState

logger = logging.getLogger(__name__)


class VerificationCell:
    """Owned state cell for the verification of the current identity."""

    def __init__(self) -> None:
        self._state = VerificationState.UNKNOWN
        self._identity: Identity | None = None
        self._generation = 0

    @property
    def state(self) -> VerificationState:
        return self._state

    @property
    def identity(self) -> Identity | None:
        return self._identity

    @property
    def generation(self) -> int:
        return self._generation

    def assign(self, identity: Identity | None) -> int:
        """Switch to identity (or none) with state UNKNOWN."""
        self._generation += 1
        self._identity = identity
        self._state = VerificationState.UNKNOWN
        return self._generation

    def begin(self, identity: Identity) -> int:
        """Start checking identity; returns the generation checks must carry."""
        self._generation += 1
        self._identity = identity
        self._state = VerificationState.CHECKING
        return self._generation

    def invalidate(self) -> int:
        """
        Discard in-flight results.

        A settled state is kept; a pending CHECKING falls back to UNKNOWN
        since no result will ever arrive for it.
        """
        self._generation += 1
        if self._state is VerificationState.CHECKING:
            self._state = VerificationState.UNKNOWN
        return self._generation

    def apply(self, generation: int, exists: bool) -> bool:
        """
        Apply a check result if it belongs to the current generation.

        Returns:
            True if the state was updated, False if the result was stale
        """
        if generation != self._generation:
            return False
        self._state = VerificationState.VERIFIED if exists else VerificationState.NOT_FOUND
        return True

    def is_verified(self, identity: Identity) -> bool:
        return self._state is VerificationState.VERIFIED and identity.same_as(self._identity)


class RegistrationPoller:
    """
    Cancellable polling loop over the registry existence check.

    At most one loop task is alive at a time. The loop stops on its own once
    the identity is found, or when stop()/reset() is called.
    """

    def __init__(
        self,
        cell: VerificationCell,
        client_provider: Callable[[], ChainClient | None],
        interval_seconds: float = 10.0,
    ) -> None:
        self._cell = cell
        self._client_provider = client_provider
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        """True while a scheduled check is pending."""
        return self._task is not None and not self._task.done()

    @property
    def state(self) -> VerificationState:
        return self._cell.state

    async def start(self, identity: Identity) -> VerificationState:
        """
        Check identity now and keep polling while it is not found.

        A loop already running for the same identity is left alone; a loop
        for a different identity is cancelled before anything else happens.

        Raises:
            NoCredential: If no session is connected
        """
        if identity.same_as(self._cell.identity) and (
            self.active or self._cell.state is VerificationState.VERIFIED
        ):
            return self._cell.state

        client = self._client_provider()
        if client is None:
            raise NoCredential("connect a wallet before verifying")

        await self._cancel_loop()
        generation = self._cell.begin(identity)
        logger.info("Verification started for %s on %s", identity.name, identity.platform)

        try:
            found = await self._check(client, identity, generation)
        except ChainError as e:
            logger.warning("Initial registry check failed: %s", e)
            found = False

        if not found and generation == self._cell.generation:
            self._schedule(identity, generation)
        return self._cell.state

    def stop(self) -> None:
        """Cancel any pending check. Idempotent."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("Verification polling stopped")
        self._cell.invalidate()

    def reset(self, identity: Identity | None = None) -> None:
        """Stop polling and return to UNKNOWN for identity (or no identity)."""
        self.stop()
        self._cell.assign(identity)

    async def check_once(self, identity: Identity) -> bool:
        """
        Run a single, directly awaited existence check.

        The result updates the shared state like a loop check. A negative
        result with no loop running starts the loop while a session is
        connected. Chain errors propagate to the caller.
        """
        if self._cell.is_verified(identity):
            return True

        client = self._client_provider()
        if client is None:
            logger.warning("Manual verification skipped: no wallet connected")
            return False

        if not identity.same_as(self._cell.identity) or self._cell.state is VerificationState.UNKNOWN:
            await self._cancel_loop()
            generation = self._cell.begin(identity)
        else:
            generation = self._cell.generation

        found = await self._check(client, identity, generation)
        if not found and not self.active and generation == self._cell.generation:
            self._schedule(identity, generation)
        return found

    async def _check(self, client: ChainClient, identity: Identity, generation: int) -> bool:
        exists = await client.registry_exists(identity)
        if self._cell.apply(generation, exists):
            logger.info(
                "Registry check for %s on %s: %s",
                identity.name,
                identity.platform,
                "found" if exists else "not found",
            )
        else:
            logger.debug("Discarded stale registry result for %s", identity.name)
        return exists

    def _schedule(self, identity: Identity, generation: int) -> None:
        if self._task is not None:
            self._task.cancel()
        self._task = asyncio.create_task(
            self._run(identity, generation), name=f"registry-poll-{identity.name}"
        )

    async def _run(self, identity: Identity, generation: int) -> None:
        while True:
            await asyncio.sleep(self._interval)
            if generation != self._cell.generation:
                return
            client = self._client_provider()
            if client is None:
                return
            try:
                if await self._check(client, identity, generation):
                    logger.info("Identity %s verified, polling finished", identity.name)
                    return
            except ChainError as e:
                logger.warning("Registry poll failed, retrying next interval: %s", e)

    async def _cancel_loop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
