"""
Per-account nonce sequencing for the DB3 SDK.

The storage node accepts a mutation only if it carries the account's next
expected nonce. NonceSequencer keeps the local copy of that counter.

Invariants:
    - The local value is never ahead of the node's next expected value
    - It must be synced from the node before first use in a session
    - It advances only after the node accepted a submission
    - lease() admits one in-flight submission per account at a time
    - resync() never overlaps a lease

Example:
    >>> sequencer = NonceSequencer("0xabc...")
    >>> sequencer.sync("5")
    >>> async with sequencer.lease() as nonce:
    ...     response = await transport.send_mutation(payload, nonce)
    ...     if response.code == 0:
    ...         sequencer.advance(nonce)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable

from .errors import InvalidArgumentError, NotInitializedError

logger = logging.getLogger(__name__)


class NonceSequencer:
    """Local nonce counter for one account.

    Attributes:
        address: Account the nonce belongs to
    """

    def __init__(self, address: str = "") -> None:
        self.address = address
        self._current: int | None = None
        self._lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        """Whether sync() has run."""
        return self._current is not None

    @property
    def current(self) -> int | None:
        """Current local nonce, or None before sync()."""
        return self._current

    @property
    def in_flight(self) -> bool:
        """Whether a submission currently holds the lease."""
        return self._lock.locked()

    def sync(self, remote_nonce: int | str) -> int:
        """Set the counter to the value reported by the node.

        Args:
            remote_nonce: Non-negative integer or its decimal string

        Returns:
            The new counter value

        Raises:
            InvalidArgumentError: If the value is negative or not decimal
        """
        if isinstance(remote_nonce, bool):
            raise InvalidArgumentError("Nonce must be an integer", argument="nonce")
        if isinstance(remote_nonce, str):
            text = remote_nonce.strip()
            if not (text.isascii() and text.isdigit()):
                raise InvalidArgumentError(
                    f"Nonce '{remote_nonce}' is not a decimal integer", argument="nonce"
                )
            value = int(text)
        elif isinstance(remote_nonce, int):
            value = remote_nonce
        else:
            raise InvalidArgumentError(
                f"Nonce must be an integer, got {type(remote_nonce).__name__}",
                argument="nonce",
            )
        if value < 0:
            raise InvalidArgumentError(f"Nonce cannot be negative: {value}", argument="nonce")

        previous = self._current
        self._current = value
        logger.info(f"Synced nonce for {self.address or 'account'}: {previous} -> {value}")
        return value

    def peek(self) -> str:
        """Return the nonce to attach to the next submission.

        Raises:
            NotInitializedError: If sync() has not run
        """
        if self._current is None:
            raise NotInitializedError()
        return str(self._current)

    def advance(self, accepted_nonce: str | None = None) -> None:
        """Move to the next nonce after an accepted submission.

        Args:
            accepted_nonce: Nonce the accepted submission carried. The
                counter becomes accepted_nonce + 1 rather than current + 1.

        Raises:
            NotInitializedError: If sync() has not run
        """
        if self._current is None:
            raise NotInitializedError()
        if accepted_nonce is None:
            self._current += 1
        else:
            self._current = int(accepted_nonce) + 1

    async def resync(self, fetch: Callable[[], Awaitable[int | str]]) -> int:
        """Read the remote nonce and adopt it while no submission is in flight.

        Waits for any lease to be released, then calls fetch() and sync()
        under the same lock, so a response resolving mid-resync cannot push
        the counter past the node's value.

        Args:
            fetch: Coroutine function returning the node's nonce

        Returns:
            The new counter value
        """
        async with self._lock:
            remote_nonce = await fetch()
            return self.sync(remote_nonce)

    @asynccontextmanager
    async def lease(self) -> AsyncIterator[str]:
        """Hold the account's nonce for one submission.

        Yields the nonce string. Other callers wait until the block exits,
        so two submissions never carry the same nonce.

        Raises:
            NotInitializedError: If sync() has not run
        """
        async with self._lock:
            yield self.peek()
