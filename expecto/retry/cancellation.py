"""
Cancellation tokens.

A CancelToken is the external stop signal of a request flow. It is
cancelled explicitly with cancel(), and may also carry an absolute
deadline on the time.monotonic() clock. Both are monotonic: once a token
is cancelled or its deadline has passed it stays that way.

    token = CancelToken.with_timeout(10.0)
    child = token.child()        # cancelled together with token
    child.cancel("assertion failed")   # does not affect token
"""

from __future__ import annotations

import asyncio
import logging
import time
import weakref

logger = logging.getLogger(__name__)


class CancelToken:
    """Monotonic cancellation signal with an optional deadline."""

    def __init__(self, deadline: float | None = None):
        """
        Args:
            deadline: Absolute time.monotonic() value after which the
                token counts as expired
        """
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._deadline = deadline
        self._children: weakref.WeakSet[CancelToken] = weakref.WeakSet()

    @classmethod
    def with_timeout(cls, seconds: float) -> CancelToken:
        """Create a token whose deadline is seconds from now."""
        return cls(deadline=time.monotonic() + seconds)

    def child(self, timeout: float | None = None) -> CancelToken:
        """
        Create a token cancelled whenever this one is.

        The child keeps the tighter of the parent's deadline and the
        optional timeout. Cancelling the child leaves the parent alone.
        """
        deadline = self._deadline
        if timeout is not None:
            own = time.monotonic() + timeout
            deadline = own if deadline is None else min(deadline, own)

        token = CancelToken(deadline=deadline)
        if self.cancelled:
            token.cancel(self._reason)
        else:
            self._children.add(token)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def expired(self) -> bool:
        """True once the deadline has passed."""
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline (may be negative), or None without one."""
        if self._deadline is None:
            return None
        return self._deadline - time.monotonic()

    def cancel(self, reason: str | None = None) -> None:
        """Cancel this token and its children. Later calls are no-ops."""
        if self._event.is_set():
            return

        self._reason = reason or "cancelled"
        self._event.set()
        logger.debug(f"Token cancelled: {self._reason}")

        for child in list(self._children):
            child.cancel(self._reason)

    async def wait(self) -> None:
        """Wait until the token is cancelled."""
        await self._event.wait()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else ("expired" if self.expired else "active")
        return f"CancelToken({state})"
