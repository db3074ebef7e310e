"""
Replayable request body.

BodyReplay wraps a forward-only byte stream (anything with read(size) and
optionally close()) so a request can be sent more than once:

    body = BodyReplay(open("payload.bin", "rb"), release=on_release)

    data = body.read()    # attempt 1 drains upstream into a buffer
    body.rewind()
    data = body.read()    # attempt 2 reads the buffer, upstream untouched
    body.close()

Upstream is closed and the release hook fired exactly once, either when
the stream reaches its end, on close(), or when the BodyReplay is garbage
collected, whichever comes first.

An error raised by the upstream stream is wrapped in BodyError once and
the same BodyError instance is raised again by every later read(),
rewind(), snapshot() and close().

Not thread-safe: a body belongs to one request flow.
"""

from __future__ import annotations

import io
import logging
import weakref
from typing import Any, Callable, Protocol

from .models import BodyError

logger = logging.getLogger(__name__)

ReleaseHook = Callable[[], Any]

_CHUNK_SIZE = 64 * 1024


class Readable(Protocol):
    def read(self, size: int = -1) -> bytes: ...


def _release_upstream(upstream: Readable, release: ReleaseHook | None) -> None:
    """Close upstream and fire release. Runs at most once per body."""
    try:
        close = getattr(upstream, "close", None)
        if close is not None:
            close()
    finally:
        if release is not None:
            release()


class BodyReplay:
    """Forward-only stream made rewindable by buffering it once."""

    def __init__(self, upstream: Readable, release: ReleaseHook | None = None):
        """
        Args:
            upstream: Stream to wrap. BodyReplay owns it from now on.
            release: Called once, right after upstream is closed
        """
        self._buffer = bytearray()
        self._cursor = 0
        self._drained = False
        self._closed = False
        self._error: BodyError | None = None
        self._upstream: Readable | None = upstream
        # detach() hands out upstream and release only once, so release can
        # never run twice, and runs them on garbage collection otherwise.
        self._finalizer = weakref.finalize(self, _release_upstream, upstream, release)

    @classmethod
    def from_bytes(cls, data: bytes) -> BodyReplay:
        return cls(io.BytesIO(data))

    @property
    def drained(self) -> bool:
        """True once upstream has been read to its end."""
        return self._drained

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def released(self) -> bool:
        """True once upstream has been closed and release fired."""
        return not self._finalizer.alive

    @property
    def error(self) -> BodyError | None:
        """Cached upstream error, if any."""
        return self._error

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        """
        Read up to size bytes (all remaining bytes if size < 0).

        Returns b"" at the end of the body.

        Raises:
            BodyError: If upstream failed, now or earlier
        """
        self._raise_if_failed()

        if size == 0:
            return b""

        if self._cursor < len(self._buffer) or self._drained:
            return self._read_buffer(size)

        if size is None or size < 0:
            self._drain()
            return self._read_buffer(-1)

        chunk = self._read_upstream(size)
        if not chunk:
            self._finish()
            return b""

        self._buffer.extend(chunk)
        self._cursor = len(self._buffer)
        return bytes(chunk)

    def rewind(self) -> None:
        """
        Move the cursor back to the start of the body.

        Drains the rest of upstream first if it wasn't fully read.

        Raises:
            BodyError: If upstream failed, now or earlier
        """
        self._raise_if_failed()
        if not self._drained:
            self._drain()
        self._cursor = 0

    def snapshot(self) -> io.BytesIO:
        """
        Return an independent reader over the whole body.

        Forces a full drain. The cursor of this BodyReplay is not moved.

        Raises:
            BodyError: If upstream failed, now or earlier
        """
        self._raise_if_failed()
        if not self._drained:
            self._drain()
        return io.BytesIO(bytes(self._buffer))

    def getvalue(self) -> bytes:
        """Return the whole body as bytes, draining upstream if needed."""
        return self.snapshot().getvalue()

    def close(self) -> None:
        """
        Drain the rest of upstream, then close it and fire release.

        Idempotent. The buffered body stays readable after close() so it
        can still be replayed.

        Raises:
            BodyError: If upstream failed, now or earlier
        """
        if self._closed:
            self._raise_if_failed()
            return

        self._closed = True
        self._raise_if_failed()
        if not self._drained:
            self._drain()
        self._release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read_buffer(self, size: int) -> bytes:
        start = self._cursor
        end = len(self._buffer) if size is None or size < 0 else min(start + size, len(self._buffer))
        self._cursor = end
        return bytes(self._buffer[start:end])

    def _read_upstream(self, size: int) -> bytes:
        try:
            return self._upstream.read(size)
        except Exception as e:
            self._fail(e, "read")
            raise self._error

    def _drain(self) -> None:
        while True:
            chunk = self._read_upstream(_CHUNK_SIZE)
            if not chunk:
                break
            self._buffer.extend(chunk)
        self._finish()

    def _finish(self) -> None:
        """Mark end of stream and release upstream."""
        self._drained = True
        self._release()

    def _release(self) -> None:
        detached = self._finalizer.detach()
        self._upstream = None
        if detached is None:
            return

        _, _, args, _ = detached
        upstream, release = args
        try:
            _release_upstream(upstream, release)
        except Exception as e:
            if self._error is not None:
                logger.debug(f"Body close failed after earlier error: {e}")
                return
            self._fail(e, "close")
            raise self._error
        logger.debug(f"Body released after {len(self._buffer)} bytes")

    def _fail(self, error: Exception, operation: str) -> None:
        if self._error is not None:
            return
        self._error = BodyError(
            f"Body {operation} failed: {type(error).__name__}: {error}",
            data={"operation": operation},
        )
        self._error.__cause__ = error
        self._drained = True
        logger.debug(f"Body {operation} failed: {error}")
        if operation == "read":
            # Upstream is unusable; still close it and fire release once.
            self._release()

    def _raise_if_failed(self) -> None:
        if self._error is not None:
            raise self._error

    def __repr__(self) -> str:
        state = "failed" if self._error else ("drained" if self._drained else "streaming")
        return f"BodyReplay({len(self._buffer)} bytes, {state})"
