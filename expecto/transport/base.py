"""
Base transport interface for HTTP communication.

This module defines the abstract base class that all transport
implementations must follow.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import HTTPRequest, HTTPResponse


class BaseTransport(ABC):
    """
    Abstract base class for HTTP transports.

    A transport sends one attempt of a request and returns the fully read
    response. Retries, backoff and cancellation are handled above it by
    RetryExecutor, so a transport never retries on its own.
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open whatever the transport needs (e.g. a client session)."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        pass

    @abstractmethod
    async def send(
        self,
        request: HTTPRequest,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        """
        Send one attempt of a request.

        Args:
            request: The request to send
            body: Request body bytes for this attempt
            timeout: Timeout for this attempt, in seconds

        Returns:
            HTTPResponse, whatever its status code

        Raises:
            ConnectError: If the server can't be reached
            AttemptTimeoutError: If the attempt timed out
            TransportError: For any other transport failure
        """
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Return True if the transport is currently connected."""
        pass

    async def __aenter__(self) -> BaseTransport:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()
