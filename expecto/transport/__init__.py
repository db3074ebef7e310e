"""
HTTP Transport Layer

This package provides the transport used to send single request attempts,
the replayable request body, and the models shared with the retry layer.

Usage:
    from expecto.transport import create_transport, HTTPTransport, HTTPRequest
    from expecto.schema_parsing import load_collection

    # Create from config
    collection, _ = load_collection("collection.yaml")
    transport = create_transport(collection.server)

    # Or create directly
    transport = HTTPTransport("http://localhost:8000")

    # Use as async context manager
    async with transport:
        response = await transport.send(
            HTTPRequest(method="GET", url="/users"),
            timeout=5.0,
        )
        print(response.status, response.json())

Errors are raised, not returned: ConnectError, AttemptTimeoutError and
BodyError all derive from TransportError.
"""

# Factory
from .factory import create_transport

# Transport implementations
from .base import BaseTransport
from .http import HTTPTransport

# Body
from .body import BodyReplay

# Models
from .models import (
    AttemptTimeoutError,
    BodyError,
    ConnectError,
    HTTPRequest,
    HTTPResponse,
    RedirectPolicy,
    TransportError,
)

__all__ = [
    # Factory
    "create_transport",
    # Base
    "BaseTransport",
    # Implementations
    "HTTPTransport",
    # Body
    "BodyReplay",
    # Models
    "HTTPRequest",
    "HTTPResponse",
    "RedirectPolicy",
    # Errors
    "TransportError",
    "ConnectError",
    "AttemptTimeoutError",
    "BodyError",
]
