"""
Transport factory for creating transports from configuration.

This module provides a factory function to create the appropriate
transport based on ServerConfig.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import BaseTransport
from .http import HTTPTransport

if TYPE_CHECKING:
    from ..schema_parsing import ServerConfig


def create_transport(config: ServerConfig) -> BaseTransport:
    """
    Create a transport instance from ServerConfig.

    Args:
        config: Server configuration from a parsed collection

    Returns:
        HTTPTransport bound to the configured base URL

    Raises:
        ValueError: If the config has no base URL

    Example:
        from expecto.schema_parsing import load_collection
        from expecto.transport import create_transport

        collection, _ = load_collection("collection.yaml")
        transport = create_transport(collection.server)

        async with transport:
            response = await transport.send(HTTPRequest("GET", "/health"))
    """
    if not config.base_url:
        raise ValueError("HTTP transport requires a 'base_url' in server config")

    return HTTPTransport(
        base_url=config.base_url,
        headers=config.headers,
        auth_config=config.auth,
    )
