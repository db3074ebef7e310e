"""
HTTP transport over aiohttp.

This module sends single request attempts with an aiohttp ClientSession
and maps aiohttp failures onto the TransportError family, so the retry
layer can classify them without knowing about aiohttp.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from .base import BaseTransport
from .models import (
    AttemptTimeoutError,
    ConnectError,
    HTTPRequest,
    HTTPResponse,
    TransportError,
    merge_headers,
)

if TYPE_CHECKING:
    from ..schema_parsing.models import AuthConfig

logger = logging.getLogger(__name__)

AUTHORIZATION = "Authorization"


class HTTPTransport(BaseTransport):
    """
    HTTP/HTTPS transport backed by aiohttp.

    Relative request URLs are resolved against base_url. Default headers
    and auth headers are added to every request unless the request sets
    the same header itself.
    """

    def __init__(
        self,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        auth_config: AuthConfig | None = None,
        cookie_jar: bool = True,
    ):
        """
        Initialize HTTP transport.

        Args:
            base_url: Prefix for relative request URLs (e.g. "http://localhost:8000")
            headers: Default headers sent with every request
            auth_config: Optional authentication configuration
            cookie_jar: Keep cookies set by responses and send them back
                on later requests
        """
        self.base_url = base_url.rstrip("/")
        self._default_headers = dict(headers or {})
        self._auth_config = auth_config
        self._cookie_jar = cookie_jar
        self._session: aiohttp.ClientSession | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected and self._session is not None

    def _build_headers(self, request: HTTPRequest) -> dict[str, str]:
        headers = dict(self._default_headers)
        self._apply_auth_headers(headers)
        headers.update(request.headers)
        return headers

    def _apply_auth_headers(self, headers: dict[str, str]) -> None:
        """Apply authentication headers based on auth config."""
        if self._auth_config is None:
            return

        auth_type = self._auth_config.type.value

        if auth_type == "bearer":
            token = self._auth_config.token
            if token:
                headers[AUTHORIZATION] = f"Bearer {token}"
                logger.debug("Applied bearer auth header")

        elif auth_type == "api_key":
            key = self._auth_config.key
            header_name = self._auth_config.header or "X-API-Key"
            if key:
                headers[header_name] = key
                logger.debug(f"Applied API key auth header: {header_name}")

        elif auth_type == "basic":
            username = self._auth_config.username
            password = self._auth_config.password
            if username and password:
                credentials = base64.b64encode(
                    f"{username}:{password}".encode()
                ).decode("ascii")
                headers[AUTHORIZATION] = f"Basic {credentials}"
                logger.debug("Applied basic auth header")

    def resolve_url(self, url: str) -> str:
        if "://" in url or not self.base_url:
            return url
        return f"{self.base_url}/{url.lstrip('/')}"

    async def connect(self) -> None:
        """Create the HTTP session."""
        if self._session is None:
            # unsafe=True so servers addressed by IP (e.g. 127.0.0.1) keep their cookies
            jar = aiohttp.CookieJar(unsafe=True) if self._cookie_jar else aiohttp.DummyCookieJar()
            self._session = aiohttp.ClientSession(cookie_jar=jar)
        self._connected = True

    async def disconnect(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
        self._connected = False

    async def send(
        self,
        request: HTTPRequest,
        body: bytes | None = None,
        timeout: float | None = None,
    ) -> HTTPResponse:
        if not self.is_connected:
            raise TransportError("Transport not connected. Call connect() first.")

        url = self.resolve_url(request.url)
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        redirect_options: dict[str, Any] = {
            "allow_redirects": request.follows_redirects(body is not None),
        }
        if request.max_redirects is not None:
            # aiohttp fails once the redirect count reaches max_redirects
            redirect_options["max_redirects"] = request.max_redirects + 1

        logger.debug(f"{request.method} {url} (timeout={timeout})")

        try:
            async with self._session.request(
                request.method,
                url,
                params=request.query or None,
                headers=self._build_headers(request),
                data=body,
                cookies=request.cookies or None,
                timeout=client_timeout,
                **redirect_options,
            ) as resp:
                data = await resp.read()
                header_lines = list(resp.headers.items())
                response = HTTPResponse(
                    status=resp.status,
                    reason=resp.reason or "",
                    headers=merge_headers(header_lines),
                    body=data,
                    url=str(resp.url),
                    header_lines=header_lines,
                    cookies={name: morsel.value for name, morsel in resp.cookies.items()},
                )
                logger.debug(f"{request.method} {url} -> {resp.status} ({len(data)} bytes)")
                return response

        except asyncio.TimeoutError as e:
            raise AttemptTimeoutError(
                f"Request timed out after {timeout}s",
                data={"url": url, "method": request.method},
            ) from e
        except aiohttp.ClientConnectorError as e:
            raise ConnectError(
                f"Connection failed: {e}",
                data={"url": url},
            ) from e
        except aiohttp.TooManyRedirects as e:
            raise TransportError(
                f"Too many redirects (limit {request.max_redirects})",
                data={"url": url, "redirects": len(e.history)},
            ) from e
        except aiohttp.ServerDisconnectedError as e:
            raise ConnectError(
                f"Server disconnected: {e}",
                data={"url": url},
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(
                f"HTTP error: {e}",
                data={"url": url},
            ) from e

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        return f"HTTPTransport(base_url={self.base_url!r}, status={status})"
