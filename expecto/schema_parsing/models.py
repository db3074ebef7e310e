"""
Typed data structures for HTTP test collections.

This module contains all enums and dataclasses that represent
the internal typed structure of a parsed collection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..assertions.models import Severity
from ..retry.policy import RetryPredicate


# ─────────────────────────────────────────────────────────────────────────────
# Enums
# ─────────────────────────────────────────────────────────────────────────────

class CheckOp(str, Enum):
    """Supported response checks."""
    JSONPATH_EXISTS = "jsonpath_exists"
    JSONPATH_EQ = "jsonpath_eq"
    JSONPATH_CONTAINS = "jsonpath_contains"
    JSONPATH_LEN_GTE = "jsonpath_len_gte"
    JSONPATH_LEN_LTE = "jsonpath_len_lte"
    JSONPATH_LEN_EQ = "jsonpath_len_eq"
    HEADER_EQ = "header_eq"  # 'header' names the header, 'value' its expected value


class AuthType(str, Enum):
    """Supported authentication types."""
    BEARER = "bearer"
    API_KEY = "api_key"
    BASIC = "basic"


HTTP_METHODS = ("GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS")


# ─────────────────────────────────────────────────────────────────────────────
# Auth Configuration
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class AuthConfig:
    """
    Authentication configuration.

    Supports three auth types:
    - bearer: Uses Authorization: Bearer <token> header
    - api_key: Uses a custom header with the API key
    - basic: Uses Authorization: Basic <base64(user:pass)> header
    """
    type: AuthType
    # For bearer auth
    token: str | None = None
    # For api_key auth
    header: str = "X-API-Key"
    key: str | None = None
    # For basic auth
    username: str | None = None
    password: str | None = None


# ─────────────────────────────────────────────────────────────────────────────
# Server & Defaults
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ServerConfig:
    """Where requests are sent."""
    base_url: str
    headers: dict[str, str] = field(default_factory=dict)
    auth: AuthConfig | None = None


@dataclass
class Defaults:
    """Default settings for every request step."""
    timeout_ms: int = 30000
    deadline_ms: int | None = None
    retries: int = 0
    retry_policy: RetryPredicate = RetryPredicate.SERVER_ERRORS
    retry_delay_ms: tuple[int, int] = (50, 5000)
    severity: Severity = Severity.FATAL


# ─────────────────────────────────────────────────────────────────────────────
# Steps
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Check:
    """One response check."""
    op: CheckOp
    path: str = "$"  # JSONPath, unused by header_eq
    value: Any = None  # Optional, depends on op
    header: str | None = None  # header_eq only


@dataclass
class ExpectSpec:
    """What the response of a step must look like."""
    status: int | None = None
    checks: list[Check] = field(default_factory=list)


@dataclass
class RequestStep:
    """A step that sends one request and checks its response."""
    id: str
    method: str = "GET"
    path: str = "/"
    query: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None
    has_json: bool = False  # distinguishes 'json: null' from no json body
    text: str | None = None
    expect: ExpectSpec = field(default_factory=ExpectSpec)
    retries: int | None = None  # overrides defaults.retries
    timeout_ms: int | None = None  # overrides defaults.timeout_ms
    delay_ms: int | None = None  # Optional delay after step execution


# ─────────────────────────────────────────────────────────────────────────────
# Collection
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Collection:
    """Fully parsed and validated collection."""
    version: int
    name: str
    server: ServerConfig
    env: dict[str, Any] = field(default_factory=dict)
    defaults: Defaults = field(default_factory=Defaults)
    steps: list[RequestStep] = field(default_factory=list)
