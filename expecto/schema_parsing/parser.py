"""
Schema parser for HTTP test collections.

This module converts validated YAML data into typed Collection structures
and resolves {{env.KEY}} templates in string values.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any

from ..assertions.models import Severity
from ..retry.policy import RetryPredicate
from .models import (
    AuthConfig,
    AuthType,
    Check,
    CheckOp,
    Collection,
    Defaults,
    ExpectSpec,
    RequestStep,
    ServerConfig,
)

logger = logging.getLogger(__name__)


class SchemaParser:
    """Parses and converts validated YAML to typed Collection structure."""

    # Regex for template interpolation: {{env.KEY}}
    TEMPLATE_PATTERN = re.compile(r"\{\{\s*env\.([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")

    def __init__(self, data: dict[str, Any], environ: dict[str, str] | None = None):
        """
        Args:
            data: Validated collection data
            environ: Fallback for keys missing from the collection's env
                (os.environ if None)
        """
        self.data = data
        self.env: dict[str, Any] = dict(data.get("env") or {})
        self.environ = environ if environ is not None else dict(os.environ)

    def parse(self) -> Collection:
        """Convert validated data to typed Collection."""
        return Collection(
            version=self.data["version"],
            name=self.data["name"],
            server=self._parse_server(),
            env=self.env,
            defaults=self._parse_defaults(),
            steps=self._parse_steps(),
        )

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def interpolate(self, value: Any) -> Any:
        """Resolve {{env.KEY}} in strings, recursively through lists and dicts."""
        if isinstance(value, str):
            return self.TEMPLATE_PATTERN.sub(self._resolve, value)
        if isinstance(value, list):
            return [self.interpolate(v) for v in value]
        if isinstance(value, dict):
            return {k: self.interpolate(v) for k, v in value.items()}
        return value

    def _resolve(self, match: re.Match) -> str:
        key = match.group(1)
        if key in self.env:
            return str(self.env[key])
        if key in self.environ:
            return self.environ[key]
        logger.warning(f"Unresolved template {match.group(0)}")
        return match.group(0)

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _parse_server(self) -> ServerConfig:
        server = self.interpolate(self.data["server"])

        return ServerConfig(
            base_url=server["base_url"].rstrip("/"),
            headers={k: str(v) for k, v in (server.get("headers") or {}).items()},
            auth=self._parse_auth(server.get("auth")),
        )

    def _parse_auth(self, auth_data: dict | None) -> AuthConfig | None:
        """Parse auth configuration if present."""
        if auth_data is None:
            return None

        auth_type = AuthType(auth_data["type"])

        return AuthConfig(
            type=auth_type,
            token=auth_data.get("token"),
            header=auth_data.get("header", "X-API-Key"),
            key=auth_data.get("key"),
            username=auth_data.get("username"),
            password=auth_data.get("password"),
        )

    def _parse_defaults(self) -> Defaults:
        defaults = self.data.get("defaults") or {}
        delay = defaults.get("retry_delay_ms", [50, 5000])
        return Defaults(
            timeout_ms=defaults.get("timeout_ms", 30000),
            deadline_ms=defaults.get("deadline_ms"),
            retries=defaults.get("retries", 0),
            retry_policy=RetryPredicate(defaults.get("retry_policy", "server_errors")),
            retry_delay_ms=(delay[0], delay[1]),
            severity=Severity(defaults.get("severity", "fatal")),
        )

    def _parse_steps(self) -> list[RequestStep]:
        return [self._parse_step(step) for step in self.data.get("steps", [])]

    def _parse_step(self, step: dict) -> RequestStep:
        step = self.interpolate(step)
        expect = step.get("expect") or {}

        return RequestStep(
            id=step["id"],
            method=step.get("method", "GET").upper(),
            path=step.get("path", "/"),
            query=step.get("query") or {},
            headers={k: str(v) for k, v in (step.get("headers") or {}).items()},
            json=step.get("json"),
            has_json="json" in step,
            text=step.get("text"),
            expect=ExpectSpec(
                status=expect.get("status"),
                checks=[self._parse_check(c) for c in expect.get("checks") or []],
            ),
            retries=step.get("retries"),
            timeout_ms=step.get("timeout_ms"),
            delay_ms=step.get("delay_ms"),
        )

    def _parse_check(self, check: dict) -> Check:
        return Check(
            op=CheckOp(check["op"]),
            path=check.get("path", "$"),
            value=check.get("value"),
            header=check.get("header"),
        )
