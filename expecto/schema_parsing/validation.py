"""
Schema validation for HTTP test collections.

SchemaValidator walks the raw YAML data and collects every problem it
finds, each addressed by a dotted path such as "steps[0].expect.status",
so a single run reports all errors of a collection file at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..assertions.models import Severity
from ..retry.policy import RetryPredicate
from .models import HTTP_METHODS, AuthType, CheckOp


# ─────────────────────────────────────────────────────────────────────────────
# Validation Result Types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ValidationError:
    """One schema problem, with the offending value and a hint when known."""
    path: str  # e.g., "steps[0].expect.checks[1].op"
    message: str
    value: Any = None
    suggestion: str | None = None

    def __str__(self) -> str:
        parts = [f"❌ {self.path}: {self.message}"]
        if self.value is not None:
            parts.append(f"   Got: {self.value!r}")
        if self.suggestion:
            parts.append(f"   💡 {self.suggestion}")
        return "\n".join(parts)


@dataclass
class ValidationResult:
    """Every error found in one collection."""
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(
        self,
        path: str,
        message: str,
        value: Any = None,
        suggestion: str | None = None
    ) -> None:
        self.errors.append(ValidationError(path, message, value, suggestion))

    def __str__(self) -> str:
        if self.is_valid:
            return "✅ Schema validation passed"
        header = f"Schema validation failed with {len(self.errors)} error(s):\n"
        return "\n".join([header, *(str(e) for e in self.errors)])


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _choices(values: set[str]) -> str:
    return ", ".join(sorted(values))


# Names used in "Must be ..." messages
_TYPE_NAMES = {
    dict: "an object",
    list: "a list",
    str: "a string",
}


# ─────────────────────────────────────────────────────────────────────────────
# Schema Validator
# ─────────────────────────────────────────────────────────────────────────────

class SchemaValidator:
    """Validates raw parsed YAML against the collection schema."""

    REQUIRED_TOP_LEVEL = {"version", "name", "server", "steps"}
    OPTIONAL_TOP_LEVEL = {"env", "defaults"}
    STEP_FIELDS = {
        "id", "method", "path", "query", "headers", "json", "text",
        "expect", "retries", "timeout_ms", "delay_ms",
    }
    VALID_CHECK_OPS = {op.value for op in CheckOp}
    VALID_AUTH_TYPES = {t.value for t in AuthType}
    VALID_RETRY_POLICIES = {p.value for p in RetryPredicate}
    VALID_SEVERITIES = {s.value for s in Severity}

    # Checks that compare against a 'value'
    VALUE_REQUIRED_OPS = VALID_CHECK_OPS - {CheckOp.JSONPATH_EXISTS.value}
    LENGTH_OPS = {
        CheckOp.JSONPATH_LEN_GTE.value,
        CheckOp.JSONPATH_LEN_LTE.value,
        CheckOp.JSONPATH_LEN_EQ.value,
    }

    # Credentials each auth type needs, with the env key suggested for them
    AUTH_FIELDS = {
        "bearer": [("token", "TOKEN")],
        "api_key": [("key", "API_KEY")],
        "basic": [("username", "USER"), ("password", "PASS")],
    }

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.result = ValidationResult()
        self.step_ids: set[str] = set()

    def validate(self) -> ValidationResult:
        """Run all validation checks and return result."""
        self._validate_top_level()
        if not self.result.is_valid:
            return self.result

        self._validate_version()
        self._validate_name()
        self._validate_server()
        self._validate_env()
        self._validate_defaults()
        self._validate_steps()

        return self.result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _error(self, path: str, message: str, value: Any = None, suggestion: str | None = None) -> None:
        self.result.add_error(path, message, value=value, suggestion=suggestion)

    def _expect_type(self, path: str, value: Any, kind: type, optional: bool = False) -> bool:
        """Record an error unless value is a kind; None passes when optional."""
        if value is None and optional:
            return False
        if isinstance(value, kind):
            return True
        self._error(path, f"Must be {_TYPE_NAMES[kind]}", value=value)
        return False

    def _validate_non_negative(self, path: str, value: Any) -> None:
        if value is not None and not (_is_int(value) and value >= 0):
            self._error(path, "Must be a non-negative integer", value=value)

    def _validate_choice(self, path: str, value: Any, choices: set[str], what: str) -> None:
        if value is not None and value not in choices:
            self._error(path, f"Invalid {what}", value=value, suggestion=f"Valid values: {_choices(choices)}")

    def _validate_string_map(self, path: str, value: Any) -> None:
        if not self._expect_type(path, value, dict, optional=True):
            return
        for key, item in value.items():
            if isinstance(item, bool) or not isinstance(item, (str, int, float)):
                self._error(f"{path}.{key}", "Header value must be a string or number", value=item)

    # ------------------------------------------------------------------
    # Top level
    # ------------------------------------------------------------------

    def _validate_top_level(self) -> None:
        """Check required and unknown top-level keys."""
        keys = set(self.data)
        allowed = self.REQUIRED_TOP_LEVEL | self.OPTIONAL_TOP_LEVEL

        for key in sorted(self.REQUIRED_TOP_LEVEL - keys):
            self._error(key, f"Required field '{key}' is missing", suggestion=f"Add '{key}:' to your collection file")

        for key in sorted(keys - allowed):
            self._error(key, f"Unknown top-level field '{key}'", suggestion=f"Valid fields are: {_choices(allowed)}")

    def _validate_version(self) -> None:
        version = self.data.get("version")
        if not _is_int(version):
            self._error("version", "Must be an integer", value=version, suggestion="Use 'version: 1'")
        elif version < 1:
            self._error("version", "Must be >= 1", value=version)

    def _validate_name(self) -> None:
        name = self.data.get("name")
        if self._expect_type("name", name, str) and not name.strip():
            self._error("name", "Cannot be empty", suggestion="Provide a descriptive name for your collection")

    def _validate_server(self) -> None:
        server = self.data.get("server")
        if not self._expect_type("server", server, dict):
            return

        base_url = server.get("base_url")
        if not base_url:
            self._error(
                "server.base_url",
                "Required field is missing",
                suggestion="Add 'base_url: \"http://...\"' to server config",
            )
        elif self._expect_type("server.base_url", base_url, str) and not base_url.startswith(
            ("http://", "https://", "{{")
        ):
            self._error(
                "server.base_url",
                "Must be a valid HTTP(S) URL",
                value=base_url,
                suggestion="URL should start with 'http://' or 'https://'",
            )

        self._validate_string_map("server.headers", server.get("headers"))

        if server.get("auth") is not None:
            self._validate_auth(server["auth"])

    def _validate_auth(self, auth: Any) -> None:
        if not self._expect_type("server.auth", auth, dict):
            return

        auth_type = auth.get("type")
        if auth_type not in self.VALID_AUTH_TYPES:
            self._error(
                "server.auth.type",
                "Invalid auth type",
                value=auth_type,
                suggestion=f"Valid types: {_choices(self.VALID_AUTH_TYPES)}",
            )
            return

        for name, env_key in self.AUTH_FIELDS[auth_type]:
            path = f"server.auth.{name}"
            value = auth.get(name)
            if not value:
                self._error(
                    path,
                    f"Required for {auth_type} auth",
                    suggestion=f"Add '{name}: \"...\"' or '{name}: \"{{{{env.{env_key}}}}}\"'",
                )
            else:
                self._expect_type(path, value, str)

        if auth_type == "api_key":
            self._expect_type("server.auth.header", auth.get("header"), str, optional=True)

    def _validate_env(self) -> None:
        self._expect_type("env", self.data.get("env"), dict, optional=True)

    def _validate_defaults(self) -> None:
        defaults = self.data.get("defaults")
        if not self._expect_type("defaults", defaults, dict, optional=True):
            return

        for key in ("timeout_ms", "deadline_ms", "retries"):
            self._validate_non_negative(f"defaults.{key}", defaults.get(key))

        self._validate_choice(
            "defaults.retry_policy", defaults.get("retry_policy"), self.VALID_RETRY_POLICIES, "retry policy"
        )
        self._validate_choice(
            "defaults.severity", defaults.get("severity"), self.VALID_SEVERITIES, "severity"
        )

        delay = defaults.get("retry_delay_ms")
        if delay is None:
            return
        if not (isinstance(delay, list) and len(delay) == 2 and all(_is_int(d) and d >= 0 for d in delay)):
            self._error(
                "defaults.retry_delay_ms",
                "Must be a list of two non-negative integers [min, max]",
                value=delay,
                suggestion="Use 'retry_delay_ms: [50, 5000]'",
            )
        elif delay[0] > delay[1]:
            self._error("defaults.retry_delay_ms", "Minimum delay must not exceed maximum delay", value=delay)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate_steps(self) -> None:
        steps = self.data.get("steps")
        if not self._expect_type("steps", steps, list):
            return

        if not steps:
            self._error("steps", "Must contain at least one step", suggestion="Add at least one request step")
            return

        for i, step in enumerate(steps):
            self._validate_step(f"steps[{i}]", step)

    def _validate_step(self, path: str, step: Any) -> None:
        if not isinstance(step, dict):
            self._error(path, "Step must be an object", value=step)
            return

        for key in sorted(set(step) - self.STEP_FIELDS):
            self._error(
                f"{path}.{key}",
                f"Unknown step field '{key}'",
                suggestion=f"Valid fields are: {_choices(self.STEP_FIELDS)}",
            )

        self._validate_step_id(f"{path}.id", step.get("id"))

        method = step.get("method", "GET")
        if not isinstance(method, str) or method.upper() not in HTTP_METHODS:
            self._error(
                f"{path}.method",
                "Invalid HTTP method",
                value=method,
                suggestion=f"Valid methods: {', '.join(HTTP_METHODS)}",
            )

        self._expect_type(f"{path}.path", step.get("path"), str, optional=True)
        self._expect_type(f"{path}.query", step.get("query"), dict, optional=True)
        self._validate_string_map(f"{path}.headers", step.get("headers"))

        if "json" in step and "text" in step:
            self._error(
                path,
                "A step can have either 'json' or 'text', not both",
                suggestion="Remove one of the body fields",
            )
        self._expect_type(f"{path}.text", step.get("text"), str, optional=True)

        for key in ("retries", "timeout_ms", "delay_ms"):
            self._validate_non_negative(f"{path}.{key}", step.get(key))

        if step.get("expect") is not None:
            self._validate_expect(f"{path}.expect", step["expect"])

    def _validate_step_id(self, path: str, step_id: Any) -> None:
        if not step_id:
            self._error(path, "Step must have an 'id' field", suggestion="Add a unique identifier like 'id: my_step'")
        elif not isinstance(step_id, str):
            self._error(path, "Step id must be a string", value=step_id)
        elif step_id in self.step_ids:
            self._error(path, "Duplicate step id", value=step_id, suggestion="Each step must have a unique id")
        else:
            self.step_ids.add(step_id)

    def _validate_expect(self, path: str, expect: Any) -> None:
        if not self._expect_type(path, expect, dict):
            return

        status = expect.get("status")
        if status is not None and not (_is_int(status) and 100 <= status <= 599):
            self._error(f"{path}.status", "Must be an HTTP status code (100-599)", value=status)

        checks = expect.get("checks")
        if not self._expect_type(f"{path}.checks", checks, list, optional=True):
            return

        for i, check in enumerate(checks):
            self._validate_check(f"{path}.checks[{i}]", check)

    def _validate_check(self, path: str, check: Any) -> None:
        if not self._expect_type(path, check, dict):
            return

        op = check.get("op")
        if op not in self.VALID_CHECK_OPS:
            self._error(
                f"{path}.op",
                "Invalid check operator",
                value=op,
                suggestion=f"Valid operators: {_choices(self.VALID_CHECK_OPS)}",
            )
            return

        if op == CheckOp.HEADER_EQ.value:
            header = check.get("header")
            if not header or not isinstance(header, str):
                self._error(f"{path}.header", "header_eq requires a 'header' field (header name)", value=header)
        elif not check.get("path"):
            self._error(f"{path}.path", "Check requires a 'path' field (JSONPath expression)")
        else:
            self._expect_type(f"{path}.path", check["path"], str)

        if op in self.VALUE_REQUIRED_OPS and "value" not in check:
            self._error(f"{path}.value", f"Operator '{op}' requires a 'value' field")
        elif op in self.LENGTH_OPS and not (_is_int(check["value"]) and check["value"] >= 0):
            self._error(f"{path}.value", "Length must be a non-negative integer", value=check["value"])
