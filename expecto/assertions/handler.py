"""
Assertion handlers, formatter, and reporters.

A handler is the sink every chain reports to. The default handler turns
events into messages with a Formatter and routes them by severity:

- success      -> logger.debug
- FATAL failure -> reporter.report(message)
- LOG failure   -> logger.warning(message)

Reporters decide what a fatal failure means for the caller: raise
immediately (RaisingReporter, the default) or keep going and collect
messages (CollectingReporter).
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import Any

from .exceptions import AssertionFailedError
from .models import (
    AssertionContext,
    AssertionList,
    AssertionRange,
    Failure,
    Severity,
)

logger = logging.getLogger(__name__)


class AssertionHandler(ABC):
    """Receives the outcome of every assertion made through a chain."""

    @abstractmethod
    def success(self, context: AssertionContext) -> None:
        """Called by Chain.leave() when the assertion passed."""
        pass

    @abstractmethod
    def failure(self, context: AssertionContext, failure: Failure) -> None:
        """Called by Chain.fail() for the first failure of a branch."""
        pass


class Reporter(ABC):
    """Receives formatted fatal failures."""

    @abstractmethod
    def report(self, message: str) -> None:
        pass


class RaisingReporter(Reporter):
    """Raise AssertionFailedError for every fatal failure."""

    def report(self, message: str) -> None:
        raise AssertionFailedError(message)


class CollectingReporter(Reporter):
    """Collect fatal failures without interrupting the caller."""

    def __init__(self) -> None:
        self.messages: list[str] = []

    def report(self, message: str) -> None:
        self.messages.append(message)

    @property
    def failed(self) -> bool:
        return bool(self.messages)


class DefaultFormatter:
    """
    Render assertion events as human-readable text.

    Only the hook points a reporting pipeline needs are provided here;
    templates and colors are left to callers that subclass this.
    """

    def __init__(self, max_value_length: int = 200):
        self.max_value_length = max_value_length

    def format_success(self, context: AssertionContext) -> str:
        return f"✅ PASS: {context.path_string}"

    def format_failure(self, context: AssertionContext, failure: Failure) -> str:
        icon = "❌" if failure.is_fatal else "⚠️"
        lines = [f"{icon} {failure.type.value.upper()}: {failure.message}"]

        for cause in failure.causes[1:]:
            lines.append(f"   {cause}")

        if context.test_name:
            lines.append(f"   Test: {context.test_name}")
        if context.request_name:
            lines.append(f"   Request: {context.request_name}")
        if context.path:
            lines.append(f"   Path: {context.path_string}")
        if context.aliased_path and context.aliased_path != context.path:
            lines.append(f"   Aliased path: {context.aliased_path_string}")

        for label, name in (
            ("Expected", "expected"),
            ("Actual", "actual"),
            ("Reference", "reference"),
            ("Delta", "delta"),
        ):
            if failure.has(name):
                lines.append(f"   {label + ':':<10}{self.format_value(getattr(failure, name))}")

        return "\n".join(lines)

    def format_value(self, value: Any) -> str:
        """Format a value for display, truncating if too long."""
        if value is None:
            return "null"

        if isinstance(value, AssertionRange):
            formatted = f"[{self.format_value(value.min)}; {self.format_value(value.max)}]"
        elif isinstance(value, AssertionList):
            formatted = ", ".join(self.format_value(v) for v in value.items)
        elif isinstance(value, str):
            formatted = repr(value)
        elif isinstance(value, (list, dict)):
            try:
                formatted = json.dumps(value, ensure_ascii=False)
            except (TypeError, ValueError):
                formatted = repr(value)
        else:
            formatted = repr(value)

        if len(formatted) > self.max_value_length:
            return formatted[: self.max_value_length - 3] + "..."

        return formatted


class DefaultAssertionHandler(AssertionHandler):
    """
    Format events and route them to a reporter or logger by severity.

    Attributes:
        formatter: Turns events into text
        reporter: Receives FATAL failures
        logger: Receives successes (debug) and LOG failures (warning)
    """

    def __init__(
        self,
        reporter: Reporter | None = None,
        formatter: DefaultFormatter | None = None,
        log: logging.Logger | None = None,
    ):
        self.reporter = reporter if reporter is not None else RaisingReporter()
        self.formatter = formatter if formatter is not None else DefaultFormatter()
        self.logger = log if log is not None else logger

    def success(self, context: AssertionContext) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(self.formatter.format_success(context))

    def failure(self, context: AssertionContext, failure: Failure) -> None:
        message = self.formatter.format_failure(context, failure)

        if failure.severity == Severity.FATAL:
            self.reporter.report(message)
        else:
            self.logger.warning(message)
