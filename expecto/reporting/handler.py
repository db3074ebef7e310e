"""
Assertion handler that writes failures into a run report.

Used by the collection runner: every failure reported by a chain is
formatted and attached to the step that is currently running, so a
failing check never interrupts the rest of the run.
"""

from __future__ import annotations

import logging

from ..assertions.handler import AssertionHandler, DefaultFormatter
from ..assertions.models import AssertionContext, Failure
from .reporter import Reporter

logger = logging.getLogger(__name__)


class RecordingHandler(AssertionHandler):
    """
    Route assertion events into a Reporter.

    Attributes:
        reporter: Receives one record_failure() call per failure
        formatter: Turns failures into text
        step_id: Step the next failures belong to
    """

    def __init__(self, reporter: Reporter, formatter: DefaultFormatter | None = None):
        self.reporter = reporter
        self.formatter = formatter if formatter is not None else DefaultFormatter()
        self.step_id: str | None = None
        self.fatal_count = 0

    def begin(self, step_id: str) -> None:
        """Attach subsequent failures to step_id."""
        self.step_id = step_id
        self.fatal_count = 0

    @property
    def step_failed(self) -> bool:
        return self.fatal_count > 0

    def success(self, context: AssertionContext) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(self.formatter.format_success(context))

    def failure(self, context: AssertionContext, failure: Failure) -> None:
        message = self.formatter.format_failure(context, failure)

        if self.step_id is None:
            logger.warning(f"Failure outside of any step: {message}")
            return

        if failure.is_fatal:
            self.fatal_count += 1
        else:
            logger.warning(message)

        self.reporter.record_failure(
            self.step_id,
            message,
            fatal=failure.is_fatal,
            expected_value=failure.expected if failure.has("expected") else None,
            actual_value=failure.actual if failure.has("actual") else None,
        )
