"""
Reporter for building and managing run reports.

The runner drives a Reporter through the life of a run: start_run(),
then start_step() / record_response() / record_failure() and one of the
complete_step_*() calls per step, then finish_run().
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .models import (
    RunReport,
    StepRecord,
    StepStatus,
    compute_collection_hash,
)

if TYPE_CHECKING:
    from ..schema_parsing import Check, Collection

logger = logging.getLogger(__name__)


class Reporter:
    """
    Builds and manages run reports.

    Every method that takes a step_id returns the updated StepRecord, or
    None when the report has no step with that id.

    Example:
        from expecto.schema_parsing import load_collection
        from expecto.reporting import Reporter

        collection, _ = load_collection("collection.yaml")
        reporter = Reporter.from_collection(collection)

        reporter.start_run()

        reporter.start_step("list_users")
        reporter.record_response("list_users", status_code=200, attempts=1)
        reporter.complete_step_success("list_users")

        reporter.start_step("get_user")
        reporter.record_failure("get_user", "EQUAL: unexpected http status")
        reporter.complete_step_failure("get_user")

        report = reporter.finish_run()
        print(report.summary())
    """

    def __init__(self, report: RunReport):
        self.report = report

    @classmethod
    def from_collection(
        cls,
        collection: Collection,
        run_id: str | None = None,
    ) -> Reporter:
        """
        Create a Reporter with one pending StepRecord per collection step.

        Args:
            collection: The parsed collection the run will execute
            run_id: Custom run ID (a UUID4 if not provided)
        """
        report = RunReport(
            collection_name=collection.name,
            collection_version=collection.version,
            collection_hash=compute_collection_hash(_collection_to_dict(collection)),
            base_url=collection.server.base_url,
        )
        if run_id:
            report.run_id = run_id

        for step in collection.steps:
            report.add_step(StepRecord(
                step_id=step.id,
                method=step.method,
                path=step.path,
                request_body=step.json if step.has_json else step.text,
                expected_status=step.expect.status,
                checks=[_check_to_dict(c) for c in step.expect.checks],
            ))

        return cls(report)

    def _step(self, step_id: str) -> StepRecord | None:
        step = self.report.get_step(step_id)
        if step is None:
            logger.debug(f"No step '{step_id}' in report {self.report.run_id}")
        return step

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def start_run(self) -> None:
        self.report.start()

    def finish_run(self) -> RunReport:
        """Complete the report, computing summary stats and the run status."""
        self.report.complete()
        return self.report

    # ------------------------------------------------------------------
    # Step lifecycle
    # ------------------------------------------------------------------

    def start_step(self, step_id: str) -> StepRecord | None:
        step = self._step(step_id)
        if step:
            step.start()
        return step

    def record_response(
        self,
        step_id: str,
        status_code: int | None = None,
        attempts: int = 0,
        rtt_ms: float | None = None,
        body: Any = None,
    ) -> StepRecord | None:
        """Record what the server sent back for a step."""
        step = self._step(step_id)
        if step:
            step.status_code = status_code
            step.attempts = attempts
            step.rtt_ms = rtt_ms
            step.response_body = body
        return step

    def record_failure(
        self,
        step_id: str,
        message: str,
        fatal: bool = True,
        expected_value: Any = None,
        actual_value: Any = None,
    ) -> StepRecord | None:
        """
        Record one assertion failure against a step.

        Fatal failures fail the step; the first one also becomes its
        failure_message. Non-fatal ones are kept as warnings.
        """
        step = self._step(step_id)
        if step is None:
            return None

        if not fatal:
            step.warnings.append(message)
            return step

        if not step.failures:
            step.failure_message = message
            step.expected_value = expected_value
            step.actual_value = actual_value
        step.failures.append(message)
        return step

    def complete_step_success(
        self,
        step_id: str,
        status_code: int | None = None,
        attempts: int | None = None,
    ) -> StepRecord | None:
        """
        Mark a step as passed.

        status_code and attempts only overwrite what record_response()
        stored when given.
        """
        step = self._step(step_id)
        if step:
            if status_code is not None:
                step.status_code = status_code
            if attempts is not None:
                step.attempts = attempts
            step.complete(StepStatus.PASSED)
        return step

    def complete_step_failure(
        self,
        step_id: str,
        failure_message: str | None = None,
    ) -> StepRecord | None:
        """Mark a step as failed, optionally replacing its failure message."""
        step = self._step(step_id)
        if step:
            if failure_message is not None:
                step.failure_message = failure_message
            step.complete(StepStatus.FAILED)
        return step

    def complete_step_error(
        self,
        step_id: str,
        error_message: str,
        error_details: dict[str, Any] | None = None,
    ) -> StepRecord | None:
        """
        Mark a step as errored.

        An error means the step could not be executed at all, as opposed
        to a failure, where the response did not meet expectations.
        """
        step = self._step(step_id)
        if step:
            step.error_message = error_message
            step.error_details = error_details
            step.complete(StepStatus.ERROR)
        return step

    def skip_step(self, step_id: str, reason: str | None = None) -> StepRecord | None:
        step = self._step(step_id)
        if step:
            if reason:
                step.failure_message = f"Skipped: {reason}"
            step.complete(StepStatus.SKIPPED)
        return step

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def save_json(self, path: str | Path) -> None:
        """Write the report as JSON, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report.to_json())
        logger.info(f"Report saved to {path}")

    def get_summary(self) -> str:
        return self.report.summary()


def _check_to_dict(check: Check) -> dict[str, Any]:
    data = {"op": check.op.value, "path": check.path, "value": check.value}
    if check.header is not None:
        data["header"] = check.header
    return data


def _collection_to_dict(collection: Collection) -> dict[str, Any]:
    """Everything that affects what a run sends and checks, for hashing."""
    defaults = collection.defaults
    server = collection.server

    return {
        "version": collection.version,
        "name": collection.name,
        "server": {
            "base_url": server.base_url,
            "headers": server.headers,
            "auth": server.auth.type.value if server.auth else None,
        },
        "env": collection.env,
        "defaults": {
            "timeout_ms": defaults.timeout_ms,
            "deadline_ms": defaults.deadline_ms,
            "retries": defaults.retries,
            "retry_policy": defaults.retry_policy.value,
            "retry_delay_ms": list(defaults.retry_delay_ms),
            "severity": defaults.severity.value,
        },
        "steps": [
            {
                "id": step.id,
                "method": step.method,
                "path": step.path,
                "query": step.query,
                "headers": step.headers,
                "json": step.json if step.has_json else None,
                "text": step.text,
                "expect": {
                    "status": step.expect.status,
                    "checks": [_check_to_dict(c) for c in step.expect.checks],
                },
                "retries": step.retries,
                "timeout_ms": step.timeout_ms,
                "delay_ms": step.delay_ms,
            }
            for step in collection.steps
        ],
    }
