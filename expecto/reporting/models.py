"""
Report data models for HTTP test runs.

A RunReport holds one StepRecord per collection step. Records start out
PENDING, are filled in by the Reporter while the runner works through
the collection, and are summarized when the run completes.
"""

from __future__ import annotations

import hashlib
import json
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class StepStatus(str, Enum):
    """Status of an individual step execution."""
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"


class RunStatus(str, Enum):
    """Overall status of a test run."""
    PENDING = "pending"
    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


# Keyed by enum value, shared by RunStatus and StepStatus
STATUS_ICONS = {
    "pending": "⏳",
    "running": "🔄",
    "passed": "✅",
    "failed": "❌",
    "error": "⚠️",
    "skipped": "⏭️",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment else None


def _elapsed_ms(started: datetime | None, ended: datetime) -> float | None:
    if started is None:
        return None
    return (ended - started).total_seconds() * 1000


@dataclass
class StepRecord:
    """
    Record of a single request step.

    Captures what was sent, what came back, how many attempts it took,
    and every assertion failure reported while checking the response.
    """
    step_id: str
    status: StepStatus = StepStatus.PENDING

    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_ms: float | None = None

    # Request
    method: str = ""
    path: str = ""
    request_body: Any = None

    # Response
    status_code: int | None = None
    attempts: int = 0
    rtt_ms: float | None = None
    response_body: Any = None

    # Expectations, and the expected/actual pair of the first failure
    expected_status: int | None = None
    checks: list[dict[str, Any]] = field(default_factory=list)
    expected_value: Any = None
    actual_value: Any = None

    failures: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    error_message: str | None = None
    error_details: dict[str, Any] | None = None
    failure_message: str | None = None

    def start(self) -> None:
        self.status = StepStatus.RUNNING
        self.started_at = _now()

    def complete(self, status: StepStatus) -> None:
        self.status = status
        self.ended_at = _now()
        self.duration_ms = _elapsed_ms(self.started_at, self.ended_at)

    def summary_line(self) -> str:
        """One line: icon, id, request, status code, duration and attempts."""
        status = self.status_code if self.status_code is not None else "-"
        timing = f"{self.duration_ms:.0f}ms" if self.duration_ms else "N/A"
        if self.attempts > 1:
            timing += f", {self.attempts} attempts"
        icon = STATUS_ICONS.get(self.status.value, "❓")
        return f"{icon} [{self.step_id}] {self.method} {self.path} -> {status} ({timing})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "step_id": self.step_id,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "duration_ms": self.duration_ms,
            "request": {
                "method": self.method,
                "path": self.path,
                "body": _jsonable(self.request_body),
            },
            "response": {
                "status": self.status_code,
                "attempts": self.attempts,
                "rtt_ms": self.rtt_ms,
                "body": _jsonable(self.response_body),
            },
            "expected_status": self.expected_status,
            "checks": self.checks,
            "expected_value": _jsonable(self.expected_value),
            "actual_value": _jsonable(self.actual_value),
            "failures": self.failures,
            "warnings": self.warnings,
            "error_message": self.error_message,
            "error_details": self.error_details,
            "failure_message": self.failure_message,
        }


@dataclass
class RunReport:
    """
    Complete record of a collection run against one server.

    The summary counters and the overall status are only meaningful
    after complete() has been called.
    """
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    started_at: datetime = field(default_factory=_now)
    ended_at: datetime | None = None
    duration_ms: float | None = None

    collection_name: str = ""
    collection_version: int = 1
    collection_hash: str = ""
    base_url: str = ""

    status: RunStatus = RunStatus.PENDING
    steps: list[StepRecord] = field(default_factory=list)

    total_steps: int = 0
    passed_steps: int = 0
    failed_steps: int = 0
    error_steps: int = 0
    skipped_steps: int = 0
    total_attempts: int = 0

    def start(self) -> None:
        self.status = RunStatus.RUNNING
        self.started_at = _now()

    def complete(self) -> None:
        """Stop the clock, count step outcomes and derive the run status."""
        self.ended_at = _now()
        self.duration_ms = _elapsed_ms(self.started_at, self.ended_at)

        counts = Counter(step.status for step in self.steps)
        self.total_steps = len(self.steps)
        self.passed_steps = counts[StepStatus.PASSED]
        self.failed_steps = counts[StepStatus.FAILED]
        self.error_steps = counts[StepStatus.ERROR]
        self.skipped_steps = counts[StepStatus.SKIPPED]
        self.total_attempts = sum(step.attempts for step in self.steps)

        # An errored step outranks a failed one
        if self.error_steps:
            self.status = RunStatus.ERROR
        elif self.failed_steps:
            self.status = RunStatus.FAILED
        else:
            self.status = RunStatus.PASSED

    def add_step(self, step: StepRecord) -> None:
        self.steps.append(step)

    def get_step(self, step_id: str) -> StepRecord | None:
        return next((step for step in self.steps if step.step_id == step_id), None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "run_id": self.run_id,
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "duration_ms": self.duration_ms,
            "collection_name": self.collection_name,
            "collection_version": self.collection_version,
            "collection_hash": self.collection_hash,
            "base_url": self.base_url,
            "status": self.status.value,
            "summary": {
                "total": self.total_steps,
                "passed": self.passed_steps,
                "failed": self.failed_steps,
                "errors": self.error_steps,
                "skipped": self.skipped_steps,
                "attempts": self.total_attempts,
            },
            "steps": [step.to_dict() for step in self.steps],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def summary(self) -> str:
        """
        Generate a human-readable summary.

        Each step gets one line, followed by the first line of its first
        failure (or its error) and the first line of every warning.
        """
        rule, thin = "═" * 59, "─" * 59
        duration = f"{self.duration_ms:.0f}ms" if self.duration_ms else "N/A"
        started = self.started_at.strftime("%Y-%m-%d %H:%M:%S UTC") if self.started_at else "N/A"
        counts = (
            f"{self.passed_steps} passed, {self.failed_steps} failed, "
            f"{self.error_steps} errors, {self.skipped_steps} skipped"
        )

        lines = [
            rule,
            f"  Run Report: {self.collection_name}",
            rule,
            f"  Run ID:     {self.run_id}",
            f"  Server:     {self.base_url}",
            f"  Status:     {STATUS_ICONS.get(self.status.value, '❓')} {self.status.value.upper()}",
            f"  Duration:   {duration}",
            f"  Started:    {started}",
            thin,
            f"  Steps: {counts}",
            thin,
        ]

        for step in self.steps:
            lines.append(f"  {step.summary_line()}")
            if step.failure_message:
                lines.append(f"      └─ {_first_line(step.failure_message)}")
            elif step.error_message:
                lines.append(f"      └─ Error: {step.error_message}")
            lines.extend(f"      ⚠ {_first_line(w)}" for w in step.warnings)

        lines.append(rule)
        return "\n".join(lines)


def compute_collection_hash(collection_dict: dict[str, Any]) -> str:
    """
    Compute a short hash identifying the collection contents.

    Args:
        collection_dict: The collection data as a dict

    Returns:
        First 12 hex chars of the SHA-256 of the sorted JSON form
    """
    serialized = json.dumps(collection_dict, sort_keys=True, default=str)
    return hashlib.sha256(serialized.encode()).hexdigest()[:12]


def _first_line(text: str) -> str:
    return text.splitlines()[0] if text else text


def _jsonable(value: Any) -> Any:
    """Return value if json can encode it, its str() otherwise."""
    if value is None:
        return None
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value
