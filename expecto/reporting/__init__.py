"""
Reporting for HTTP Test Runs

This package provides reporting capabilities for capturing complete
records of test collection runs.

Features:
    - Run metadata (ID, timestamp, collection info)
    - Step-by-step records with timing, status codes and attempt counts
    - Every assertion failure of a step, plus non-fatal warnings
    - JSON serialization
    - Human-readable summaries

Usage:
    from expecto.schema_parsing import load_collection
    from expecto.reporting import Reporter

    collection, _ = load_collection("collection.yaml")
    reporter = Reporter.from_collection(collection)

    # Run execution
    reporter.start_run()

    reporter.start_step("list_users")
    reporter.record_response("list_users", status_code=200, attempts=1)
    reporter.complete_step_success("list_users")

    reporter.start_step("get_user")
    reporter.record_failure(
        "get_user",
        "EQUAL: expected: values are equal",
        expected_value="alice",
        actual_value="bob",
    )
    reporter.complete_step_failure("get_user")

    # Get report
    report = reporter.finish_run()
    print(report.summary())

    # Save to file
    reporter.save_json("reports/run-2024-01-15.json")

RecordingHandler plugs a Reporter into the assertion chain so that
failures land on the step that produced them.
"""

# Models
from .models import (
    RunReport,
    RunStatus,
    StepRecord,
    StepStatus,
    compute_collection_hash,
)

# Reporter
from .reporter import Reporter

# Assertion sink
from .handler import RecordingHandler

__all__ = [
    # Models
    "RunReport",
    "RunStatus",
    "StepRecord",
    "StepStatus",
    "compute_collection_hash",
    # Reporter
    "Reporter",
    # Assertion sink
    "RecordingHandler",
]
