"""
Unit tests for Reporter, RunReport and RecordingHandler.
"""

import json

from expecto.assertions import AssertionContext, AssertionType, Failure, Severity
from expecto.reporting import RecordingHandler, Reporter, RunStatus, StepStatus
from expecto.schema_parsing import (
    Check,
    CheckOp,
    Collection,
    ExpectSpec,
    RequestStep,
    ServerConfig,
)


def make_collection() -> Collection:
    return Collection(
        version=1,
        name="Users API",
        server=ServerConfig(base_url="http://localhost:8000"),
        steps=[
            RequestStep(
                id="create_user",
                method="POST",
                path="/users",
                json={"name": "alice"},
                has_json=True,
                expect=ExpectSpec(
                    status=201,
                    checks=[Check(op=CheckOp.JSONPATH_EQ, path="$.name", value="alice")],
                ),
            ),
            RequestStep(id="list_users", path="/users"),
            RequestStep(id="delete_user", method="DELETE", path="/users/1"),
        ],
    )


def make_failure(severity: Severity = Severity.FATAL) -> Failure:
    return Failure(
        type=AssertionType.EQUAL,
        causes=[AssertionError("expected: values are equal")],
        actual="bob",
        expected="alice",
        severity=severity,
        is_fatal=severity == Severity.FATAL,
    )


# ============================================================================
# Reporter
# ============================================================================


def test_from_collection_prepopulates_steps():
    """Test every collection step gets a pending record."""
    reporter = Reporter.from_collection(make_collection(), run_id="run-1")
    report = reporter.report

    assert report.run_id == "run-1"
    assert report.base_url == "http://localhost:8000"
    assert len(report.collection_hash) == 12
    assert [s.step_id for s in report.steps] == ["create_user", "list_users", "delete_user"]
    assert all(s.status == StepStatus.PENDING for s in report.steps)

    create = report.get_step("create_user")
    assert create.request_body == {"name": "alice"}
    assert create.expected_status == 201
    assert create.checks == [{"op": "jsonpath_eq", "path": "$.name", "value": "alice"}]


def test_collection_hash_is_stable():
    """Test the same collection always hashes the same."""
    first = Reporter.from_collection(make_collection()).report
    second = Reporter.from_collection(make_collection()).report

    assert first.collection_hash == second.collection_hash
    assert first.run_id != second.run_id


def test_record_failure_fatal_and_warning():
    """Test fatal failures fail the step and the first one is kept."""
    reporter = Reporter.from_collection(make_collection())

    reporter.record_failure("list_users", "only logged", fatal=False)
    reporter.record_failure("list_users", "first", expected_value=1, actual_value=2)
    reporter.record_failure("list_users", "second", expected_value=3, actual_value=4)

    step = reporter.report.get_step("list_users")
    assert step.warnings == ["only logged"]
    assert step.failures == ["first", "second"]
    assert step.failure_message == "first"
    assert (step.expected_value, step.actual_value) == (1, 2)


def test_unknown_step_is_ignored():
    """Test recording against an unknown step id returns None."""
    reporter = Reporter.from_collection(make_collection())

    assert reporter.record_failure("nope", "lost") is None
    assert reporter.start_step("nope") is None


def test_run_status_and_totals():
    """Test finish_run() counts steps, attempts and derives the status."""
    reporter = Reporter.from_collection(make_collection())
    reporter.start_run()

    reporter.start_step("create_user")
    reporter.record_response("create_user", status_code=201, attempts=2, rtt_ms=12.5)
    reporter.complete_step_success("create_user")

    reporter.start_step("list_users")
    reporter.record_failure("list_users", "EQUAL: expected: values are equal")
    reporter.complete_step_failure("list_users")

    reporter.skip_step("delete_user", "run aborted")

    report = reporter.finish_run()

    assert report.status == RunStatus.FAILED
    assert (report.passed_steps, report.failed_steps, report.skipped_steps) == (1, 1, 1)
    assert report.total_attempts == 2
    assert report.get_step("delete_user").failure_message == "Skipped: run aborted"
    assert report.get_step("create_user").duration_ms is not None


def test_error_wins_over_failure():
    """Test a run with an errored step has ERROR status."""
    reporter = Reporter.from_collection(make_collection())
    reporter.start_run()

    reporter.complete_step_failure("create_user", "bad")
    reporter.complete_step_error("list_users", "RuntimeError: boom", {"where": "send"})

    report = reporter.finish_run()

    assert report.status == RunStatus.ERROR
    assert report.get_step("list_users").error_details == {"where": "send"}


def test_all_passed():
    """Test a run with only passing steps has PASSED status."""
    reporter = Reporter.from_collection(make_collection())
    reporter.start_run()
    for step in reporter.report.steps:
        reporter.complete_step_success(step.step_id, status_code=200, attempts=1)

    assert reporter.finish_run().status == RunStatus.PASSED


# ============================================================================
# Output
# ============================================================================


def test_summary_lines():
    """Test summary() lists each step with status, attempts and first failure line."""
    reporter = Reporter.from_collection(make_collection())
    reporter.start_run()
    reporter.record_response("create_user", status_code=503, attempts=3)
    reporter.record_failure("create_user", "EQUAL: unexpected http status\n   Path: ...")
    reporter.record_failure("create_user", "slow", fatal=False)
    reporter.complete_step_failure("create_user")
    reporter.complete_step_error("list_users", "ConnectError: refused")
    reporter.finish_run()

    summary = reporter.get_summary()

    assert "Run Report: Users API" in summary
    assert "[create_user] POST /users -> 503" in summary
    assert "3 attempts" in summary
    assert "└─ EQUAL: unexpected http status" in summary
    assert "Path: ..." not in summary
    assert "⚠ slow" in summary
    assert "Error: ConnectError: refused" in summary
    assert "[delete_user] DELETE /users/1 -> -" in summary


def test_to_dict_nests_request_and_response():
    """Test step records split request and response data."""
    reporter = Reporter.from_collection(make_collection())
    reporter.record_response("create_user", status_code=201, attempts=1, rtt_ms=3.0, body={"id": 1})

    data = reporter.report.to_dict()
    step = data["steps"][0]

    assert step["request"] == {"method": "POST", "path": "/users", "body": {"name": "alice"}}
    assert step["response"] == {"status": 201, "attempts": 1, "rtt_ms": 3.0, "body": {"id": 1}}
    assert data["summary"]["total"] == 0


def test_non_json_values_are_stringified():
    """Test values json can't encode are stored as text."""
    reporter = Reporter.from_collection(make_collection())
    reporter.record_failure("list_users", "bad", expected_value={1, 2}, actual_value=b"raw")

    step = reporter.report.to_dict()["steps"][1]

    assert step["expected_value"] == "{1, 2}"
    assert step["actual_value"] == "b'raw'"


def test_save_json(tmp_path):
    """Test save_json() writes the report, creating directories."""
    reporter = Reporter.from_collection(make_collection(), run_id="abc")
    reporter.start_run()
    reporter.finish_run()
    path = tmp_path / "reports" / "run.json"

    reporter.save_json(path)

    data = json.loads(path.read_text())
    assert data["run_id"] == "abc"
    assert data["collection_name"] == "Users API"
    assert len(data["steps"]) == 3


# ============================================================================
# RecordingHandler
# ============================================================================


def test_handler_records_against_current_step():
    """Test failures are attached to the step passed to begin()."""
    reporter = Reporter.from_collection(make_collection())
    handler = RecordingHandler(reporter)
    context = AssertionContext(test_name="Users API", request_name="create_user")

    handler.begin("create_user")
    handler.failure(context, make_failure())

    step = reporter.report.get_step("create_user")
    assert handler.step_failed
    assert step.failures[0].startswith("❌ EQUAL: expected: values are equal")
    assert "Request: create_user" in step.failures[0]
    assert (step.expected_value, step.actual_value) == ("alice", "bob")


def test_handler_non_fatal_is_warning(caplog):
    """Test a non-fatal failure is logged and kept as a warning."""
    reporter = Reporter.from_collection(make_collection())
    handler = RecordingHandler(reporter)

    handler.begin("list_users")
    handler.failure(AssertionContext(), make_failure(Severity.LOG))

    step = reporter.report.get_step("list_users")
    assert not handler.step_failed
    assert step.failures == []
    assert len(step.warnings) == 1
    assert "EQUAL" in caplog.text


def test_handler_begin_resets_count():
    """Test begin() starts counting failures afresh."""
    handler = RecordingHandler(Reporter.from_collection(make_collection()))

    handler.begin("create_user")
    handler.failure(AssertionContext(), make_failure())
    handler.begin("list_users")

    assert not handler.step_failed


def test_handler_without_step_only_logs(caplog):
    """Test a failure outside any step is logged, not recorded."""
    reporter = Reporter.from_collection(make_collection())
    handler = RecordingHandler(reporter)

    handler.failure(AssertionContext(), make_failure())

    assert "Failure outside of any step" in caplog.text
    assert all(not s.failures for s in reporter.report.steps)
