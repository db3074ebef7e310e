"""
Collection runner.

Executes every step of a parsed Collection through Expect and records
the outcome in a Reporter. Failures never stop the run: the chain
reports them to a RecordingHandler, which attaches them to the step
that produced them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from rich.console import Console

from .assertions.value import Value
from .expect import Config, Expect
from .reporting import RecordingHandler, Reporter, StepStatus
from .response import Response
from .retry.policy import RetryPolicy
from .schema_parsing import Check, CheckOp, Collection, RequestStep
from .transport import BaseTransport, create_transport

logger = logging.getLogger(__name__)


def build_config(
    collection: Collection,
    handler: RecordingHandler,
    transport: BaseTransport | None = None,
) -> Config:
    """Translate collection defaults into an Expect Config."""
    defaults = collection.defaults
    min_delay, max_delay = defaults.retry_delay_ms

    return Config(
        base_url=collection.server.base_url,
        transport=transport if transport is not None else create_transport(collection.server),
        handler=handler,
        test_name=collection.name,
        severity=defaults.severity,
        retry_policy=RetryPolicy.from_retries(
            defaults.retries,
            predicate=defaults.retry_policy,
            min_delay=min_delay / 1000,
            max_delay=max_delay / 1000,
        ),
        timeout=defaults.timeout_ms / 1000 if defaults.timeout_ms else None,
        deadline=defaults.deadline_ms / 1000 if defaults.deadline_ms else None,
    )


async def run_collection_async(
    collection: Collection,
    verbose: bool = True,
    quiet: bool = False,
    transport: BaseTransport | None = None,
    console: Console | None = None,
) -> Reporter:
    """Execute a collection and return the reporter with results."""
    console = console if console is not None else Console()
    reporter = Reporter.from_collection(collection)
    reporter.start_run()
    handler = RecordingHandler(reporter)
    expect = Expect(build_config(collection, handler, transport))

    if verbose and not quiet:
        console.print(f"\n{'='*60}")
        console.print(f"  [bold]Running:[/bold] {collection.name}")
        console.print(f"  [bold]Server:[/bold] {collection.server.base_url}")
        console.print(f"  [bold]Steps:[/bold] {len(collection.steps)}")
        console.print(f"{'='*60}\n")

    try:
        await expect.connect()

        for step in collection.steps:
            if verbose and not quiet:
                console.print(f"▶ [bold]Step:[/bold] {step.id} ({step.method} {step.path})")

            reporter.start_step(step.id)
            handler.begin(step.id)

            try:
                response = await run_step(expect, step)
            except Exception as e:
                logger.exception(f"Step {step.id} raised")
                reporter.complete_step_error(step.id, f"{type(e).__name__}: {e}")
                if not quiet:
                    console.print(f"  [red]❌ Error:[/red] {type(e).__name__}: {e}")
                continue
            finally:
                handler.step_id = None

            reporter.record_response(
                step.id,
                status_code=response.status_code,
                attempts=response.attempts,
                rtt_ms=response.rtt * 1000 if response.rtt is not None else None,
                body=_body_for_report(response),
            )

            if handler.step_failed:
                record = reporter.complete_step_failure(step.id)
                if not quiet:
                    for message in record.failures:
                        console.print(f"  [red]{message}[/red]")
            else:
                reporter.complete_step_success(step.id)
                if verbose and not quiet:
                    console.print(
                        f"  [green]✅ {response.status_code} "
                        f"in {response.attempts} attempt(s)[/green]"
                    )

            if step.delay_ms:
                await asyncio.sleep(step.delay_ms / 1000)

            if verbose and not quiet:
                console.print()

    except Exception as e:
        logger.exception("Run aborted")
        if not quiet:
            console.print(f"\n[red]❌ Fatal error:[/red] {type(e).__name__}: {e}")
        for record in reporter.report.steps:
            if record.status == StepStatus.PENDING:
                reporter.complete_step_error(
                    record.step_id, f"Run aborted: {type(e).__name__}: {e}"
                )

    finally:
        await expect.close()

    reporter.finish_run()
    return reporter


async def run_step(expect: Expect, step: RequestStep) -> Response:
    """Send one step's request and apply its expectations."""
    builder = expect.request(step.method, step.path).with_name(step.id)

    if step.headers:
        builder.with_headers(step.headers)
    for key, value in step.query.items():
        for item in value if isinstance(value, list) else [value]:
            builder.with_query(key, item)

    if step.has_json:
        builder.with_json(step.json)
    elif step.text is not None:
        builder.with_text(step.text)

    if step.retries is not None:
        builder.with_max_retries(step.retries)
    if step.timeout_ms:
        builder.with_timeout(step.timeout_ms / 1000)

    response = await builder.expect()

    if step.expect.status is not None:
        response.status(step.expect.status)

    # Each check runs on its own body branch. Failures of the response
    # itself (status, missing header, bad body) skip the remaining checks.
    for check in step.expect.checks:
        if check.op == CheckOp.HEADER_EQ:
            response.header(check.header).equal(str(check.value))
        else:
            apply_check(response.json(media_type=None), check)

    return response


def apply_check(body: Value, check: Check) -> Value:
    """Apply one JSONPath check to a decoded body."""
    target = body.path(check.path)

    if check.op == CheckOp.JSONPATH_EXISTS:
        return target
    if check.op == CheckOp.JSONPATH_EQ:
        return target.equal(check.value)
    if check.op == CheckOp.JSONPATH_CONTAINS:
        return target.contains(check.value)
    if check.op == CheckOp.JSONPATH_LEN_GTE:
        return target.length_gte(check.value)
    if check.op == CheckOp.JSONPATH_LEN_LTE:
        return target.length_lte(check.value)
    if check.op == CheckOp.JSONPATH_LEN_EQ:
        return target.length_eq(check.value)

    raise ValueError(f"Unknown check op: {check.op}")


def _body_for_report(response: Response) -> Any:
    if response.raw is None or not response.body:
        return None
    try:
        return json.loads(response.body)
    except (ValueError, UnicodeDecodeError):
        return response.raw.text()
