"""
Expecto - Fluent HTTP API Testing

This package provides chainable assertions on HTTP responses, backed by
a retrying request executor with deadlines, cancellation and replayable
request bodies.

Subpackages:
    - assertions: Assertion chain, handlers and value assertions
    - transport: HTTP transport layer and replayable bodies
    - retry: Retry policies, cancellation tokens and the retry executor
    - schema_parsing: Parse and validate collection YAML files
    - reporting: Run reports and result tracking

Usage:
    from expecto import Expect, StatusRange

    async with Expect(base_url="http://localhost:8000") as e:
        resp = await (
            e.post("/users")
            .with_json({"name": "alice"})
            .with_max_retries(2)
            .expect()
        )
        resp.status_range(StatusRange.SUCCESS)
        resp.json().path("$.id").not_none()

    # Collections
    from expecto import load_collection, run_collection_async

    collection, result = load_collection("collections/users.yaml")
    reporter = await run_collection_async(collection)
    print(reporter.get_summary())
"""

__version__ = "0.1.0"

# Fluent surface
from .expect import Config, Expect
from .environment import Environment
from .request import RequestBuilder
from .response import Response, StatusRange
from .printer import CompactPrinter, DebugPrinter, Printer

# Re-export assertions for convenience
from .assertions import (
    # Models
    AssertionContext,
    AssertionType,
    Failure,
    Severity,
    # Errors
    AssertionFailedError,
    ChainUsageError,
    # Chain
    Chain,
    # Handlers
    AssertionHandler,
    DefaultAssertionHandler,
    DefaultFormatter,
    RaisingReporter,
    CollectingReporter,
    # Values
    Value,
)

# Re-export retry for convenience
from .retry import (
    # Policy
    RetryPolicy,
    RetryPredicate,
    # Cancellation
    CancelToken,
    # Executor
    RetryExecutor,
    RetryOutcome,
    # Errors
    RetryError,
    SendCancelled,
    DeadlineExceeded,
    RetriesExhausted,
    AttemptFailed,
)

# Re-export transport for convenience
from .transport import (
    # Factory
    create_transport,
    # Base
    BaseTransport,
    # Implementations
    HTTPTransport,
    # Body
    BodyReplay,
    # Models
    HTTPRequest,
    HTTPResponse,
    RedirectPolicy,
    # Errors
    TransportError,
    ConnectError,
    AttemptTimeoutError,
    BodyError,
)

# Re-export schema_parsing for convenience
from .schema_parsing import (
    # Loader functions
    load_collection,
    validate_collection_yaml,
    # Models
    Collection,
    RequestStep,
    # Validation
    ValidationResult,
    SchemaValidator,
)

# Re-export reporting for convenience
from .reporting import (
    # Models
    RunReport,
    RunStatus,
    StepRecord,
    StepStatus,
    # Reporter
    Reporter,
    RecordingHandler,
)

# Collection runner
from .runner import run_collection_async

__all__ = [
    # Package info
    "__version__",
    # Fluent surface
    "Config",
    "Expect",
    "Environment",
    "RequestBuilder",
    "Response",
    "StatusRange",
    "Printer",
    "CompactPrinter",
    "DebugPrinter",
    # Assertions - Models
    "AssertionContext",
    "AssertionType",
    "Failure",
    "Severity",
    # Assertions - Errors
    "AssertionFailedError",
    "ChainUsageError",
    # Assertions - Chain
    "Chain",
    # Assertions - Handlers
    "AssertionHandler",
    "DefaultAssertionHandler",
    "DefaultFormatter",
    "RaisingReporter",
    "CollectingReporter",
    # Assertions - Values
    "Value",
    # Retry - Policy
    "RetryPolicy",
    "RetryPredicate",
    # Retry - Cancellation
    "CancelToken",
    # Retry - Executor
    "RetryExecutor",
    "RetryOutcome",
    # Retry - Errors
    "RetryError",
    "SendCancelled",
    "DeadlineExceeded",
    "RetriesExhausted",
    "AttemptFailed",
    # Transport - Factory
    "create_transport",
    # Transport - Base
    "BaseTransport",
    # Transport - Implementations
    "HTTPTransport",
    # Transport - Body
    "BodyReplay",
    # Transport - Models
    "HTTPRequest",
    "HTTPResponse",
    "RedirectPolicy",
    # Transport - Errors
    "TransportError",
    "ConnectError",
    "AttemptTimeoutError",
    "BodyError",
    # Schema parsing
    "load_collection",
    "validate_collection_yaml",
    "Collection",
    "RequestStep",
    "ValidationResult",
    "SchemaValidator",
    # Reporting
    "RunReport",
    "RunStatus",
    "StepRecord",
    "StepStatus",
    "Reporter",
    "RecordingHandler",
    # Runner
    "run_collection_async",
]
