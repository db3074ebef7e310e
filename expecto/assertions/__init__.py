"""
Assertion Chains for HTTP Response Validation

This package provides the assertion chain that tracks where each check
happens and whether its branch has already failed, the fluent Value
object built on it, and the handlers that turn failures into reports.

Supported checks on Value:
    - path: Navigate with a JSONPath expression
    - equal / not_equal: Compare with an expected value
    - is_none / not_none, is_empty / not_empty
    - contains / not_contains: Substring, element or key
    - length_eq / length_gte / length_lte
    - gt / ge / lt / le / in_range: Numeric comparisons
    - matches: Regular expression
    - is_type, belongs, matches_schema

Usage:
    from expecto.assertions import Chain, CollectingReporter, DefaultAssertionHandler, Value

    reporter = CollectingReporter()
    chain = Chain(DefaultAssertionHandler(reporter=reporter), name="Value()")

    data = {"results": [{"id": 1}, {"id": 2}]}
    value = Value(chain, data)

    value.path("$.results").length_gte(1)
    for item in value.path("$.results").elements():
        item.path("$.id").gt(0)

    if reporter.failed:
        print("\\n".join(reporter.messages))
"""

# Models
from .models import (
    MISSING,
    AssertionContext,
    AssertionList,
    AssertionRange,
    AssertionType,
    Failure,
    Severity,
)

# Errors
from .exceptions import AssertionFailedError, ChainUsageError

# Chain
from .chain import Chain
from .validation import validate_failure

# Handlers
from .handler import (
    AssertionHandler,
    CollectingReporter,
    DefaultAssertionHandler,
    DefaultFormatter,
    RaisingReporter,
    Reporter,
)

# Values
from .jsonpath import PathError, evaluate
from .value import Value

__all__ = [
    # Models
    "AssertionContext",
    "AssertionList",
    "AssertionRange",
    "AssertionType",
    "Failure",
    "MISSING",
    "Severity",
    # Errors
    "AssertionFailedError",
    "ChainUsageError",
    # Chain
    "Chain",
    "validate_failure",
    # Handlers
    "AssertionHandler",
    "DefaultAssertionHandler",
    "DefaultFormatter",
    "Reporter",
    "RaisingReporter",
    "CollectingReporter",
    # Values
    "Value",
    "evaluate",
    "PathError",
]
