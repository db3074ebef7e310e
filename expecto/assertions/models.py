"""
Assertion data models.

This module defines the records that flow from a chain to its handler:
the closed set of assertion kinds, failure severity, the context that
describes where an assertion happened, and the failure record itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..request import RequestBuilder
    from ..response import Response


class AssertionType(str, Enum):
    """Kind of check that produced a failure."""
    # Invalid use of the API (e.g. body set twice)
    USAGE = "usage"
    # Operation failed (e.g. request could not be sent)
    OPERATION = "operation"

    TYPE = "type"
    NOT_TYPE = "not_type"

    VALID = "valid"
    NOT_VALID = "not_valid"

    NIL = "nil"
    NOT_NIL = "not_nil"

    EMPTY = "empty"
    NOT_EMPTY = "not_empty"

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"

    LT = "lt"
    LE = "le"
    GT = "gt"
    GE = "ge"

    IN_RANGE = "in_range"
    NOT_IN_RANGE = "not_in_range"

    MATCH_SCHEMA = "match_schema"
    NOT_MATCH_SCHEMA = "not_match_schema"

    MATCH_PATH = "match_path"
    NOT_MATCH_PATH = "not_match_path"

    MATCH_REGEXP = "match_regexp"
    NOT_MATCH_REGEXP = "not_match_regexp"

    MATCH_FORMAT = "match_format"
    NOT_MATCH_FORMAT = "not_match_format"

    CONTAINS_KEY = "contains_key"
    NOT_CONTAINS_KEY = "not_contains_key"

    CONTAINS_ELEMENT = "contains_element"
    NOT_CONTAINS_ELEMENT = "not_contains_element"

    CONTAINS_SUBSET = "contains_subset"
    NOT_CONTAINS_SUBSET = "not_contains_subset"

    BELONGS = "belongs"
    NOT_BELONGS = "not_belongs"


class Severity(str, Enum):
    """How a failure is treated by the handler."""
    FATAL = "fatal"  # reported as a test failure
    LOG = "log"      # only logged


@dataclass(frozen=True)
class AssertionRange:
    """Expected range for IN_RANGE / NOT_IN_RANGE failures."""
    min: Any
    max: Any


@dataclass(frozen=True)
class AssertionList:
    """Expected list of values for BELONGS / NOT_BELONGS failures."""
    items: tuple[Any, ...]


class _Missing:
    def __repr__(self) -> str:
        return "<missing>"


# Distinguishes "no payload" from a payload that is literally None
MISSING: Any = _Missing()


@dataclass
class AssertionContext:
    """
    Where an assertion happened.

    Attributes:
        test_name: Name of the test (from Config)
        request_name: Name given via RequestBuilder.with_name()
        path: Literal path of nested assertions from the chain root
        aliased_path: Same as path, but restarted at the last alias
        request: Current request builder, if any
        response: Current response, if any
        rtt: Round-trip time of the current response, in seconds
    """
    test_name: str = ""
    request_name: str = ""
    path: list[str] = field(default_factory=list)
    aliased_path: list[str] = field(default_factory=list)
    request: RequestBuilder | None = None
    response: Response | None = None
    rtt: float | None = None

    def copy(self) -> AssertionContext:
        """Copy with independent path lists."""
        return replace(
            self,
            path=list(self.path),
            aliased_path=list(self.aliased_path),
        )

    @property
    def path_string(self) -> str:
        return ".".join(self.path)

    @property
    def aliased_path_string(self) -> str:
        return ".".join(self.aliased_path)


@dataclass
class Failure:
    """
    One failed check.

    The chain that reports the failure hands its handler a copy with
    severity and is_fatal stamped; the caller's record is left as is.

    Attributes:
        type: Kind of assertion that failed
        causes: Non-empty list of underlying errors
        actual: Value that was checked
        expected: Value it was checked against
        reference: Original value a delta was computed from
        delta: Allowed difference
        severity: Branch severity at the time of failure
        is_fatal: True when severity is FATAL
    """
    type: AssertionType
    causes: list[BaseException]
    actual: Any = MISSING
    expected: Any = MISSING
    reference: Any = MISSING
    delta: Any = MISSING
    severity: Severity = Severity.FATAL
    is_fatal: bool = False

    def __post_init__(self) -> None:
        if not self.causes:
            raise ValueError("Failure must have at least one cause")
        for cause in self.causes:
            if cause is None:
                raise ValueError("Failure causes must not contain None")
            if not isinstance(cause, BaseException):
                raise TypeError(
                    f"Failure causes must be exceptions, got {type(cause).__name__}"
                )

    @property
    def message(self) -> str:
        """First cause rendered as text."""
        return str(self.causes[0])

    def has(self, name: str) -> bool:
        """Return True if the named payload field is set."""
        return getattr(self, name) is not MISSING
