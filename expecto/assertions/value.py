"""
Fluent value assertions.

Value wraps any JSON-like value (a decoded response body, a header, a
match of a JSONPath expression) and exposes chainable checks. Every check
reads the branch failure flag first and becomes a no-op once the branch
has failed, so one root cause produces one failure.

Example:
    body = response.json()
    body.path("$.items").length_gte(1)
    for item in body.path("$.items").elements():
        item.path("$.id").not_none()
"""

from __future__ import annotations

import re
from typing import Any, Callable, Iterable

from .chain import Chain
from .jsonpath import PathError, evaluate
from .models import (
    AssertionList,
    AssertionRange,
    AssertionType,
    Failure,
)

SchemaValidator = Callable[[Any], Iterable[str]]


class Value:
    """Chainable assertions on a single value."""

    def __init__(self, chain: Chain, value: Any):
        self._chain = chain
        self._value = value

    @property
    def chain(self) -> Chain:
        return self._chain

    def raw(self) -> Any:
        """Return the wrapped value."""
        return self._value

    def alias(self, name: str) -> Value:
        """Restart the aliased path used in failure messages at name."""
        self._chain.set_alias(name)
        return self

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def path(self, expr: str) -> Value:
        """Return the value matched by a JSONPath expression."""
        if self._chain.failed():
            return Value(self._chain.clone(), None)

        with self._chain.step(f"path({expr!r})"):
            try:
                matched = evaluate(self._value, expr)
            except PathError as e:
                self._chain.fail(Failure(
                    type=AssertionType.MATCH_PATH,
                    causes=[e],
                    actual=self._value,
                    expected=expr,
                ))
                matched = None
            child = Value(self._chain.clone(), matched)

        return child

    def elements(self) -> list[Value]:
        """Return one independent Value per element of a list."""
        if self._chain.failed():
            return []

        children: list[Value] = []
        with self._chain.step("elements()"):
            if not isinstance(self._value, list):
                self._fail_type("list")
                return children

            for index, item in enumerate(self._value):
                with self._chain.step(f"[{index}]"):
                    children.append(Value(self._chain.clone(), item))

        return children

    # ------------------------------------------------------------------
    # Equality
    # ------------------------------------------------------------------

    def equal(self, expected: Any) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("equal()"):
            if self._value != expected:
                causes: list[BaseException] = [AssertionError("values are not equal")]
                if type(expected) is not type(self._value):
                    causes.append(TypeError(
                        f"type mismatch: expected {type(expected).__name__}, "
                        f"got {type(self._value).__name__}"
                    ))
                self._chain.fail(Failure(
                    type=AssertionType.EQUAL,
                    causes=causes,
                    actual=self._value,
                    expected=expected,
                ))

        return self

    def not_equal(self, unexpected: Any) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("not_equal()"):
            if self._value == unexpected:
                self._chain.fail(Failure(
                    type=AssertionType.NOT_EQUAL,
                    causes=[AssertionError("values are equal")],
                    actual=self._value,
                    expected=unexpected,
                ))

        return self

    def is_none(self) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("is_none()"):
            if self._value is not None:
                self._chain.fail(Failure(
                    type=AssertionType.NIL,
                    causes=[AssertionError("expected value to be null")],
                    actual=self._value,
                ))

        return self

    def not_none(self) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("not_none()"):
            if self._value is None:
                self._chain.fail(Failure(
                    type=AssertionType.NOT_NIL,
                    causes=[AssertionError("expected value to be non-null")],
                    actual=self._value,
                ))

        return self

    def is_type(self, *types: type) -> Value:
        """Check the value is an instance of one of the given types."""
        if self._chain.failed():
            return self

        with self._chain.step("is_type()"):
            if not isinstance(self._value, types):
                self._fail_type(" or ".join(t.__name__ for t in types))

        return self

    def belongs(self, *values: Any) -> Value:
        """Check the value equals one of the given values."""
        if self._chain.failed():
            return self

        with self._chain.step("belongs()"):
            if not values:
                self._fail_usage("belongs() requires at least one value")
            elif self._value not in values:
                self._chain.fail(Failure(
                    type=AssertionType.BELONGS,
                    causes=[AssertionError("expected value to be equal to one of the values")],
                    actual=self._value,
                    expected=AssertionList(tuple(values)),
                ))

        return self

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def is_empty(self) -> Value:
        return self._check_empty(expect_empty=True)

    def not_empty(self) -> Value:
        return self._check_empty(expect_empty=False)

    def contains(self, item: Any) -> Value:
        """
        Check containment.

        Works with:
        - strings: item is a substring
        - lists: item is an element
        - dicts: item is a key
        """
        return self._check_contains(item, negate=False)

    def not_contains(self, item: Any) -> Value:
        return self._check_contains(item, negate=True)

    def length_eq(self, length: int) -> Value:
        return self._check_length(length, "eq")

    def length_gte(self, length: int) -> Value:
        return self._check_length(length, "gte")

    def length_lte(self, length: int) -> Value:
        return self._check_length(length, "lte")

    # ------------------------------------------------------------------
    # Numbers and strings
    # ------------------------------------------------------------------

    def gt(self, other: float) -> Value:
        return self._compare(other, "gt")

    def ge(self, other: float) -> Value:
        return self._compare(other, "ge")

    def lt(self, other: float) -> Value:
        return self._compare(other, "lt")

    def le(self, other: float) -> Value:
        return self._compare(other, "le")

    def in_range(self, low: float, high: float) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("in_range()"):
            if not _is_number(self._value):
                self._fail_type("number")
            elif not low <= self._value <= high:
                self._chain.fail(Failure(
                    type=AssertionType.IN_RANGE,
                    causes=[AssertionError("expected value to be within range")],
                    actual=self._value,
                    expected=AssertionRange(low, high),
                ))

        return self

    def matches(self, pattern: str) -> Value:
        """Check the value is a string matching a regular expression."""
        if self._chain.failed():
            return self

        with self._chain.step(f"matches({pattern!r})"):
            if not isinstance(self._value, str):
                self._fail_type("str")
            else:
                try:
                    compiled = re.compile(pattern)
                except re.error as e:
                    self._fail_usage(f"invalid regular expression: {e}")
                else:
                    if compiled.search(self._value) is None:
                        self._chain.fail(Failure(
                            type=AssertionType.MATCH_REGEXP,
                            causes=[AssertionError("expected string to match regular expression")],
                            actual=self._value,
                            expected=pattern,
                        ))

        return self

    def matches_schema(self, validator: SchemaValidator, schema: Any = None) -> Value:
        """
        Check the value with an external schema validator.

        Args:
            validator: Callable returning an iterable of error messages
                (empty when the value is valid)
            schema: Shown as the expected value in failure messages
        """
        if self._chain.failed():
            return self

        with self._chain.step("matches_schema()"):
            errors = [str(e) for e in validator(self._value)]
            if errors:
                self._chain.fail(Failure(
                    type=AssertionType.MATCH_SCHEMA,
                    causes=[AssertionError(message) for message in errors],
                    actual=self._value,
                    expected=schema if schema is not None else "<schema>",
                ))

        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_empty(self, expect_empty: bool) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("is_empty()" if expect_empty else "not_empty()"):
            if not isinstance(self._value, (str, list, dict)):
                self._fail_type("str, list or dict")
            elif expect_empty and len(self._value) != 0:
                self._chain.fail(Failure(
                    type=AssertionType.EMPTY,
                    causes=[AssertionError("expected value to be empty")],
                    actual=self._value,
                ))
            elif not expect_empty and len(self._value) == 0:
                self._chain.fail(Failure(
                    type=AssertionType.NOT_EMPTY,
                    causes=[AssertionError("expected value to be non-empty")],
                    actual=self._value,
                ))

        return self

    def _check_contains(self, item: Any, negate: bool) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step("not_contains()" if negate else "contains()"):
            actual = self._value

            if isinstance(actual, str):
                if not isinstance(item, str):
                    self._fail_usage("cannot check if string contains non-string")
                    return self
                kind, not_kind, what = (
                    AssertionType.CONTAINS_SUBSET,
                    AssertionType.NOT_CONTAINS_SUBSET,
                    "substring",
                )
            elif isinstance(actual, list):
                kind, not_kind, what = (
                    AssertionType.CONTAINS_ELEMENT,
                    AssertionType.NOT_CONTAINS_ELEMENT,
                    "element",
                )
            elif isinstance(actual, dict):
                kind, not_kind, what = (
                    AssertionType.CONTAINS_KEY,
                    AssertionType.NOT_CONTAINS_KEY,
                    "key",
                )
            else:
                self._fail_type("str, list or dict")
                return self

            found = item in actual
            if found == negate:
                self._chain.fail(Failure(
                    type=not_kind if negate else kind,
                    causes=[AssertionError(
                        f"expected value {'not ' if negate else ''}to contain {what} {item!r}"
                    )],
                    actual=actual,
                    expected=item,
                ))

        return self

    def _check_length(self, length: int, op: str) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step(f"length_{op}({length})"):
            if not isinstance(self._value, (list, str, dict)):
                self._fail_type("list, str or dict")
                return self

            actual_length = len(self._value)

            if op == "gte":
                ok, kind, text = actual_length >= length, AssertionType.GE, "at least"
            elif op == "lte":
                ok, kind, text = actual_length <= length, AssertionType.LE, "at most"
            else:  # eq
                ok, kind, text = actual_length == length, AssertionType.EQUAL, "exactly"

            if not ok:
                self._chain.fail(Failure(
                    type=kind,
                    causes=[AssertionError(
                        f"expected length {text} {length}, got {actual_length}"
                    )],
                    actual=actual_length,
                    expected=length,
                ))

        return self

    def _compare(self, other: float, op: str) -> Value:
        if self._chain.failed():
            return self

        with self._chain.step(f"{op}()"):
            if not _is_number(self._value):
                self._fail_type("number")
                return self

            checks = {
                "gt": (self._value > other, AssertionType.GT, ">"),
                "ge": (self._value >= other, AssertionType.GE, ">="),
                "lt": (self._value < other, AssertionType.LT, "<"),
                "le": (self._value <= other, AssertionType.LE, "<="),
            }
            ok, kind, symbol = checks[op]
            if not ok:
                self._chain.fail(Failure(
                    type=kind,
                    causes=[AssertionError(f"expected value {symbol} {other}")],
                    actual=self._value,
                    expected=other,
                ))

        return self

    def _fail_type(self, expected: str) -> None:
        self._chain.fail(Failure(
            type=AssertionType.TYPE,
            causes=[TypeError(
                f"expected {expected}, got {type(self._value).__name__}"
            )],
            actual=self._value,
        ))

    def _fail_usage(self, message: str) -> None:
        self._chain.fail(Failure(
            type=AssertionType.USAGE,
            causes=[ValueError(message)],
        ))

    def __repr__(self) -> str:
        return f"Value({self._value!r})"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
