"""
Failure record validation.

Checks that a Failure carries the payload fields its kind requires.
Chains run this only in strict mode, which the test suite enables.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .models import AssertionList, AssertionRange, AssertionType, Failure


class FieldRequirement(str, Enum):
    OPTIONAL = "optional"
    REQUIRED = "required"
    DENIED = "denied"


@dataclass(frozen=True)
class FieldTraits:
    """Which payload fields a failure kind must, may, or must not carry."""
    actual: FieldRequirement = FieldRequirement.OPTIONAL
    expected: FieldRequirement = FieldRequirement.OPTIONAL
    range: bool = False  # expected must be an AssertionRange
    list: bool = False   # expected must be an AssertionList


_R = FieldRequirement.REQUIRED
_O = FieldRequirement.OPTIONAL
_D = FieldRequirement.DENIED

_NO_PAYLOAD = FieldTraits(actual=_D, expected=_D)
_ACTUAL_ONLY = FieldTraits(actual=_R, expected=_D)
_COMPARISON = FieldTraits(actual=_R, expected=_R)
_RANGE = FieldTraits(actual=_R, expected=_R, range=True)
_CONTAINS = FieldTraits(actual=_R, expected=_O)
_BELONGS = FieldTraits(actual=_R, expected=_R, list=True)

T = AssertionType

TRAITS: dict[AssertionType, FieldTraits] = {
    T.USAGE: _NO_PAYLOAD,
    T.OPERATION: _NO_PAYLOAD,
    T.TYPE: _ACTUAL_ONLY,
    T.NOT_TYPE: _ACTUAL_ONLY,
    T.VALID: _ACTUAL_ONLY,
    T.NOT_VALID: _ACTUAL_ONLY,
    T.NIL: _ACTUAL_ONLY,
    T.NOT_NIL: _ACTUAL_ONLY,
    T.EMPTY: _ACTUAL_ONLY,
    T.NOT_EMPTY: _ACTUAL_ONLY,
    T.EQUAL: _COMPARISON,
    T.NOT_EQUAL: _COMPARISON,
    T.LT: _COMPARISON,
    T.LE: _COMPARISON,
    T.GT: _COMPARISON,
    T.GE: _COMPARISON,
    T.IN_RANGE: _RANGE,
    T.NOT_IN_RANGE: _RANGE,
    T.MATCH_SCHEMA: _COMPARISON,
    T.NOT_MATCH_SCHEMA: _COMPARISON,
    T.MATCH_PATH: _COMPARISON,
    T.NOT_MATCH_PATH: _COMPARISON,
    T.MATCH_REGEXP: _COMPARISON,
    T.NOT_MATCH_REGEXP: _COMPARISON,
    T.MATCH_FORMAT: _COMPARISON,
    T.NOT_MATCH_FORMAT: _COMPARISON,
    T.CONTAINS_KEY: _CONTAINS,
    T.NOT_CONTAINS_KEY: _CONTAINS,
    T.CONTAINS_ELEMENT: _CONTAINS,
    T.NOT_CONTAINS_ELEMENT: _CONTAINS,
    T.CONTAINS_SUBSET: _CONTAINS,
    T.NOT_CONTAINS_SUBSET: _CONTAINS,
    T.BELONGS: _BELONGS,
    T.NOT_BELONGS: _BELONGS,
}


def validate_failure(failure: Failure) -> str | None:
    """
    Check a failure record against the traits of its kind.

    Returns:
        None if the record is well-formed, otherwise a description
        of the first problem found.
    """
    traits = TRAITS.get(failure.type)
    if traits is None:
        return f"unknown assertion type {failure.type!r}"

    name = failure.type.value

    for field_name, requirement in (
        ("actual", traits.actual),
        ("expected", traits.expected),
    ):
        present = failure.has(field_name)
        if requirement == FieldRequirement.REQUIRED and not present:
            return f"failure of type {name} should have {field_name} field"
        if requirement == FieldRequirement.DENIED and present:
            return f"failure of type {name} can't have {field_name} field"

    if traits.range:
        if not isinstance(failure.expected, AssertionRange):
            return f"failure of type {name} should have AssertionRange as expected"
        if failure.expected.min is None or failure.expected.max is None:
            return "AssertionRange should have non-None min and max"

    if traits.list:
        if not isinstance(failure.expected, AssertionList):
            return f"failure of type {name} should have AssertionList as expected"
        if not failure.expected.items:
            return "AssertionList should be non-empty"

    return None
