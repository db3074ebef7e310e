"""
JSONPath evaluation.

Thin adapter over jsonpath-ng exposing evaluate(value, path), which
returns the matched value or raises PathError.
"""

from __future__ import annotations

from typing import Any

from jsonpath_ng import parse as parse_jsonpath
from jsonpath_ng.exceptions import JsonPathParserError


class PathError(Exception):
    """Raised when a JSONPath expression is invalid or matches nothing."""

    def __init__(self, message: str, path: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.details = details or {}


def evaluate(value: Any, path: str) -> Any:
    """
    Evaluate a JSONPath expression on data.

    A single match is returned as-is; several matches are returned as a
    list of values.

    Raises:
        PathError: If the expression can't be parsed or evaluated, or
            matches nothing
    """
    try:
        expr = parse_jsonpath(path)
    except JsonPathParserError as e:
        raise PathError("Invalid JSONPath expression", path, {"error": str(e)}) from e
    except Exception as e:
        raise PathError(
            "Failed to parse JSONPath",
            path,
            {"error": f"{type(e).__name__}: {e}"},
        ) from e

    try:
        matches = expr.find(value)
    except Exception as e:
        raise PathError(
            "Failed to evaluate JSONPath",
            path,
            {"error": f"{type(e).__name__}: {e}"},
        ) from e

    if not matches:
        raise PathError("Path does not exist", path)

    if len(matches) == 1:
        return matches[0].value
    return [m.value for m in matches]
