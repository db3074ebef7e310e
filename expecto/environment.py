"""
Key-value store shared between requests and tests.

Values saved from one response (an id, a token) can be read back when
building later requests:

    env = e.env
    env.put("user_id", resp.json().path("$.id").raw)
    await e.get("/users/{id}", env.get_int("user_id")).expect()

Pass the same Environment in several Configs to share it between Expect
instances.
"""

from __future__ import annotations

from typing import Any

_TRUE = {"1", "t", "true", "yes", "y", "on"}
_FALSE = {"0", "f", "false", "no", "n", "off"}


class Environment:
    """Named values with typed getters."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> list[str]:
        return list(self._data)

    # ------------------------------------------------------------------
    # Typed getters
    # ------------------------------------------------------------------
    # Each raises KeyError for a missing key and ValueError when the
    # value cannot be converted.

    def get_str(self, key: str) -> str:
        value = self._require(key)
        if isinstance(value, (str, int, float, bool)):
            return str(value)
        raise ValueError(f"env key {key!r}: cannot convert {type(value).__name__} to str")

    def get_int(self, key: str) -> int:
        value = self._require(key)
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"env key {key!r}: {value!r} is not a whole number")
            return int(value)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"env key {key!r}: cannot convert {value!r} to int") from e

    def get_bool(self, key: str) -> bool:
        value = self._require(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
        raise ValueError(f"env key {key!r}: cannot convert {value!r} to bool")

    def get_str_list(self, key: str) -> list[str]:
        """A list or tuple of values, or a whitespace-separated string."""
        value = self._require(key)
        if isinstance(value, str):
            return value.split()
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        raise ValueError(f"env key {key!r}: cannot convert {type(value).__name__} to list")

    def _require(self, key: str) -> Any:
        try:
            return self._data[key]
        except KeyError:
            raise KeyError(f"env key {key!r} not found") from None

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"Environment(keys={self.keys()!r})"
