"""
Unit tests for Environment.
"""

import pytest

from expecto import Environment


def test_put_get_has_delete():
    """Test the basic store operations."""
    env = Environment({"a": 1})
    env.put("b", "two")

    assert env.has("a") and "b" in env
    assert env.get("b") == "two"
    assert env.get("missing", "default") == "default"

    env.delete("a")
    env.delete("never-set")
    assert env.keys() == ["b"]

    env.clear()
    assert env.keys() == []


@pytest.mark.parametrize(
    "value, expected",
    [(42, 42), ("17", 17), (3.0, 3), (True, 1)],
)
def test_get_int(value, expected):
    """Test get_int() converts numbers and numeric strings."""
    env = Environment({"key": value})

    assert env.get_int("key") == expected


@pytest.mark.parametrize("value", ["abc", 2.5, [1]])
def test_get_int_rejects(value):
    """Test get_int() raises ValueError on values it cannot convert."""
    with pytest.raises(ValueError):
        Environment({"key": value}).get_int("key")


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), ("yes", True), ("0", False), ("False", False), (0, False), (2, True)],
)
def test_get_bool(value, expected):
    """Test get_bool() accepts bools, numbers and common words."""
    assert Environment({"key": value}).get_bool("key") is expected


def test_get_str_and_list():
    """Test string and list conversions."""
    env = Environment({"n": 5, "words": "a b  c", "items": [1, "x"], "obj": {"k": 1}})

    assert env.get_str("n") == "5"
    assert env.get_str_list("words") == ["a", "b", "c"]
    assert env.get_str_list("items") == ["1", "x"]
    with pytest.raises(ValueError):
        env.get_str("obj")
    with pytest.raises(ValueError):
        env.get_bool("words")


def test_missing_key_raises_key_error():
    """Test typed getters raise KeyError naming the key."""
    with pytest.raises(KeyError, match="user_id"):
        Environment().get_str("user_id")
