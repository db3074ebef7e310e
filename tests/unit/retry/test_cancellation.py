"""
Unit tests for CancelToken and race().
"""

import asyncio
import time

import pytest

from expecto.retry import CancelToken, race


# ============================================================================
# CancelToken
# ============================================================================


def test_cancel_is_monotonic():
    """Test the first reason sticks and later cancels are no-ops."""
    token = CancelToken()

    token.cancel("first")
    token.cancel("second")

    assert token.cancelled
    assert token.reason == "first"


def test_cancel_propagates_to_children():
    """Test cancelling a parent cancels its children, not the reverse."""
    parent = CancelToken()
    child = parent.child()
    other = parent.child()

    child.cancel("child only")
    assert not parent.cancelled
    assert not other.cancelled

    parent.cancel("stop")
    assert other.cancelled
    assert other.reason == "stop"


def test_child_of_cancelled_parent_starts_cancelled():
    """Test a child created after cancel is already cancelled."""
    parent = CancelToken()
    parent.cancel("gone")

    child = parent.child()

    assert child.cancelled
    assert child.reason == "gone"


def test_child_keeps_tighter_deadline():
    """Test a child never outlives its parent's deadline."""
    parent = CancelToken.with_timeout(1.0)

    looser = parent.child(timeout=10.0)
    tighter = parent.child(timeout=0.1)

    assert looser.deadline == parent.deadline
    assert tighter.deadline < parent.deadline


def test_deadline_is_not_cancellation():
    """Test an expired deadline is reported separately from cancel()."""
    token = CancelToken(deadline=time.monotonic() - 1)

    assert token.expired
    assert token.remaining() < 0
    assert not token.cancelled


def test_no_deadline():
    """Test a token without deadline never expires."""
    token = CancelToken()

    assert token.remaining() is None
    assert not token.expired


@pytest.mark.asyncio
async def test_wait_returns_after_cancel():
    """Test wait() wakes up when the token is cancelled."""
    token = CancelToken()
    asyncio.get_running_loop().call_later(0.01, token.cancel, "later")

    await asyncio.wait_for(token.wait(), timeout=1)

    assert token.reason == "later"


# ============================================================================
# race()
# ============================================================================


async def value_after(delay: float, value):
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_race_first_wins_and_losers_cancelled():
    """Test the fastest contender wins and the others are cancelled."""
    slow = asyncio.ensure_future(value_after(10, "slow"))

    result = await race(value_after(0.01, "fast"), slow)

    assert result.index == 0
    assert result.task.result() == "fast"
    assert slow.cancelled()


@pytest.mark.asyncio
async def test_race_timeout():
    """Test a timeout with no finished contender."""
    loser = asyncio.ensure_future(value_after(10, "never"))

    result = await race(loser, timeout=0.01)

    assert result.timed_out
    assert result.task is None
    assert loser.cancelled()


@pytest.mark.asyncio
async def test_race_tie_goes_to_first_contender():
    """Test simultaneous completion picks the earlier argument."""
    first = asyncio.get_running_loop().create_future()
    second = asyncio.get_running_loop().create_future()
    second.set_result("second")
    first.set_result("first")

    result = await race(first, second)

    assert result.index == 0


@pytest.mark.asyncio
async def test_race_error_is_a_result():
    """Test a contender that raises still wins; its error stays on the task."""
    async def boom():
        raise RuntimeError("boom")

    result = await race(boom(), value_after(10, "slow"))

    assert result.index == 0
    with pytest.raises(RuntimeError):
        result.task.result()


@pytest.mark.asyncio
async def test_race_outer_cancel_cancels_contenders():
    """Test cancelling the racing task cancels every contender."""
    contender = asyncio.ensure_future(value_after(10, "never"))
    racer = asyncio.ensure_future(race(contender))
    await asyncio.sleep(0.01)

    racer.cancel()
    with pytest.raises(asyncio.CancelledError):
        await racer

    assert contender.cancelled()
