"""Tests for the retry scheduler."""

import time

import pytest

from leasedlock import RetryScheduler


@pytest.mark.asyncio
async def test_returns_first_truthy_result() -> None:
    """Test that run() stops at the first success."""
    calls = []

    async def attempt() -> str:
        calls.append(1)
        return "ok" if len(calls) == 3 else ""

    result = await RetryScheduler(1.0, initial_interval=0.001, max_interval=0.002).run(attempt)

    assert result == "ok"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_zero_timeout_attempts_once() -> None:
    """Test that a zero timeout still makes exactly one attempt."""
    calls = []

    async def attempt() -> bool:
        calls.append(1)
        return False

    assert await RetryScheduler(0).run(attempt) is False
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_gives_up_after_timeout() -> None:
    """Test that run() returns the falsy result once the deadline passes."""

    async def attempt() -> int:
        return 0

    start = time.monotonic()
    result = await RetryScheduler(0.2, max_interval=0.05).run(attempt)
    elapsed = time.monotonic() - start

    assert result == 0
    assert 0.2 <= elapsed < 0.5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"timeout": -1},
        {"timeout": 1, "initial_interval": 0},
        {"timeout": 1, "initial_interval": 0.5, "max_interval": 0.1},
        {"timeout": 1, "multiplier": 0.5},
    ],
)
def test_invalid_arguments(kwargs: dict) -> None:
    """Test argument validation."""
    with pytest.raises(ValueError):
        RetryScheduler(**kwargs)
