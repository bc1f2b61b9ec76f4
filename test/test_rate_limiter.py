import asyncio
import pytest

from userop_engine.core.rate_limiter import RateLimiter


@pytest.mark.asyncio
async def test_window_admits_exactly_max_then_recovers(clock):
    limiter = RateLimiter(window_secs=1, max_requests=3, clock=clock)

    assert [await limiter.admit(1) for _ in range(3)] == [True, True, True]
    assert await limiter.admit(1) is False

    clock.advance(0.5)
    assert await limiter.admit(1) is False

    clock.advance(0.5)
    assert await limiter.admit(1) is True


@pytest.mark.asyncio
async def test_denied_requests_are_not_recorded(clock):
    limiter = RateLimiter(window_secs=10, max_requests=1, clock=clock)
    assert await limiter.admit(1)
    for _ in range(5):
        clock.advance(1)
        assert not await limiter.admit(1)
    # Only the first grant counts, so the window frees up 10s after it.
    clock.advance(5)
    assert await limiter.admit(1)


@pytest.mark.asyncio
async def test_sliding_window_expires_grants_individually(clock):
    limiter = RateLimiter(window_secs=1, max_requests=2, clock=clock)
    assert await limiter.admit(1)
    clock.advance(0.6)
    assert await limiter.admit(1)
    clock.advance(0.6)
    # First grant has left the window, second is still inside it.
    assert await limiter.admit(1)
    assert not await limiter.admit(1)


@pytest.mark.asyncio
async def test_chains_are_limited_independently(clock):
    limiter = RateLimiter(window_secs=1, max_requests=1, clock=clock)
    assert await limiter.admit(1)
    assert not await limiter.admit(1)
    assert await limiter.admit(137)
    assert await limiter.admit(42161)


@pytest.mark.asyncio
async def test_concurrent_admissions_never_exceed_limit(clock):
    limiter = RateLimiter(window_secs=1, max_requests=3, clock=clock)
    results = await asyncio.gather(*(limiter.admit(1) for _ in range(20)))
    assert sum(results) == 3


def test_rejects_non_positive_limits():
    with pytest.raises(ValueError):
        RateLimiter(0, 10)
    with pytest.raises(ValueError):
        RateLimiter(1, 0)
