"""Tests for the distributed fixed-window rate limiter."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from social_server.cache import CacheStore, RateLimiter, RatePolicy, build_policies
from social_server.constants import SCOPE_GLOBAL, SCOPE_MEDIA_UPLOAD, SCOPE_POST_CREATE, SCOPE_REGISTRATION
from social_server.exceptions import CacheStoreError


@pytest.mark.asyncio
async def test_quota_then_refusal(store: CacheStore):
    limiter = RateLimiter(store, [RatePolicy(SCOPE_POST_CREATE, points=9, window_seconds=60)])

    for _ in range(9):
        assert await limiter.try_consume(SCOPE_POST_CREATE, "u1") is True

    decision = await limiter.consume(SCOPE_POST_CREATE, "u1")
    assert decision.allowed is False
    assert decision.remaining == 0
    assert 0 < decision.reset_after_ms <= 60_000
    assert 1 <= decision.retry_after_seconds <= 60


@pytest.mark.asyncio
async def test_buckets_are_per_actor(store: CacheStore):
    limiter = RateLimiter(store, [RatePolicy(SCOPE_MEDIA_UPLOAD, points=1, window_seconds=60)])
    assert await limiter.try_consume(SCOPE_MEDIA_UPLOAD, "u1") is True
    assert await limiter.try_consume(SCOPE_MEDIA_UPLOAD, "u1") is False
    assert await limiter.try_consume(SCOPE_MEDIA_UPLOAD, "u2") is True


@pytest.mark.asyncio
async def test_scopes_are_independent(store: CacheStore):
    limiter = RateLimiter(
        store,
        [RatePolicy(SCOPE_POST_CREATE, points=1, window_seconds=60), RatePolicy(SCOPE_MEDIA_UPLOAD, points=1, window_seconds=60)],
    )
    assert await limiter.try_consume(SCOPE_POST_CREATE, "u1") is True
    assert await limiter.try_consume(SCOPE_MEDIA_UPLOAD, "u1") is True


@pytest.mark.asyncio
async def test_window_resets(store: CacheStore):
    limiter = RateLimiter(store, [RatePolicy(SCOPE_GLOBAL, points=2, window_seconds=0.2)])
    assert await limiter.try_consume(SCOPE_GLOBAL, "10.0.0.1") is True
    assert await limiter.try_consume(SCOPE_GLOBAL, "10.0.0.1") is True
    assert await limiter.try_consume(SCOPE_GLOBAL, "10.0.0.1") is False

    await asyncio.sleep(0.3)
    assert await limiter.try_consume(SCOPE_GLOBAL, "10.0.0.1") is True


@pytest.mark.asyncio
async def test_concurrent_consumers_never_exceed_quota(store: CacheStore):
    limiter = RateLimiter(store, [RatePolicy(SCOPE_POST_CREATE, points=5, window_seconds=60)])
    results = await asyncio.gather(*(limiter.try_consume(SCOPE_POST_CREATE, "u1") for _ in range(12)))
    assert results.count(True) == 5


@pytest.mark.asyncio
async def test_cost_counts_multiple_points(store: CacheStore):
    limiter = RateLimiter(store, [RatePolicy(SCOPE_GLOBAL, points=3, window_seconds=60)])
    decision = await limiter.consume(SCOPE_GLOBAL, "u1", cost=2)
    assert decision.allowed is True
    assert decision.remaining == 1
    assert await limiter.try_consume(SCOPE_GLOBAL, "u1", cost=2) is False


@pytest.mark.asyncio
async def test_store_failure_refuses_by_default():
    store = AsyncMock(spec=CacheStore)
    store.consume.side_effect = CacheStoreError("store down")
    limiter = RateLimiter(store, [RatePolicy(SCOPE_POST_CREATE, points=9, window_seconds=60)])
    decision = await limiter.consume(SCOPE_POST_CREATE, "u1")
    assert decision.allowed is False
    assert decision.degraded is True


@pytest.mark.asyncio
async def test_store_failure_admits_when_fail_open():
    store = AsyncMock(spec=CacheStore)
    store.consume.side_effect = CacheStoreError("store down")
    limiter = RateLimiter(store, [RatePolicy(SCOPE_GLOBAL, points=10, window_seconds=1)], fail_open=True)
    assert await limiter.try_consume(SCOPE_GLOBAL, "u1") is True


@pytest.mark.asyncio
async def test_store_failure_admits_when_call_overrides():
    store = AsyncMock(spec=CacheStore)
    store.consume.side_effect = CacheStoreError("store down")
    limiter = RateLimiter(store, [RatePolicy(SCOPE_GLOBAL, points=10, window_seconds=1)])
    decision = await limiter.consume(SCOPE_GLOBAL, "10.0.0.1", fail_open=True)
    assert decision.allowed is True
    assert decision.degraded is True


@pytest.mark.asyncio
async def test_quota_refusal_is_not_degraded(store: CacheStore):
    limiter = RateLimiter(store, [RatePolicy(SCOPE_GLOBAL, points=1, window_seconds=60)], fail_open=True)
    assert await limiter.try_consume(SCOPE_GLOBAL, "10.0.0.1") is True
    decision = await limiter.consume(SCOPE_GLOBAL, "10.0.0.1")
    assert decision.allowed is False
    assert decision.degraded is False


def test_unknown_scope_raises():
    limiter = RateLimiter(AsyncMock(spec=CacheStore), [])
    with pytest.raises(KeyError):
        limiter.policy(SCOPE_GLOBAL)


def test_build_policies_from_settings(settings):
    policies = {p.scope: p for p in build_policies(settings)}
    assert policies[SCOPE_GLOBAL].points == 10
    assert policies[SCOPE_GLOBAL].window_ms == 1000
    assert policies[SCOPE_POST_CREATE].points == 9
    assert policies[SCOPE_MEDIA_UPLOAD].points == 13
    assert policies[SCOPE_REGISTRATION].window_ms == 900_000
