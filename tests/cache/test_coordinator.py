"""Tests for the versioned cache coordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from social_server.cache import INITIAL_VERSION, CacheCoordinator, CacheStore
from social_server.exceptions import CacheStoreError


def broken_store() -> AsyncMock:
    store = AsyncMock(spec=CacheStore)
    for method in ("get", "set", "delete", "increment_from"):
        getattr(store, method).side_effect = CacheStoreError("store down")
    return store


@pytest.mark.asyncio
async def test_absent_version_reads_as_initial(cache: CacheCoordinator):
    assert await cache.current_version("post-list") == INITIAL_VERSION


@pytest.mark.asyncio
async def test_first_bump_moves_past_initial(cache: CacheCoordinator):
    assert await cache.bump_version("post-list") == INITIAL_VERSION + 1
    assert await cache.current_version("post-list") == INITIAL_VERSION + 1


@pytest.mark.asyncio
async def test_put_then_get_hits_under_same_version(cache: CacheCoordinator):
    await cache.put("post-list", "1:10", {"posts": ["a"]}, ttl=300)
    value, hit = await cache.get("post-list", "1:10")
    assert hit is True
    assert value == {"posts": ["a"]}


@pytest.mark.asyncio
async def test_bump_makes_previous_entries_unreachable(cache: CacheCoordinator, store: CacheStore):
    # Version 3 with a cached page, then a write bumps to 4
    await store.set("post-list:version", "3")
    await cache.put("post-list", "1:10", {"page": "old"}, ttl=300)
    assert await store.get("post-list:v3:1:10") is not None

    assert await cache.bump_version("post-list") == 4

    value, hit = await cache.get("post-list", "1:10")
    assert (value, hit) == (None, False)

    await cache.put("post-list", "1:10", {"page": "new"}, ttl=300)
    assert await store.get("post-list:v4:1:10") is not None
    value, hit = await cache.get("post-list", "1:10")
    assert value == {"page": "new"}


@pytest.mark.asyncio
async def test_concurrent_bumps_are_strictly_increasing(cache: CacheCoordinator):
    versions = await asyncio.gather(*(cache.bump_version("search") for _ in range(20)))
    assert len(set(versions)) == 20
    assert sorted(versions) == list(range(INITIAL_VERSION + 1, INITIAL_VERSION + 21))


@pytest.mark.asyncio
async def test_put_under_stale_version_is_never_served(cache: CacheCoordinator):
    version = await cache.resolve_version("post-list")
    await cache.bump_version("post-list")

    # Computed before the bump, stored after it
    await cache.put("post-list", "1:10", {"page": "stale"}, ttl=300, version=version)

    value, hit = await cache.get("post-list", "1:10")
    assert hit is False


@pytest.mark.asyncio
async def test_families_are_independent(cache: CacheCoordinator):
    await cache.put("search", "hello:10", ["r"], ttl=120)
    await cache.bump_version("post-list")
    _, hit = await cache.get("search", "hello:10")
    assert hit is True


@pytest.mark.asyncio
async def test_item_roundtrip_and_invalidation(cache: CacheCoordinator):
    await cache.put_item("post", "p1", {"id": "p1"}, ttl=3600)
    assert await cache.get_item("post", "p1") == ({"id": "p1"}, True)

    assert await cache.invalidate_item("post", "p1") is True
    assert await cache.get_item("post", "p1") == (None, False)
    assert await cache.invalidate_item("post", "p1") is False


@pytest.mark.asyncio
async def test_entries_carry_ttl(cache: CacheCoordinator, store: CacheStore):
    await cache.put("search", "q:10", [], ttl=120)
    ttl = await store.client.ttl("search:v1:q:10")
    assert 0 < ttl <= 120


@pytest.mark.asyncio
async def test_read_path_fails_open():
    cache = CacheCoordinator(broken_store())
    assert await cache.get("post-list", "1:10") == (None, False)
    assert await cache.get_item("post", "p1") == (None, False)
    assert await cache.resolve_version("post-list") is None

    # Writes are skipped without raising
    await cache.put("post-list", "1:10", {}, ttl=300)
    await cache.put_item("post", "p1", {}, ttl=300)


@pytest.mark.asyncio
async def test_invalidation_surfaces_store_failure():
    cache = CacheCoordinator(broken_store())
    with pytest.raises(CacheStoreError):
        await cache.bump_version("post-list")
    with pytest.raises(CacheStoreError):
        await cache.invalidate_item("post", "p1")


@pytest.mark.asyncio
async def test_unreadable_entries_are_misses(cache: CacheCoordinator, store: CacheStore):
    await store.set("post-list:v1:1:10", "{not json")
    await store.set("post:p1", "\x00garbage")

    assert await cache.get("post-list", "1:10") == (None, False)
    assert await cache.get_item("post", "p1") == (None, False)

    # A fresh value replaces the unreadable one
    await cache.put_item("post", "p1", {"id": "p1"}, ttl=60)
    assert await cache.get_item("post", "p1") == ({"id": "p1"}, True)
