"""Tests for the search-index consumer: idempotent application of content events."""

import json
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from social_server.cache import CacheCoordinator
from social_server.event_bus import PermanentError, TransientError
from social_server.events import DomainEvent, EventKind, encode_event
from social_server.events.consumers import build_search_registry
from social_server.events.search_handlers import IndexCreatedContent
from social_server.models.db_model import SearchRecord
from social_server.services.registry import ServiceRegistry
from social_server.services.search_service import SearchService


@pytest.fixture
def search_service(database, cache, settings) -> SearchService:
    return SearchService(database, cache, settings)


@pytest.fixture
def registry(search_service: SearchService):
    services = ServiceRegistry()
    services.register_singleton(SearchService, search_service)
    return build_search_registry(services)


def created(content_id: str = "p1", content: str = "Hello world") -> bytes:
    return encode_event(
        DomainEvent(
            kind=EventKind.CONTENT_CREATED,
            content_id=content_id,
            actor_id="u1",
            payload={"content": content, "mediaIds": [], "createdAt": "2025-01-01T00:00:00Z"},
        )
    )


def deleted(content_id: str = "p1") -> bytes:
    return encode_event(DomainEvent(kind=EventKind.CONTENT_DELETED, content_id=content_id, actor_id="u1", payload={"mediaIds": []}))


def records(database) -> list[SearchRecord]:
    with database.session() as session:
        return list(session.exec(select(SearchRecord)).all())


def test_registry_routes_both_topics(registry):
    assert sorted(registry.get_registered_topics()) == ["content.created", "content.deleted"]


@pytest.mark.asyncio
async def test_created_twice_indexes_once(registry, database):
    await registry.dispatch("content.created", created())
    await registry.dispatch("content.created", created())

    rows = records(database)
    assert len(rows) == 1
    assert rows[0].content_id == "p1"
    assert rows[0].content == "Hello world"


@pytest.mark.asyncio
async def test_redelivered_created_applies_latest_content(registry, database):
    await registry.dispatch("content.created", created(content="first"))
    await registry.dispatch("content.created", created(content="second"))
    assert [r.content for r in records(database)] == ["second"]


@pytest.mark.asyncio
async def test_deleted_removes_record_and_is_idempotent(registry, database):
    await registry.dispatch("content.created", created())
    await registry.dispatch("content.deleted", deleted())
    assert records(database) == []

    # Redelivery, and deletion of content that was never indexed
    await registry.dispatch("content.deleted", deleted())
    await registry.dispatch("content.deleted", deleted("never-indexed"))
    assert records(database) == []


@pytest.mark.asyncio
async def test_indexing_invalidates_cached_searches(registry, search_service: SearchService, cache: CacheCoordinator):
    assert await search_service.search("hello") == []

    await registry.dispatch("content.created", created())

    results = await search_service.search("hello")
    assert [r.content_id for r in results] == ["p1"]


@pytest.mark.asyncio
async def test_search_is_case_insensitive_newest_first(registry, search_service: SearchService):
    await registry.dispatch("content.created", created("old", "Python tips"))
    newer = json.loads(created("new", "more PYTHON"))
    newer["createdAt"] = "2025-02-01T00:00:00Z"
    await registry.dispatch("content.created", json.dumps(newer).encode())

    results = await search_service.search("python")
    assert [r.content_id for r in results] == ["new", "old"]


@pytest.mark.asyncio
async def test_payload_without_content_is_permanent(registry):
    body = encode_event(DomainEvent(kind=EventKind.CONTENT_CREATED, content_id="p1", actor_id="u1", payload={}))
    with pytest.raises(PermanentError):
        await registry.dispatch("content.created", body)


@pytest.mark.asyncio
async def test_store_failure_is_transient():
    service = AsyncMock(spec=SearchService)
    service.upsert_record.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))
    handler = IndexCreatedContent(service)

    event = DomainEvent(kind=EventKind.CONTENT_CREATED, content_id="p1", actor_id="u1", payload={"content": "x"})
    with pytest.raises(TransientError):
        await handler(event)
