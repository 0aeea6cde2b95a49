"""Shared fixtures: in-memory cache store and authoritative store."""

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from social_server.cache import CacheCoordinator, CacheStore
from social_server.database import Database
from social_server.settings import Settings


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, database_url="sqlite://", transient_retry_delay=0)


@pytest_asyncio.fixture
async def store():
    cache_store = CacheStore(FakeAsyncRedis(decode_responses=True), timeout=1.0)
    yield cache_store
    await cache_store.client.flushall()
    await cache_store.close()


@pytest.fixture
def cache(store: CacheStore) -> CacheCoordinator:
    return CacheCoordinator(store)


@pytest.fixture
def database():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    db = Database(engine)
    db.create_tables()
    yield db
    db.dispose()
