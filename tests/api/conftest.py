"""App fixtures: the real application with in-memory stores and a mocked broker."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
from fakeredis import FakeAsyncRedis
from fastapi.testclient import TestClient

from social_server.app import create_app
from social_server.cache import CacheStore
from social_server.event_bus import BrokerClient
from social_server.profile import parse_profile
from social_server.services.di import register_all_services
from social_server.services.registry import ServiceRegistry
from social_server.services.storage import LocalObjectStorage
from social_server.settings import Settings


@pytest.fixture
def app_settings() -> Settings:
    return Settings(_env_file=None, database_url="sqlite://", global_rate_points=1000, media_max_bytes=1024)


@pytest.fixture
def broker() -> AsyncMock:
    mock = AsyncMock(spec=BrokerClient)
    mock.is_connected = True
    mock.subscriptions = []
    return mock


@pytest.fixture
def make_client(database, broker, tmp_path):
    """Build a started TestClient for the given settings."""
    clients = []

    def _make(settings: Settings) -> TestClient:
        app = create_app(settings)

        @asynccontextmanager
        async def lifespan(_app):
            # The cache client must be created on the client's event loop
            store = CacheStore(FakeAsyncRedis(decode_responses=True), timeout=1.0)
            services = ServiceRegistry()
            register_all_services(
                services,
                settings,
                database,
                store,
                broker,
                parse_profile(settings.profiles),
                storage=LocalObjectStorage(tmp_path / "media"),
            )
            _app.state.services = services
            yield
            await store.client.flushall()
            await store.close()

        app.router.lifespan_context = lifespan
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, app_settings) -> TestClient:
    return make_client(app_settings)
