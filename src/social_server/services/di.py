"""Dependency injection setup module.

Builds the process's ``ServiceRegistry`` from the handles opened at
startup. Every service receives its dependencies through its constructor;
the registry only makes them reachable from routes and handler classes.
"""

from loguru import logger

from social_server.cache import CacheCoordinator, CacheStore, RateLimiter, build_policies
from social_server.constants import FAMILY_POST_LIST, RESOURCE_POST
from social_server.database import Database
from social_server.event_bus import BrokerClient
from social_server.events.producer import DomainEventProducer
from social_server.services.health_check_service import HealthCheckService
from social_server.services.media_service import MediaService
from social_server.services.post_service import PostService
from social_server.services.registry import ServiceRegistry
from social_server.services.search_service import SearchService
from social_server.services.storage import LocalObjectStorage, ObjectStorage
from social_server.settings import Settings


def register_core_services(
    registry: ServiceRegistry,
    settings: Settings,
    database: Database,
    store: CacheStore,
    broker: BrokerClient,
    profiles: set[str],
) -> None:
    """Register the shared handles and the infrastructure built on them.

    Args:
        registry: Service registry instance to register services in
        settings: Application settings
        database: Authoritative store
        store: Connected cache store
        broker: Connected broker client
        profiles: Enabled service roles
    """
    logger.debug("Registering core services in DI container")

    registry.register_singleton(Settings, settings)
    registry.register_singleton(Database, database)
    registry.register_singleton(CacheStore, store)
    registry.register_singleton(BrokerClient, broker)
    registry.register_singleton(CacheCoordinator, CacheCoordinator(store))
    registry.register_singleton(
        RateLimiter,
        RateLimiter(store, build_policies(settings), fail_open=settings.rate_limit_fail_open),
    )
    registry.register_singleton(HealthCheckService, HealthCheckService(database, store, broker, profiles))


def register_app_services(registry: ServiceRegistry, storage: ObjectStorage | None = None) -> None:
    """Register the domain services on top of the core services.

    Args:
        registry: Service registry already holding the core services
        storage: Object storage for media; local filesystem storage when None
    """
    logger.debug("Registering application services in DI container")

    settings = registry.get(Settings)
    database = registry.get(Database)
    cache = registry.get(CacheCoordinator)

    producer = DomainEventProducer(
        registry.get(BrokerClient),
        cache,
        families=(FAMILY_POST_LIST,),
        item_resources=(RESOURCE_POST,),
    )
    registry.register_singleton(DomainEventProducer, producer)

    if storage is None:
        storage = LocalObjectStorage(settings.media_root, settings.media_base_url)
    registry.register_singleton(ObjectStorage, storage)

    registry.register_singleton(PostService, PostService(database, cache, producer, settings))
    registry.register_singleton(SearchService, SearchService(database, cache, settings))
    registry.register_singleton(MediaService, MediaService(database, storage, settings))


def register_all_services(
    registry: ServiceRegistry,
    settings: Settings,
    database: Database,
    store: CacheStore,
    broker: BrokerClient,
    profiles: set[str],
    storage: ObjectStorage | None = None,
) -> None:
    """Register both core and application services."""
    register_core_services(registry, settings, database, store, broker, profiles)
    register_app_services(registry, storage)
