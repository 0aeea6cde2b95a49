"""Consumer wiring: which handlers each service role runs."""

from loguru import logger

from social_server.constants import PROFILE_MEDIA, PROFILE_SEARCH
from social_server.event_bus import HandlerRegistry
from social_server.services.registry import ServiceRegistry

from .media_handlers import PurgeDeletedContentMedia
from .search_handlers import IndexCreatedContent, RemoveDeletedContent
from .types import EventKind, decode_event


def build_search_registry(services: ServiceRegistry) -> HandlerRegistry:
    registry = HandlerRegistry(PROFILE_SEARCH, decoder=decode_event, services=services)
    registry.on(EventKind.CONTENT_CREATED, IndexCreatedContent)
    registry.on(EventKind.CONTENT_DELETED, RemoveDeletedContent)
    return registry


def build_media_registry(services: ServiceRegistry) -> HandlerRegistry:
    registry = HandlerRegistry(PROFILE_MEDIA, decoder=decode_event, services=services)
    registry.on(EventKind.CONTENT_DELETED, PurgeDeletedContentMedia)
    return registry


def build_handler_registries(services: ServiceRegistry, profiles: set[str]) -> list[HandlerRegistry]:
    """Build one handler registry per enabled consuming role.

    Args:
        services: Registry holding the services the handlers need
        profiles: Enabled service roles

    Returns:
        Registries for the enabled consuming roles (the post role consumes nothing)
    """
    registries = []
    if PROFILE_SEARCH in profiles:
        registries.append(build_search_registry(services))
    if PROFILE_MEDIA in profiles:
        registries.append(build_media_registry(services))
    logger.debug(f"Handler registries: {[r.name for r in registries]}")
    return registries
