"""Domain event producer.

The owning service calls ``emit`` after its authoritative write has
committed. Emitting publishes the event and invalidates the local caches
the write affects: one version bump per affected family and one key
deletion per affected item.

Neither step may turn a committed write into a failed request. Publish and
invalidation failures are logged as errors and the caller carries on; the
cost is a consistency lag, never a false failure.
"""

from collections.abc import Iterable
from typing import Any

from loguru import logger

from social_server.cache import CacheCoordinator
from social_server.event_bus import BrokerClient, PublishError
from social_server.exceptions import CacheStoreError

from .types import DomainEvent, EventKind, encode_event


class DomainEventProducer:
    """Publishes domain events and keeps the producer's own caches coherent."""

    def __init__(
        self,
        broker: BrokerClient,
        cache: CacheCoordinator,
        families: Iterable[str] = (),
        item_resources: Iterable[str] = (),
    ) -> None:
        """Create a producer.

        Args:
            broker: Connected broker client
            cache: Cache coordinator of the owning service
            families: Versioned families affected by every content write
            item_resources: Direct-key resources keyed by content id
        """
        self._broker = broker
        self._cache = cache
        self._families = tuple(families)
        self._item_resources = tuple(item_resources)

    async def emit(self, kind: EventKind, content_id: str, actor_id: str, payload: dict[str, Any] | None = None) -> DomainEvent:
        """Publish an event for a committed write and invalidate affected caches.

        Args:
            kind: Event kind (also the routing key)
            content_id: Id of the written content
            actor_id: Actor who performed the write
            payload: Kind-specific fields

        Returns:
            The emitted event, whether or not publishing succeeded
        """
        event = DomainEvent(kind=kind, content_id=content_id, actor_id=actor_id, payload=payload or {})

        try:
            await self._broker.publish(event.topic, encode_event(event))
        except PublishError as e:
            logger.error(f"Event {event.topic} for {content_id} not published, consumers will lag: {e}")

        await self._invalidate(content_id)
        return event

    async def _invalidate(self, content_id: str) -> None:
        for resource in self._item_resources:
            try:
                await self._cache.invalidate_item(resource, content_id)
            except CacheStoreError as e:
                logger.error(f"Could not invalidate {resource}:{content_id}, stale until TTL: {e}")

        for family in self._families:
            try:
                await self._cache.bump_version(family)
            except CacheStoreError as e:
                logger.error(f"Could not bump cache family {family}, stale until TTL: {e}")
