"""Search-index consumer handlers.

Keeps the search projection in step with posts: ``content.created``
upserts a record, ``content.deleted`` removes it. Both are safe to apply
more than once.
"""

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from social_server.event_bus import EventHandler, TransientError
from social_server.services.search_service import SearchService

from .types import ContentCreatedPayload, DomainEvent


class IndexCreatedContent(EventHandler[DomainEvent]):
    """Index a newly created post."""

    def __init__(self, search_service: SearchService):
        self.search_service = search_service

    async def handle(self, event: DomainEvent) -> None:
        payload = event.payload_as(ContentCreatedPayload)
        try:
            await self.search_service.upsert_record(
                content_id=event.content_id,
                actor_id=event.actor_id,
                content=payload.content,
                created_at=payload.created_at or event.occurred_at,
            )
        except SQLAlchemyError as e:
            raise TransientError(f"Could not index {event.content_id}: {e}") from e
        logger.debug(f"Indexed {event.content_id}")


class RemoveDeletedContent(EventHandler[DomainEvent]):
    """Drop a deleted post from the index."""

    def __init__(self, search_service: SearchService):
        self.search_service = search_service

    async def handle(self, event: DomainEvent) -> None:
        try:
            removed = await self.search_service.delete_record(event.content_id)
        except SQLAlchemyError as e:
            raise TransientError(f"Could not unindex {event.content_id}: {e}") from e
        if not removed:
            logger.debug(f"{event.content_id} was not indexed, nothing to remove")
