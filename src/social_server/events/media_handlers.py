"""Media-lifecycle consumer handlers."""

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from social_server.event_bus import EventHandler, TransientError
from social_server.exceptions import ObjectStorageError
from social_server.services.media_service import MediaService

from .types import ContentDeletedPayload, DomainEvent


class PurgeDeletedContentMedia(EventHandler[DomainEvent]):
    """Delete every media object a deleted post referenced.

    Media already gone counts as done, so a redelivered event (or one that
    failed halfway through its list) completes the remaining ids only.
    """

    def __init__(self, media_service: MediaService):
        self.media_service = media_service

    async def handle(self, event: DomainEvent) -> int:
        payload = event.payload_as(ContentDeletedPayload)
        removed = 0
        for media_id in payload.media_ids:
            try:
                if await self.media_service.delete_media(media_id):
                    removed += 1
            except (SQLAlchemyError, ObjectStorageError) as e:
                raise TransientError(f"Could not delete media {media_id} of {event.content_id}: {e}") from e
        logger.info(f"Purged {removed}/{len(payload.media_ids)} media of deleted post {event.content_id}")
        return removed
