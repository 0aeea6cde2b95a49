"""Service for uploaded media.

Uploads come from the API; deletions come from the media-lifecycle
consumer when the post referencing the media is deleted.
"""

import asyncio

from loguru import logger
from sqlmodel import col, select

from social_server.database import Database
from social_server.models.api_model import MediaResponse
from social_server.models.db_model import Media
from social_server.services.storage import ObjectStorage
from social_server.settings import Settings


class MediaService:
    """Service for media operations."""

    def __init__(self, database: Database, storage: ObjectStorage, settings: Settings):
        self._database = database
        self._storage = storage
        self._settings = settings

    @property
    def max_bytes(self) -> int:
        return self._settings.media_max_bytes

    async def upload(self, actor_id: str, filename: str, mime_type: str, data: bytes) -> MediaResponse:
        """Store a blob and record it.

        Raises:
            ObjectStorageError: If the blob could not be stored
        """
        stored = await self._storage.upload(data, filename, mime_type)
        media = await asyncio.to_thread(self._insert, actor_id, filename, mime_type, stored.public_id, stored.url)
        logger.info(f"Media {media.id} uploaded by {actor_id} ({len(data)} bytes)")
        return media

    async def list_media(self) -> list[MediaResponse]:
        return await asyncio.to_thread(self._all)

    async def delete_media(self, media_id: str) -> bool:
        """Delete a media record and its blob.

        The blob goes first: if the record delete then fails, a redelivery
        finds the record again and the blob delete is a no-op.

        Returns:
            True if a record was removed, False if there was none

        Raises:
            ObjectStorageError: If the blob could not be deleted
        """
        media = await asyncio.to_thread(self._find, media_id)
        if media is None:
            logger.debug(f"Media {media_id} already gone")
            return False

        if not await self._storage.delete(media.public_id):
            logger.debug(f"Blob {media.public_id} of media {media_id} already gone")
        removed = await asyncio.to_thread(self._delete, media_id)
        logger.info(f"Media {media_id} deleted")
        return removed

    def _insert(self, actor_id: str, filename: str, mime_type: str, public_id: str, url: str) -> MediaResponse:
        with self._database.session() as session:
            media = Media(public_id=public_id, original_name=filename, mime_type=mime_type, url=url, actor_id=actor_id)
            session.add(media)
            session.commit()
            session.refresh(media)
            return MediaResponse.model_validate(media)

    def _find(self, media_id: str) -> MediaResponse | None:
        with self._database.session() as session:
            media = session.get(Media, media_id)
            return MediaResponse.model_validate(media) if media else None

    def _all(self) -> list[MediaResponse]:
        with self._database.session() as session:
            stmt = select(Media).order_by(col(Media.created_at).desc())
            return [MediaResponse.model_validate(m) for m in session.exec(stmt).all()]

    def _delete(self, media_id: str) -> bool:
        with self._database.session() as session:
            media = session.get(Media, media_id)
            if media is None:
                return False
            session.delete(media)
            session.commit()
            return True
