"""Service for the search projection of posts.

The search service never writes posts; its records are derived from
``content.*`` events. Both mutations are idempotent: indexing a post that is
already indexed updates the row in place, and removing a missing row is a
no-op. Every mutation advances the ``search`` cache family.
"""

import asyncio
from datetime import datetime

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import col, select

from social_server.cache import CacheCoordinator
from social_server.constants import FAMILY_SEARCH
from social_server.database import Database
from social_server.exceptions import CacheStoreError
from social_server.models.api_model import SearchResult
from social_server.models.db_model import SearchRecord
from social_server.settings import Settings


class SearchService:
    """Service for search record operations."""

    def __init__(self, database: Database, cache: CacheCoordinator, settings: Settings):
        self._database = database
        self._cache = cache
        self._settings = settings

    async def upsert_record(self, content_id: str, actor_id: str, content: str, created_at: datetime) -> bool:
        """Index a post, replacing any existing record for the same content id.

        Returns:
            True if a new record was inserted, False if an existing one was updated
        """
        inserted = await asyncio.to_thread(self._upsert, content_id, actor_id, content, created_at)
        logger.debug(f"Search record for {content_id} {'inserted' if inserted else 'updated'}")
        await self._invalidate()
        return inserted

    async def delete_record(self, content_id: str) -> bool:
        """Remove the record for a post.

        Returns:
            True if a record was removed, False if there was none
        """
        removed = await asyncio.to_thread(self._delete, content_id)
        if removed:
            logger.debug(f"Search record for {content_id} removed")
            await self._invalidate()
        return removed

    async def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        """Case-insensitive substring search over indexed content, newest first."""
        discriminator = f"{query.lower()}:{limit}"
        version = await self._cache.resolve_version(FAMILY_SEARCH)
        cached, hit = await self._cache.get(FAMILY_SEARCH, discriminator, version=version)
        if hit:
            return [SearchResult.model_validate(item) for item in cached]

        results = await asyncio.to_thread(self._query, query, limit)
        await self._cache.put(
            FAMILY_SEARCH,
            discriminator,
            [r.model_dump(mode="json", by_alias=True) for r in results],
            self._settings.search_ttl,
            version=version,
        )
        return results

    async def _invalidate(self) -> None:
        try:
            await self._cache.bump_version(FAMILY_SEARCH)
        except CacheStoreError as e:
            logger.error(f"Could not bump cache family {FAMILY_SEARCH}, stale until TTL: {e}")

    def _upsert(self, content_id: str, actor_id: str, content: str, created_at: datetime) -> bool:
        with self._database.session() as session:
            record = session.exec(select(SearchRecord).where(SearchRecord.content_id == content_id)).first()
            if record is not None:
                record.sqlmodel_update({"actor_id": actor_id, "content": content, "created_at": created_at})
                session.add(record)
                session.commit()
                return False

            session.add(SearchRecord(content_id=content_id, actor_id=actor_id, content=content, created_at=created_at))
            try:
                session.commit()
            except IntegrityError:
                # A concurrent consumer indexed the same post first
                session.rollback()
                logger.debug(f"Search record for {content_id} already indexed")
                return False
            return True

    def _delete(self, content_id: str) -> bool:
        with self._database.session() as session:
            record = session.exec(select(SearchRecord).where(SearchRecord.content_id == content_id)).first()
            if record is None:
                return False
            session.delete(record)
            session.commit()
            return True

    def _query(self, query: str, limit: int) -> list[SearchResult]:
        with self._database.session() as session:
            stmt = (
                select(SearchRecord)
                .where(col(SearchRecord.content).ilike(f"%{query}%"))
                .order_by(col(SearchRecord.created_at).desc())
                .limit(limit)
            )
            return [SearchResult.model_validate(r) for r in session.exec(stmt).all()]
