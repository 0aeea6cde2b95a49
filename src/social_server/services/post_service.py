"""Service for post operations.

The post service owns the posts table and is the producer of ``content.*``
events. Reads go through its local caches: a direct key per post and the
versioned ``post-list`` family for pages.
"""

import asyncio
import math

from loguru import logger
from sqlalchemy import func
from sqlmodel import Session, col, select

from social_server.cache import CacheCoordinator
from social_server.constants import FAMILY_POST_LIST, RESOURCE_POST
from social_server.database import Database
from social_server.events.producer import DomainEventProducer
from social_server.events.types import EventKind
from social_server.exceptions import CacheStoreError, ResourceNotFoundError
from social_server.models.api_model import PostCreateInput, PostPage, PostResponse
from social_server.models.db_model import Post as PostModel
from social_server.settings import Settings


class PostService:
    """Service for post-related operations."""

    def __init__(self, database: Database, cache: CacheCoordinator, producer: DomainEventProducer, settings: Settings):
        self._database = database
        self._cache = cache
        self._producer = producer
        self._settings = settings

    async def create_post(self, actor_id: str, post: PostCreateInput) -> PostResponse:
        """Create a post and announce it.

        Args:
            actor_id: Author of the post
            post: Content and attached media ids

        Returns:
            The stored post
        """
        created = await asyncio.to_thread(self._insert, actor_id, post)
        logger.info(f"Post {created.id} created by {actor_id}")

        await self._producer.emit(
            EventKind.CONTENT_CREATED,
            created.id,
            actor_id,
            {
                "content": created.content,
                "mediaIds": created.media_ids,
                "createdAt": created.created_at.isoformat(),
            },
        )
        return created

    async def get_post(self, post_id: str) -> PostResponse:
        """Get a post by id, reading through the item cache.

        Raises:
            ResourceNotFoundError: If the post doesn't exist
        """
        cached, hit = await self._cache.get_item(RESOURCE_POST, post_id)
        if hit:
            return PostResponse.model_validate(cached)

        post = await asyncio.to_thread(self._find, post_id)
        if post is None:
            raise ResourceNotFoundError("Post", post_id)

        await self._cache.put_item(RESOURCE_POST, post_id, post.model_dump(mode="json", by_alias=True), self._settings.post_item_ttl)

        # A delete that committed after our read may have invalidated before the put
        if not await asyncio.to_thread(self._exists, post_id):
            try:
                await self._cache.invalidate_item(RESOURCE_POST, post_id)
            except CacheStoreError as e:
                logger.warning(f"Could not drop cached post {post_id} deleted during read: {e}")
        return post

    async def list_posts(self, page: int = 1, limit: int = 10) -> PostPage:
        """List posts newest first, reading through the ``post-list`` family."""
        discriminator = f"{page}:{limit}"
        version = await self._cache.resolve_version(FAMILY_POST_LIST)
        cached, hit = await self._cache.get(FAMILY_POST_LIST, discriminator, version=version)
        if hit:
            return PostPage.model_validate(cached)

        result = await asyncio.to_thread(self._page, page, limit)
        await self._cache.put(
            FAMILY_POST_LIST,
            discriminator,
            result.model_dump(mode="json", by_alias=True),
            self._settings.post_list_ttl,
            version=version,
        )
        return result

    async def delete_post(self, actor_id: str, post_id: str) -> PostResponse:
        """Delete one of the actor's own posts and announce the deletion.

        Raises:
            ResourceNotFoundError: If the post doesn't exist or belongs to another actor
        """
        deleted = await asyncio.to_thread(self._delete_owned, actor_id, post_id)
        if deleted is None:
            raise ResourceNotFoundError("Post", post_id)
        logger.info(f"Post {post_id} deleted by {actor_id}")

        await self._producer.emit(EventKind.CONTENT_DELETED, post_id, actor_id, {"mediaIds": deleted.media_ids})
        return deleted

    def _insert(self, actor_id: str, post: PostCreateInput) -> PostResponse:
        with self._database.session() as session:
            new_post = PostModel(actor_id=actor_id, content=post.content, media_ids=list(post.media_ids))
            session.add(new_post)
            session.commit()
            session.refresh(new_post)
            return PostResponse.model_validate(new_post)

    def _find(self, post_id: str) -> PostResponse | None:
        with self._database.session() as session:
            post = session.get(PostModel, post_id)
            return PostResponse.model_validate(post) if post else None

    def _exists(self, post_id: str) -> bool:
        with self._database.session() as session:
            return session.get(PostModel, post_id) is not None

    def _page(self, page: int, limit: int) -> PostPage:
        with self._database.session() as session:
            total = session.exec(select(func.count()).select_from(PostModel)).one()
            stmt = select(PostModel).order_by(col(PostModel.created_at).desc()).offset((page - 1) * limit).limit(limit)
            posts = [PostResponse.model_validate(p) for p in session.exec(stmt).all()]
        return PostPage(
            posts=posts,
            current_page=page,
            total_pages=math.ceil(total / limit),
            total_posts=total,
        )

    def _delete_owned(self, actor_id: str, post_id: str) -> PostResponse | None:
        with self._database.session() as session:
            post = self._owned(session, actor_id, post_id)
            if post is None:
                logger.debug(f"Post {post_id} not found or not owned by {actor_id}")
                return None
            deleted = PostResponse.model_validate(post)
            session.delete(post)
            session.commit()
            return deleted

    @staticmethod
    def _owned(session: Session, actor_id: str, post_id: str) -> PostModel | None:
        stmt = select(PostModel).where(PostModel.id == post_id, PostModel.actor_id == actor_id)
        return session.exec(stmt).first()
