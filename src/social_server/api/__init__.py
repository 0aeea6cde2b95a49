"""API router initialization.

Routers are grouped by the service role that serves them; ``build_api_router``
mounts only the enabled roles.
"""

from fastapi import APIRouter
from loguru import logger

from social_server.api.media import router as media_router
from social_server.api.posts import router as posts_router
from social_server.api.search import router as search_router
from social_server.constants import PROFILE_MEDIA, PROFILE_POST, PROFILE_SEARCH


def build_api_router(profiles: set[str]) -> APIRouter:
    """Create the ``/api`` router for the enabled service roles."""
    router = APIRouter()
    if PROFILE_POST in profiles:
        router.include_router(posts_router, tags=["posts"])
    if PROFILE_SEARCH in profiles:
        router.include_router(search_router, tags=["search"])
    if PROFILE_MEDIA in profiles:
        router.include_router(media_router, tags=["media"])
    logger.debug(f"API router initialized for roles: {', '.join(sorted(profiles))}")
    return router


__all__ = ["build_api_router"]
