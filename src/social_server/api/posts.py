"""
Post API - create, read, list and delete posts.

All endpoints delegate to PostService, which owns the posts table and
announces every write on the event bus.
"""

from fastapi import APIRouter, Depends, Query, status

from social_server.api.dependencies import get_actor_id, rate_limited, service
from social_server.constants import SCOPE_POST_CREATE
from social_server.models.api_model import PostCreateInput, PostPage, PostResponse
from social_server.services.post_service import PostService

router = APIRouter()


@router.post("/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post: PostCreateInput,
    actor_id: str = Depends(rate_limited(SCOPE_POST_CREATE)),
    post_service: PostService = Depends(service(PostService)),
) -> PostResponse:
    """Create a post for the authenticated actor."""
    return await post_service.create_post(actor_id, post)


@router.get("/posts", response_model=PostPage)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    post_service: PostService = Depends(service(PostService)),
) -> PostPage:
    """List posts, newest first."""
    return await post_service.list_posts(page, limit)


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: str,
    post_service: PostService = Depends(service(PostService)),
) -> PostResponse:
    """Get a post by ID.

    Raises:
        ResourceNotFoundError: If the post doesn't exist (mapped to 404)
    """
    return await post_service.get_post(post_id)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    actor_id: str = Depends(get_actor_id),
    post_service: PostService = Depends(service(PostService)),
) -> None:
    """Delete one of the actor's own posts.

    Raises:
        ResourceNotFoundError: If the post doesn't exist or isn't the actor's (mapped to 404)
    """
    await post_service.delete_post(actor_id, post_id)
