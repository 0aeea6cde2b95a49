"""Search API over the search service's projection of posts."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from social_server.api.dependencies import get_actor_id, service
from social_server.models.api_model import SearchResult
from social_server.services.search_service import SearchService

router = APIRouter()


@router.get("/search/posts", response_model=list[SearchResult])
async def search_posts(
    query: str = Query(default=""),
    _actor_id: str = Depends(get_actor_id),
    search_service: SearchService = Depends(service(SearchService)),
) -> list[SearchResult]:
    """Case-insensitive substring search, newest first."""
    if not query.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query parameter is required")
    return await search_service.search(query.strip())
