"""API models for the social server.

Response models use camelCase aliases on the wire, matching the event
payloads consumed by other services.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class PostCreateInput(ApiModel):
    content: str = Field(min_length=1, max_length=5000)
    media_ids: list[str] = Field(default_factory=list)


class PostResponse(ApiModel):
    id: str
    actor_id: str
    content: str
    media_ids: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class PostPage(ApiModel):
    posts: list[PostResponse]
    current_page: int
    total_pages: int
    total_posts: int


class SearchResult(ApiModel):
    content_id: str
    actor_id: str
    content: str
    created_at: datetime


class MediaResponse(ApiModel):
    id: str
    public_id: str
    original_name: str
    mime_type: str
    url: str
    actor_id: str
    created_at: datetime
