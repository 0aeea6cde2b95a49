from datetime import UTC, datetime

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(UTC)


class PostBase(SQLModel):
    """Base model for a post."""

    actor_id: str = Field(index=True)
    content: str
    media_ids: list[str] = Field(sa_type=JSON, default_factory=list)


class SearchRecordBase(SQLModel):
    """Base model for the search projection of a post."""

    content_id: str = Field(unique=True, index=True)
    actor_id: str
    content: str
    created_at: datetime = Field(default_factory=utcnow)


class MediaBase(SQLModel):
    """Base model for an uploaded media object."""

    public_id: str = Field(unique=True)
    original_name: str
    mime_type: str
    url: str
    actor_id: str = Field(index=True)
