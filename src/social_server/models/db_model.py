from datetime import datetime
from uuid import uuid4

from sqlmodel import Field

from social_server.constants import PROFILE_MEDIA, PROFILE_POST, PROFILE_SEARCH
from social_server.models.base_model import MediaBase, PostBase, SearchRecordBase, utcnow


def new_id() -> str:
    return uuid4().hex


class Post(PostBase, table=True):
    """Post model, owned by the post service."""

    __tablename__ = "posts"

    id: str = Field(default_factory=new_id, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)


class SearchRecord(SearchRecordBase, table=True):
    """Search record model, owned by the search service. One row per post."""

    __tablename__ = "search_records"

    id: int | None = Field(default=None, primary_key=True)
    indexed_at: datetime = Field(default_factory=utcnow)


class Media(MediaBase, table=True):
    """Media model, owned by the media service."""

    __tablename__ = "media"

    id: str = Field(default_factory=new_id, primary_key=True)
    created_at: datetime = Field(default_factory=utcnow)


# Tables each service role owns
TABLES_BY_PROFILE = {
    PROFILE_POST: (Post.__tablename__,),
    PROFILE_SEARCH: (SearchRecord.__tablename__,),
    PROFILE_MEDIA: (Media.__tablename__,),
}
