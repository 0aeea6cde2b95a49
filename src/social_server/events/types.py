"""Domain event definitions and wire codec.

Events travel as a flat UTF-8 JSON object::

    {"kind": "content.created", "contentId": "...", "actorId": "...",
     "occurredAt": "2025-01-01T00:00:00Z", "content": "...", "mediaIds": [...]}

The envelope fields are modelled on ``DomainEvent``; every other top-level
field is kind-specific and lands in ``DomainEvent.payload``. Unknown fields
are kept, never rejected, so producers can add fields without breaking
older consumers.
"""

import json
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from social_server.constants import TOPIC_CONTENT_CREATED, TOPIC_CONTENT_DELETED
from social_server.event_bus.core import PermanentError


class EventKind(StrEnum):
    """Canonical event kinds; the value doubles as the routing key."""

    CONTENT_CREATED = TOPIC_CONTENT_CREATED
    CONTENT_DELETED = TOPIC_CONTENT_DELETED


class DomainEvent(BaseModel):
    """An immutable fact about a committed write in the owning service."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: EventKind
    content_id: str = Field(alias="contentId", min_length=1)
    actor_id: str = Field(alias="actorId", min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(alias="occurredAt", default_factory=lambda: datetime.now(UTC))

    @property
    def topic(self) -> str:
        return self.kind.value

    def payload_as[T: BaseModel](self, model: type[T]) -> T:
        """Validate the kind-specific payload against ``model``.

        Raises:
            PermanentError: If the payload does not match
        """
        try:
            return model.model_validate(self.payload)
        except ValidationError as e:
            raise PermanentError(f"Invalid {self.kind} payload for {self.content_id}: {e}") from e


ENVELOPE_FIELDS = ("kind", "contentId", "actorId", "occurredAt")


class ContentCreatedPayload(BaseModel):
    """Fields carried by ``content.created``."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    content: str
    media_ids: list[str] = Field(alias="mediaIds", default_factory=list)
    created_at: datetime | None = Field(alias="createdAt", default=None)


class ContentDeletedPayload(BaseModel):
    """Fields carried by ``content.deleted``.

    ``media_ids`` is the explicit list of dependent media: by the time a
    consumer sees the event, the post that referenced them is gone.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    media_ids: list[str] = Field(alias="mediaIds", default_factory=list)


def encode_event(event: DomainEvent) -> bytes:
    """Serialize an event to its flat JSON wire form."""
    body = json.loads(json.dumps(event.payload, default=str))
    body.update(event.model_dump(mode="json", by_alias=True, exclude={"payload"}))
    return json.dumps(body).encode("utf-8")


def decode_event(body: bytes) -> DomainEvent:
    """Parse a wire message into an event.

    Raises:
        PermanentError: If the body is not a JSON object or misses required fields
    """
    try:
        data = json.loads(body)
    except (UnicodeDecodeError, ValueError) as e:
        raise PermanentError(f"Message is not valid UTF-8 JSON: {e}") from e

    if not isinstance(data, dict):
        raise PermanentError(f"Message must be a JSON object, got {type(data).__name__}")

    missing = [field for field in ENVELOPE_FIELDS if field not in data]
    if missing:
        raise PermanentError(f"Message misses required fields: {', '.join(missing)}")

    envelope = {field: data.pop(field) for field in ENVELOPE_FIELDS}
    try:
        return DomainEvent.model_validate({**envelope, "payload": data})
    except ValidationError as e:
        raise PermanentError(f"Message is not a valid domain event: {e}") from e
