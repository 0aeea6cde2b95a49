"""Tests for the domain event wire codec."""

import json
from datetime import UTC, datetime

import pytest

from social_server.event_bus import PermanentError
from social_server.events import ContentCreatedPayload, ContentDeletedPayload, DomainEvent, EventKind, decode_event, encode_event


def created_event() -> DomainEvent:
    return DomainEvent(
        kind=EventKind.CONTENT_CREATED,
        content_id="p1",
        actor_id="u1",
        payload={"content": "hello", "mediaIds": ["m1"]},
        occurred_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


def test_encoded_event_is_flat_json():
    data = json.loads(encode_event(created_event()))
    assert data["kind"] == "content.created"
    assert data["contentId"] == "p1"
    assert data["actorId"] == "u1"
    assert data["occurredAt"].startswith("2025-01-01T00:00:00")
    assert data["content"] == "hello"
    assert data["mediaIds"] == ["m1"]
    assert "payload" not in data


def test_decode_restores_envelope_and_payload():
    event = decode_event(encode_event(created_event()))
    assert event == created_event()
    assert event.topic == "content.created"


def test_unknown_fields_are_kept():
    raw = {
        "kind": "content.deleted",
        "contentId": "p1",
        "actorId": "u1",
        "occurredAt": "2025-01-01T00:00:00Z",
        "mediaIds": [],
        "reason": "moderation",
    }
    event = decode_event(json.dumps(raw).encode())
    assert event.payload["reason"] == "moderation"


def test_kind_is_the_routing_key():
    assert EventKind.CONTENT_CREATED.value == "content.created"
    assert EventKind.CONTENT_DELETED.value == "content.deleted"


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"\xff\xfe",
        b"[1, 2]",
        b'{"kind": "content.created", "contentId": "p1", "actorId": "u1"}',
        b'{"kind": "content.updated", "contentId": "p1", "actorId": "u1", "occurredAt": "2025-01-01T00:00:00Z"}',
        b'{"kind": "content.created", "contentId": "", "actorId": "u1", "occurredAt": "2025-01-01T00:00:00Z"}',
    ],
)
def test_malformed_messages_are_permanent(body):
    with pytest.raises(PermanentError):
        decode_event(body)


def test_payload_as_validates_kind_specific_fields():
    payload = created_event().payload_as(ContentCreatedPayload)
    assert payload.content == "hello"
    assert payload.media_ids == ["m1"]

    deleted = DomainEvent(kind=EventKind.CONTENT_DELETED, content_id="p1", actor_id="u1")
    assert deleted.payload_as(ContentDeletedPayload).media_ids == []

    with pytest.raises(PermanentError):
        deleted.payload_as(ContentCreatedPayload)


def test_events_are_immutable():
    event = created_event()
    with pytest.raises(ValueError):
        event.content_id = "other"
