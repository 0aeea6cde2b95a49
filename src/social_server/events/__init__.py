"""Domain events: wire codec, producer, and the consumers' handlers."""

from .producer import DomainEventProducer
from .types import (
    ContentCreatedPayload,
    ContentDeletedPayload,
    DomainEvent,
    EventKind,
    decode_event,
    encode_event,
)

__all__ = [
    "ContentCreatedPayload",
    "ContentDeletedPayload",
    "DomainEvent",
    "DomainEventProducer",
    "EventKind",
    "decode_event",
    "encode_event",
]
