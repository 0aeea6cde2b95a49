"""Core Event Bus Components.

This module contains the fundamental abstractions shared by the handler
registry and the broker adapter.

## Key Components

- **EventHandler**: Base class for dependency-injectable event handlers
- **EventBusError**: Base exception for all event bus related errors
- **BrokerConnectionError**: The broker could not be reached
- **PublishError**: A message could not be published
- **HandlerRegistrationError**: Raised when handler registration fails
- **TransientError** / **PermanentError**: Handler outcomes deciding acknowledgement

## Acknowledgement contract

A handler that returns normally has applied the event; the message is
acknowledged. A handler raising ``TransientError`` leaves the message
unacknowledged so the broker redelivers it. A handler raising
``PermanentError`` gets the message acknowledged anyway (it would never
succeed) and the failure is logged for manual inspection.

## Usage Example with Dependency Injection

```python
class IndexCreatedContent(EventHandler[DomainEvent]):
    def __init__(self, search_service: SearchService):
        self.search_service = search_service

    async def handle(self, event: DomainEvent) -> None:
        await self.search_service.upsert_record(...)

# The registry injects SearchService from the ServiceRegistry when the
# handler class is registered instead of an instance.
registry.on("content.created", IndexCreatedContent)
```

"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class EventHandler[T_Event: BaseModel](ABC):
    """Base class for dependency-injectable event handlers.

    Event handlers should inherit from this class and implement the handle method.
    Handlers must be idempotent: the broker delivers at least once, so the same
    event can reach ``handle`` more than once.
    """

    @abstractmethod
    async def handle(self, event: T_Event) -> Any:
        """Apply the event to local state.

        Args:
            event: The decoded event.

        Raises:
            TransientError: A dependency is momentarily unavailable; retry later.
            PermanentError: The event can never be applied; drop it.
        """

    def __call__(self, event: T_Event) -> Any:
        """Make the handler callable.

        This allows handler instances to be registered directly.
        """
        return self.handle(event)


class EventBusError(Exception):
    """Base exception for all event bus related errors."""


class BrokerConnectionError(EventBusError, ConnectionError):
    """Raised when the broker is unreachable after all connection attempts."""


class PublishError(EventBusError):
    """Raised when a message cannot be published because the channel is unavailable."""


class HandlerRegistrationError(EventBusError):
    """Raised when handler registration fails.

    This occurs when:
    - The topic is empty
    - The handler is not callable
    """


class HandlerError(Exception):
    """Base class for handler outcomes that decide message acknowledgement."""


class TransientError(HandlerError):
    """A dependency of the handler is momentarily unavailable; redeliver the message."""


class PermanentError(HandlerError):
    """The message is malformed or violates a business rule; acknowledge and drop it."""
