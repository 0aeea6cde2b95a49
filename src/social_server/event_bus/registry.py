"""Handler Registry Implementation.

This module provides the ``HandlerRegistry``: an inspectable dispatch table
mapping topics to handlers, independent of any broker. The broker adapter
runs one consumption loop per registered topic and hands every raw message
body to ``dispatch``.

## Key Features

- **Explicit dispatch table**: topics and their handlers can be listed and tested
- **Sequential execution**: handlers of a topic run one after the other, in registration order
- **ServiceRegistry Integration**: handler classes are instantiated with constructor injection
- **Broker agnostic**: ``dispatch`` works on bytes, so tests never need a broker

## Usage

```python
registry = HandlerRegistry("search", decoder=decode_event, services=services)
registry.on("content.created", IndexCreatedContent)
registry.on("content.deleted", RemoveDeletedContent)

for topic in registry.get_registered_topics():
    await broker.subscribe(topic, partial(registry.dispatch, topic))
```

"""

import inspect
from collections.abc import Callable
from typing import Any

from loguru import logger
from pydantic import BaseModel

from social_server.services.registry import ServiceRegistry

from .core import HandlerRegistrationError

T_Handler = Callable[..., Any]
T_Decoder = Callable[[bytes], BaseModel]


class HandlerRegistry:
    """Topic to handler dispatch table for one consuming service.

    Each consuming service role owns one registry, so each role gets its own
    subscription (and therefore its own copy of every matching event) even
    when several roles share a process.
    """

    def __init__(self, name: str, decoder: T_Decoder, services: ServiceRegistry | None = None) -> None:
        """Initialize an empty registry.

        Args:
            name: Name of the consuming service (used in logs and queue bookkeeping)
            decoder: Turns a raw message body into an event; raises PermanentError when malformed
            services: Service registry used to instantiate handler classes
        """
        self.name = name
        self._decoder = decoder
        self._services = services
        self._handlers: dict[str, list[T_Handler]] = {}
        logger.debug(f"HandlerRegistry '{name}' initialized")

    def on(self, topic: str, handler: T_Handler | type) -> None:
        """Register a handler for a topic.

        Args:
            topic: Routing key or broker wildcard pattern (e.g. ``content.*``)
            handler: Async function, handler instance, or handler class to instantiate with DI

        Raises:
            HandlerRegistrationError: If topic is empty or handler is not callable
        """
        if not isinstance(topic, str) or not topic.strip():
            raise HandlerRegistrationError(f"Topic must be a non-empty string, got: {topic!r}")

        if inspect.isclass(handler):
            handler = self._instantiate_handler_class(handler)

        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        self._handlers.setdefault(topic, []).append(handler)
        logger.debug(f"[{self.name}] Registered handler for {topic}: {handler}")

    def remove_handler(self, topic: str, handler: T_Handler) -> bool:
        """Remove a specific handler for a topic."""
        if topic in self._handlers:
            try:
                self._handlers[topic].remove(handler)
                logger.debug(f"[{self.name}] Removed handler for {topic}: {handler}")
                if not self._handlers[topic]:
                    del self._handlers[topic]
                return True
            except ValueError:
                pass
        return False

    def clear_handlers(self, topic: str | None = None) -> None:
        """Clear handlers for a specific topic or all topics."""
        if topic is None:
            self._handlers.clear()
            logger.debug(f"[{self.name}] Cleared all handlers")
        elif topic in self._handlers:
            del self._handlers[topic]
            logger.debug(f"[{self.name}] Cleared handlers for {topic}")

    def get_handler_count(self, topic: str) -> int:
        """Get the number of handlers registered for a topic."""
        return len(self._handlers.get(topic, []))

    def get_registered_topics(self) -> list[str]:
        """Get all topics that have registered handlers, in registration order."""
        return list(self._handlers.keys())

    async def dispatch(self, topic: str, body: bytes) -> list[Any]:
        """Decode a message body and run every handler of ``topic`` on it.

        Handlers run sequentially; the first exception aborts the dispatch and
        propagates to the consumption loop, which maps it to ack or requeue.
        Handlers that already ran will see the event again on redelivery,
        which is safe because handlers are idempotent.

        Args:
            topic: The topic whose handlers should run
            body: Raw message body

        Returns:
            List of handler results

        Raises:
            PermanentError: If the body cannot be decoded
            TransientError: Propagated from a handler
        """
        event = self._decoder(body)
        handlers = self._handlers.get(topic, [])

        if not handlers:
            logger.debug(f"[{self.name}] No handlers registered for {topic}")
            return []

        logger.trace(f"[{self.name}] Dispatching {topic} to {len(handlers)} handlers")
        results = []
        for handler in handlers:
            results.append(await handler(event))
        return results

    def _instantiate_handler_class(self, handler_class: type) -> Any:
        """Instantiate a handler class with dependency injection.

        Constructor parameters are resolved from the ServiceRegistry by their
        type annotation. Parameters that cannot be resolved are left to their
        defaults.
        """
        parameters = list(inspect.signature(handler_class.__init__).parameters.values())[1:]  # Skip 'self'
        if not parameters:
            return handler_class()

        kwargs = {}
        for param in parameters:
            if param.annotation is inspect.Parameter.empty or self._services is None:
                continue
            try:
                kwargs[param.name] = self._services.get(param.annotation)
                logger.trace(f"Injected '{param.annotation.__name__}' into handler class {handler_class.__name__}")
            except (KeyError, AttributeError):
                logger.trace(f"Service '{param.annotation}' not found for handler class {handler_class.__name__}")

        try:
            return handler_class(**kwargs)
        except TypeError as e:
            raise HandlerRegistrationError(f"Cannot instantiate handler class {handler_class.__name__}: {e}") from e
