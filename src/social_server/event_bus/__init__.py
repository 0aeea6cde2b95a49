"""Event Bus System for cross-service consistency.

This package carries domain events between independently deployed
services over a topic exchange. It is split into:

- **core**: handler base class and the error taxonomy that decides
  message acknowledgement (``TransientError`` requeues, ``PermanentError`` drops)
- **registry**: ``HandlerRegistry``, an inspectable topic -> handler
  dispatch table that works on raw bytes and never touches the broker
- **broker**: ``BrokerClient``, the AMQP adapter owning the process's one
  connection, the shared exchange, and one consumption loop per subscription

## Quick Start

```python
broker = BrokerClient(settings.broker_url, settings.exchange_name)
await broker.connect()

registry = HandlerRegistry("search", decoder=decode_event, services=services)
registry.on("content.created", IndexCreatedContent)
await start_consumers(broker, [registry])
```

"""

from functools import partial

from loguru import logger

from .broker import BrokerClient, Subscription
from .core import (
    BrokerConnectionError,
    EventBusError,
    EventHandler,
    HandlerRegistrationError,
    PermanentError,
    PublishError,
    TransientError,
)
from .registry import HandlerRegistry


async def start_consumers(broker: BrokerClient, registries: list[HandlerRegistry]) -> list[Subscription]:
    """Subscribe one consumption loop per (registry, topic) pair.

    Args:
        broker: Connected broker client
        registries: One registry per consuming service role

    Returns:
        The started subscriptions
    """
    subscriptions = []
    for registry in registries:
        for topic in registry.get_registered_topics():
            subscriptions.append(await broker.subscribe(topic, partial(registry.dispatch, topic)))
        logger.info(f"Consumers for '{registry.name}' started: {', '.join(registry.get_registered_topics()) or 'none'}")
    return subscriptions


__all__ = [
    "BrokerClient",
    "BrokerConnectionError",
    "EventBusError",
    "EventHandler",
    "HandlerRegistrationError",
    "HandlerRegistry",
    "PermanentError",
    "PublishError",
    "Subscription",
    "TransientError",
    "start_consumers",
]
