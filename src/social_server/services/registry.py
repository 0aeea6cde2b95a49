"""Service registry for dependency injection.

One ``ServiceRegistry`` is built per process at startup and stored on the
FastAPI application state; nothing in the code base reaches for it through
a module-level singleton.
"""

from collections.abc import Callable
from typing import Any, TypeVar, cast

T = TypeVar("T")
ServiceFactory = Callable[[], T]


class ServiceRegistry:
    """Registry of explicitly constructed service handles, keyed by type."""

    def __init__(self):
        self._instances: dict[type, Any] = {}
        self._factories: dict[type, ServiceFactory[Any]] = {}

    def register_singleton(self, service_type: type[T], instance: T) -> None:
        """Register an already constructed instance under its type."""
        self._factories.pop(service_type, None)
        self._instances[service_type] = instance

    def register_factory(self, service_type: type[T], factory: ServiceFactory[T]) -> None:
        """Register a factory called on every lookup of ``service_type``."""
        self._instances.pop(service_type, None)
        self._factories[service_type] = factory

    def __contains__(self, service_type: type) -> bool:
        return service_type in self._instances or service_type in self._factories

    def get(self, service_type: type[T]) -> T:
        """Get a service instance by type.

        Raises:
            KeyError: If the requested service is not registered
        """
        if service_type in self._instances:
            return cast(T, self._instances[service_type])
        if service_type in self._factories:
            return cast(T, self._factories[service_type]())
        raise KeyError(f"Service {service_type.__name__} not registered")

    def registered(self) -> list[str]:
        """Names of all registered service types."""
        return sorted(t.__name__ for t in (*self._instances, *self._factories))
