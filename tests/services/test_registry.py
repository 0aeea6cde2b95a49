"""Tests for the service registry."""

import pytest

from social_server.services.registry import ServiceRegistry


class MockService:
    """A mock service class for testing."""

    def __init__(self, value: str = "default"):
        self.value = value

    def get_value(self) -> str:
        return self.value


class AnotherMockService:
    """Another mock service class for testing."""

    def __init__(self, number: int = 42):
        self.number = number


def test_register_and_get_singleton():
    registry = ServiceRegistry()
    service = MockService("singleton")
    registry.register_singleton(MockService, service)
    assert registry.get(MockService) is service


def test_register_and_get_factory():
    """Factories are called on every lookup."""
    registry = ServiceRegistry()
    calls = 0

    def factory() -> MockService:
        nonlocal calls
        calls += 1
        return MockService("factory")

    registry.register_factory(MockService, factory)
    first = registry.get(MockService)
    second = registry.get(MockService)

    assert calls == 2
    assert first.get_value() == "factory"
    assert first is not second


def test_singleton_replaces_factory():
    registry = ServiceRegistry()
    registry.register_factory(MockService, MockService)
    instance = MockService("explicit")
    registry.register_singleton(MockService, instance)
    assert registry.get(MockService) is instance


def test_get_unregistered_service():
    registry = ServiceRegistry()
    with pytest.raises(KeyError, match="Service MockService not registered"):
        registry.get(MockService)


def test_contains_and_registered():
    registry = ServiceRegistry()
    registry.register_singleton(MockService, MockService())
    registry.register_factory(AnotherMockService, AnotherMockService)

    assert MockService in registry
    assert AnotherMockService in registry
    assert registry.registered() == ["AnotherMockService", "MockService"]


def test_registries_are_independent():
    """Each process builds its own registry; nothing is shared through module state."""
    first, second = ServiceRegistry(), ServiceRegistry()
    first.register_singleton(MockService, MockService())
    assert MockService not in second
