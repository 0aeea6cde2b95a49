"""Common exceptions for the server.

Request-level errors (mapped to HTTP responses by ``exception_handlers``)
and the infrastructure errors raised by the cache store and object storage
adapters. Event bus and handler outcome errors live in
``social_server.event_bus.core``.
"""


class ResourceNotFoundError(Exception):
    """Raised when a resource doesn't exist.

    Generic exception for any resource that cannot be found by its identifier.
    """

    def __init__(self, resource_type: str, identifier: str | int):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found: {identifier}")


class CacheStoreError(ConnectionError):
    """Raised when the shared cache store is unreachable or too slow to answer.

    Read paths treat this as a cache miss; writers that need the store
    (version bumps, rate buckets) decide explicitly how to degrade.
    """


class ObjectStorageError(Exception):
    """Raised when the object storage backend fails to store or delete an object."""
