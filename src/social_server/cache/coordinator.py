"""Versioned cache coordinator.

Listing-style queries have an unbounded key space (every page/limit or
query string is its own entry), so they are grouped into *families*. Each
family has a version counter in the store and every entry key embeds the
version it was computed under. Invalidating a family is one atomic
increment: entries under older versions simply become unreachable and age
out by TTL. No key is ever scanned or deleted by pattern.

Single items have a small, stable key space and are invalidated by deleting
their key directly.

The read path fails open: if the store is slow or down, lookups are misses
and writes are skipped, so requests fall through to the authoritative store.
"""

import json
from typing import Any

from loguru import logger

from social_server.exceptions import CacheStoreError

from .keys import entry_key, item_key, version_key
from .store import CacheStore

# Version a family reads as before its first bump
INITIAL_VERSION = 1


def _decode(raw: str, where: str) -> tuple[Any, bool]:
    """Decode a cached value; an unreadable one is a miss."""
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning(f"Unreadable cache entry {where}, treating as miss")
        return None, False
    logger.trace(f"Cache hit: {where}")
    return value, True


class CacheCoordinator:
    """Read-through cache helpers for versioned families and direct-key items."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    async def current_version(self, family: str) -> int:
        """Return the current version of a family (``INITIAL_VERSION`` if never bumped).

        Raises:
            CacheStoreError: If the store is unavailable
        """
        raw = await self._store.get(version_key(family))
        return int(raw) if raw is not None else INITIAL_VERSION

    async def resolve_version(self, family: str) -> int | None:
        """Return the current version of a family, or None if the store is unavailable."""
        try:
            return await self.current_version(family)
        except CacheStoreError as e:
            logger.warning(f"Cache version lookup failed for {family}: {e}")
            return None

    async def get(self, family: str, discriminator: str, version: int | None = None) -> tuple[Any, bool]:
        """Look up an entry under the family's current version.

        Args:
            family: Versioned family name
            discriminator: Page/limit, id or query string identifying the entry
            version: Version to read under; resolved from the store when None

        Returns:
            Tuple of (value, hit). On a miss or store failure the value is None.
        """
        try:
            if version is None:
                version = await self.current_version(family)
            raw = await self._store.get(entry_key(family, version, discriminator))
        except CacheStoreError as e:
            logger.warning(f"Cache read failed for {family}/{discriminator}, treating as miss: {e}")
            return None, False

        if raw is None:
            logger.trace(f"Cache miss: {family} v{version} {discriminator}")
            return None, False
        return _decode(raw, f"{family} v{version} {discriminator}")

    async def put(self, family: str, discriminator: str, value: Any, ttl: int, version: int | None = None) -> None:
        """Store an entry with a safety-net TTL.

        Pass the version the value was computed under (as returned by
        ``resolve_version`` before reading the authoritative store): if the
        family was bumped in between, the entry lands under the old version
        and is never served.
        """
        try:
            if version is None:
                version = await self.current_version(family)
            await self._store.set(entry_key(family, version, discriminator), json.dumps(value), ttl=ttl)
        except CacheStoreError as e:
            logger.warning(f"Cache write skipped for {family}/{discriminator}: {e}")

    async def bump_version(self, family: str) -> int:
        """Atomically advance a family's version, making all its entries unreachable.

        Returns:
            The new version, strictly greater than any version returned before

        Raises:
            CacheStoreError: If the store is unavailable
        """
        version = await self._store.increment_from(version_key(family), INITIAL_VERSION)
        logger.debug(f"Cache family {family} now at version {version}")
        return version

    async def get_item(self, resource: str, item_id: str) -> tuple[Any, bool]:
        """Look up a directly addressed item."""
        try:
            raw = await self._store.get(item_key(resource, item_id))
        except CacheStoreError as e:
            logger.warning(f"Cache read failed for {resource}:{item_id}, treating as miss: {e}")
            return None, False
        if raw is None:
            return None, False
        return _decode(raw, f"{resource}:{item_id}")

    async def put_item(self, resource: str, item_id: str, value: Any, ttl: int) -> None:
        """Store a directly addressed item."""
        try:
            await self._store.set(item_key(resource, item_id), json.dumps(value), ttl=ttl)
        except CacheStoreError as e:
            logger.warning(f"Cache write skipped for {resource}:{item_id}: {e}")

    async def invalidate_item(self, resource: str, item_id: str) -> bool:
        """Delete a directly addressed item.

        Returns:
            True if an entry was removed

        Raises:
            CacheStoreError: If the store is unavailable
        """
        return bool(await self._store.delete(item_key(resource, item_id)))
