"""Object storage for uploaded media.

Only the media service touches object storage: uploads from the API and
deletions from the media-lifecycle consumer. ``delete`` must be idempotent,
since a redelivered event can ask for an object that is already gone.
"""

import asyncio
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from loguru import logger

from social_server.exceptions import ObjectStorageError


@dataclass(frozen=True)
class StoredObject:
    public_id: str
    url: str


class ObjectStorage(Protocol):
    """Blob store interface used by the media service."""

    async def upload(self, data: bytes, filename: str, mime_type: str) -> StoredObject: ...

    async def delete(self, public_id: str) -> bool: ...


class LocalObjectStorage:
    """Filesystem-backed object storage for single-node and development deployments."""

    def __init__(self, root: str | Path, base_url: str = "/media") -> None:
        self._root = Path(root)
        self._base_url = base_url.rstrip("/")

    def _path(self, public_id: str) -> Path:
        path = (self._root / public_id).resolve()
        if self._root.resolve() not in path.parents:
            raise ObjectStorageError(f"Invalid object id: {public_id}")
        return path

    async def upload(self, data: bytes, filename: str, mime_type: str) -> StoredObject:
        suffix = Path(filename).suffix or mimetypes.guess_extension(mime_type) or ""
        public_id = f"{uuid4().hex}{suffix.lower()}"
        path = self._path(public_id)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise ObjectStorageError(f"Could not store {filename}: {e}") from e

        logger.debug(f"Stored object {public_id} ({len(data)} bytes)")
        return StoredObject(public_id=public_id, url=f"{self._base_url}/{public_id}")

    async def delete(self, public_id: str) -> bool:
        """Delete an object; returns False if it was already gone."""
        path = self._path(public_id)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as e:
            raise ObjectStorageError(f"Could not delete {public_id}: {e}") from e
        logger.debug(f"Deleted object {public_id}")
        return True
