"""Memory Store Implementations."""
import threading
from typing import Dict

from notevault.domain.blobs.errors import BlobNotFound
from notevault.domain.blobs.ports import BlobStorage


class MemoryBlobStorage(BlobStorage):
    """Process-local blob storage. Used by tests and ephemeral deployments."""

    PREFIX = "mem://"

    def __init__(self):
        self._objects: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def new_locator(self, name: str) -> str:
        if not name or "/" in name:
            raise ValueError(f"Invalid blob name: {name!r}")
        return f"{self.PREFIX}{name}.encrypted"

    def write(self, locator: str, data: bytes) -> None:
        with self._lock:
            if locator in self._objects:
                raise FileExistsError(f"Blob already exists: {locator}")
            self._objects[locator] = bytes(data)

    def read(self, locator: str) -> bytes:
        with self._lock:
            data = self._objects.get(locator)
        if data is None:
            raise BlobNotFound(locator)
        return data

    def delete(self, locator: str) -> None:
        with self._lock:
            if self._objects.pop(locator, None) is None:
                raise BlobNotFound(locator)

    def exists(self, locator: str) -> bool:
        with self._lock:
            return locator in self._objects

    def count(self) -> int:
        with self._lock:
            return len(self._objects)
