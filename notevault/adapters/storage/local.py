"""Filesystem Blob Storage Adapter."""
import logging
import os
import tempfile
from pathlib import Path
from typing import Union

from notevault.domain.blobs.errors import BlobNotFound
from notevault.domain.blobs.ports import BlobStorage

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Ciphertext files in a single flat directory.

    Locators are absolute file paths under ``root``. Writes go to a temp file
    in the same directory, are fsynced, then hard-linked into place, so readers
    never observe a partially written blob and an existing blob is never
    replaced.
    """

    SUFFIX = ".encrypted"

    def __init__(self, root: Union[str, Path]):
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def new_locator(self, name: str) -> str:
        if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
            raise ValueError(f"Invalid blob name: {name!r}")
        return str(self._root / f"{name}{self.SUFFIX}")

    def _path(self, locator: str) -> Path:
        path = Path(locator).resolve()
        if path.parent != self._root:
            raise ValueError("Locator is outside the blob root")
        return path

    def write(self, locator: str, data: bytes) -> None:
        path = self._path(locator)

        fd, tmp = tempfile.mkstemp(dir=self._root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            # Fails with FileExistsError if the target exists
            try:
                os.link(tmp, path)
            except FileExistsError:
                raise FileExistsError(f"Blob already exists: {path.name}") from None
        finally:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass

    def read(self, locator: str) -> bytes:
        try:
            return self._path(locator).read_bytes()
        except FileNotFoundError:
            raise BlobNotFound(locator) from None

    def delete(self, locator: str) -> None:
        try:
            self._path(locator).unlink()
        except FileNotFoundError:
            raise BlobNotFound(locator) from None

    def exists(self, locator: str) -> bool:
        try:
            return self._path(locator).is_file()
        except ValueError:
            return False
