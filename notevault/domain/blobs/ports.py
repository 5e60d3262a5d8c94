"""Blob Domain Ports (Interfaces)."""
from abc import ABC, abstractmethod


class BlobStorage(ABC):
    """Abstract Port for byte-oriented ciphertext persistence.

    Objects are addressed by opaque string locators handed out by
    ``new_locator``. Callers never build locators themselves.
    """

    @abstractmethod
    def new_locator(self, name: str) -> str:
        """Return the locator a new object called ``name`` will live at."""
        ...

    @abstractmethod
    def write(self, locator: str, data: bytes) -> None:
        """Durably write a new object. Never overwrites an existing one."""
        ...

    @abstractmethod
    def read(self, locator: str) -> bytes:
        """Read a whole object. Raises BlobNotFound if absent."""
        ...

    @abstractmethod
    def delete(self, locator: str) -> None:
        """Remove an object. Raises BlobNotFound if absent."""
        ...

    @abstractmethod
    def exists(self, locator: str) -> bool:
        ...
