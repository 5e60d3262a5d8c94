"""Blob Store error taxonomy."""


class BlobStoreError(Exception):
    """Base class for all encrypted blob store failures."""


class ConfigurationInvalid(BlobStoreError, ValueError):
    """Master key or cipher configuration is missing or malformed.

    Fatal at startup; never raised per request.
    """


class EncryptionFailed(BlobStoreError):
    """Cipher or storage write failed. No blob is left referenced."""


class DecryptionFailed(BlobStoreError):
    """Ciphertext could not be turned back into the original bytes.

    Corruption, tampering and a wrong key/IV pair are deliberately not
    distinguished.
    """


class BlobNotFound(DecryptionFailed):
    """No ciphertext object exists at the given locator."""

    def __init__(self, locator: str):
        super().__init__(f"Blob not found: {locator}")
        self.locator = locator
