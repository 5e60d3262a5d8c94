"""Encrypted Blob Store.

Encrypt-on-upload / decrypt-on-download for note attachments. Every blob
gets a fresh random 16-byte IV; all blobs share the single process master
key handed in through ``BlobStoreConfig``. Plaintext never reaches storage.

The store is synchronous and stateless apart from the immutable key, so one
instance can serve concurrent requests. Callers serialize operations on the
same locator.
"""
import binascii
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

from notevault.utils.id import new_blob_name

from .cipher import ALGORITHM_AES_256_CBC, ALGORITHM_AES_256_GCM, CIPHERS, IV_BYTES, BlobCipher, get_cipher
from .errors import BlobNotFound, ConfigurationInvalid, DecryptionFailed, EncryptionFailed
from .keys import MASTER_KEY_BYTES
from .models import EncryptedBlob
from .ports import BlobStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobStoreConfig:
    """Explicit configuration for the blob store.

    ``master_key`` is excluded from repr so it cannot leak through logs.
    """
    master_key: bytes = field(repr=False)
    alg: str = ALGORITHM_AES_256_GCM

    def __post_init__(self):
        if len(self.master_key) != MASTER_KEY_BYTES:
            raise ConfigurationInvalid(
                f"Master key must be {MASTER_KEY_BYTES} bytes. Got len={len(self.master_key)}"
            )
        if self.alg not in CIPHERS:
            raise ConfigurationInvalid(f"Unsupported blob cipher: {self.alg}")

    @classmethod
    def from_settings(cls, settings) -> "BlobStoreConfig":
        return cls(master_key=settings.master_key_bytes, alg=settings.BLOB_CIPHER)


class EncryptedBlobStore:
    """Wraps note attachments in AES-256 before they touch storage."""

    def __init__(self, config: BlobStoreConfig, storage: BlobStorage):
        self._storage = storage
        self._alg = config.alg
        # Every supported cipher stays available so older blobs remain readable
        self._ciphers: Dict[str, BlobCipher] = {
            alg: get_cipher(alg, config.master_key) for alg in CIPHERS
        }

    @property
    def alg(self) -> str:
        return self._alg

    @property
    def storage(self) -> BlobStorage:
        return self._storage

    def encrypt(self, plaintext: bytes, name: Optional[str] = None) -> EncryptedBlob:
        """Encrypt ``plaintext`` into one new storage object.

        Args:
            plaintext: Whole payload, any length including zero.
            name: Storage identifier; generated when omitted.

        Raises:
            EncryptionFailed: cipher or write failed. Nothing stays in storage.
        """
        cipher = self._ciphers[self._alg]
        locator = None
        written = False
        try:
            locator = self._storage.new_locator(name or new_blob_name())
            iv = os.urandom(IV_BYTES)
            out = cipher.encrypt(iv, plaintext)
            self._storage.write(locator, out.ciphertext)
            written = True

            blob = EncryptedBlob(
                locator=locator,
                iv=binascii.hexlify(iv).decode("ascii"),
                tag=binascii.hexlify(out.tag).decode("ascii") if out.tag is not None else None,
                alg=self._alg,
                size=len(plaintext),
            )
        except Exception as e:
            if written:
                self._discard(locator)
            logger.error(f"Blob encryption failed ({self._alg}): {type(e).__name__}")
            raise EncryptionFailed("File encryption failed") from e

        logger.info(f"Encrypted blob {_label(locator)} ({blob.size} bytes, {self._alg})")
        return blob

    def encrypt_file(self, source: Union[str, Path], name: Optional[str] = None) -> EncryptedBlob:
        """Encrypt a temporary upload and delete it.

        The source is removed only after the ciphertext is durably written.
        If the source cannot be removed the new blob is discarded and the
        call fails, so a successful return always means no plaintext copy
        is left behind.
        """
        source = Path(source)
        try:
            plaintext = source.read_bytes()
        except OSError as e:
            logger.error(f"Cannot read upload {source.name}: {e.strerror}")
            raise EncryptionFailed("File encryption failed") from e

        blob = self.encrypt(plaintext, name)

        try:
            source.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            self._discard(blob.locator)
            logger.error(f"Cannot remove plaintext upload {source.name}: {e.strerror}")
            raise EncryptionFailed("File encryption failed") from e
        return blob

    def decrypt(self, locator: str, iv_hex: str, tag_hex: Optional[str] = None,
                alg: Optional[str] = None) -> bytes:
        """Return the exact bytes originally passed to ``encrypt``.

        ``alg`` defaults to GCM when a tag is given and CBC otherwise.

        Raises:
            BlobNotFound: nothing stored at ``locator``.
            DecryptionFailed: bad IV/tag, wrong key, corruption or tampering.
        """
        if alg is None:
            alg = ALGORITHM_AES_256_GCM if tag_hex else ALGORITHM_AES_256_CBC
        cipher = self._ciphers.get(alg)
        if cipher is None:
            raise DecryptionFailed(f"Unsupported algorithm: {alg}")

        try:
            iv = binascii.unhexlify(iv_hex or "")
            tag = binascii.unhexlify(tag_hex) if tag_hex else None
        except (binascii.Error, ValueError) as e:
            raise DecryptionFailed("Malformed IV or tag") from e
        if len(iv) != IV_BYTES:
            raise DecryptionFailed(f"IV must be {IV_BYTES} bytes. Got len={len(iv)}")

        try:
            ciphertext = self._storage.read(locator)
        except BlobNotFound:
            logger.warning(f"Blob {_label(locator)} is missing")
            raise
        except Exception as e:
            raise DecryptionFailed("File decryption failed") from e

        try:
            plaintext = cipher.decrypt(iv, ciphertext, tag)
        except Exception as e:
            logger.warning(f"Blob {_label(locator)} failed to decrypt ({alg}): {type(e).__name__}")
            raise DecryptionFailed("File decryption failed") from e

        logger.debug(f"Decrypted blob {_label(locator)} ({len(plaintext)} bytes)")
        return plaintext

    def delete(self, locator: str) -> None:
        """Remove a ciphertext object. Idempotent; never raises."""
        try:
            self._storage.delete(locator)
            logger.info(f"Deleted blob {_label(locator)}")
        except BlobNotFound:
            logger.debug(f"Blob {_label(locator)} already absent")
        except Exception as e:
            logger.error(f"Blob deletion failed for {_label(locator)}: {e}")

    def _discard(self, locator: Optional[str]) -> None:
        if not locator:
            return
        try:
            self._storage.delete(locator)
        except Exception as e:
            logger.error(f"Could not discard blob {_label(locator)}: {e}")


def _label(locator: Optional[str]) -> str:
    """Short locator form for logs."""
    if not locator:
        return "<none>"
    return locator.rsplit("/", 1)[-1]
