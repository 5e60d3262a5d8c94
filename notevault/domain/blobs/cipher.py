"""AES-256 ciphers for blobs at rest.

Two modes are supported:

* ``aes-256-gcm`` (default): authenticated. A 16-byte tag is produced on
  encryption and must be presented on decryption; any tampering or wrong
  key/IV fails with ``InvalidTag``.
* ``aes-256-cbc``: PKCS7 padded, unauthenticated. Kept so blobs written
  without a tag remain readable. A wrong key/IV is only noticed when the
  padding happens to be invalid; otherwise garbage comes back.

Both modes take a fresh 16-byte IV per blob, supplied by the caller.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Type

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import ConfigurationInvalid
from .keys import MASTER_KEY_BYTES

ALGORITHM_AES_256_GCM = "aes-256-gcm"
ALGORITHM_AES_256_CBC = "aes-256-cbc"

IV_BYTES = 16
TAG_BYTES = 16


@dataclass(frozen=True)
class CipherOutput:
    ciphertext: bytes
    tag: Optional[bytes] = None


class BlobCipher(ABC):
    """Symmetric cipher keyed by the process master key."""

    alg: str = ""

    def __init__(self, key: bytes):
        if len(key) != MASTER_KEY_BYTES:
            raise ConfigurationInvalid(
                f"{self.alg} requires a {MASTER_KEY_BYTES}-byte key. Got len={len(key)}"
            )
        self._key = key

    @abstractmethod
    def encrypt(self, iv: bytes, plaintext: bytes) -> CipherOutput:
        ...

    @abstractmethod
    def decrypt(self, iv: bytes, ciphertext: bytes, tag: Optional[bytes] = None) -> bytes:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(alg={self.alg!r})"


class AesCbcCipher(BlobCipher):
    alg = ALGORITHM_AES_256_CBC

    def encrypt(self, iv: bytes, plaintext: bytes) -> CipherOutput:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        return CipherOutput(ciphertext=encryptor.update(padded) + encryptor.finalize())

    def decrypt(self, iv: bytes, ciphertext: bytes, tag: Optional[bytes] = None) -> bytes:
        block = algorithms.AES.block_size // 8
        if not ciphertext or len(ciphertext) % block:
            raise ValueError(f"Ciphertext length {len(ciphertext)} is not a positive multiple of {block}")

        decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()

        # Raises ValueError("Invalid padding bytes.") on a wrong key/IV most of the time
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()


class AesGcmCipher(BlobCipher):
    alg = ALGORITHM_AES_256_GCM

    def __init__(self, key: bytes):
        super().__init__(key)
        self._aesgcm = AESGCM(self._key)

    def encrypt(self, iv: bytes, plaintext: bytes) -> CipherOutput:
        ct_and_tag = self._aesgcm.encrypt(iv, plaintext, None)
        return CipherOutput(ciphertext=ct_and_tag[:-TAG_BYTES], tag=ct_and_tag[-TAG_BYTES:])

    def decrypt(self, iv: bytes, ciphertext: bytes, tag: Optional[bytes] = None) -> bytes:
        if tag is None or len(tag) != TAG_BYTES:
            raise ValueError(f"{self.alg} requires a {TAG_BYTES}-byte tag")
        return self._aesgcm.decrypt(iv, ciphertext + tag, None)


CIPHERS: Dict[str, Type[BlobCipher]] = {
    ALGORITHM_AES_256_GCM: AesGcmCipher,
    ALGORITHM_AES_256_CBC: AesCbcCipher,
}


def get_cipher(alg: str, key: bytes) -> BlobCipher:
    """Factory for the cipher named by ``alg``."""
    cipher_cls = CIPHERS.get(alg)
    if cipher_cls is None:
        raise ConfigurationInvalid(f"Unsupported blob cipher: {alg}")
    return cipher_cls(key)
