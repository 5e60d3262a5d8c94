"""Blob Domain Models."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .cipher import ALGORITHM_AES_256_CBC, ALGORITHM_AES_256_GCM, CIPHERS

HEX_IV_PATTERN = r"^[0-9a-f]{32}$"   # 16 bytes
HEX_TAG_PATTERN = r"^[0-9a-f]{32}$"  # 16 bytes


def _check_alg_tag(alg: str, tag: Optional[str]) -> None:
    if alg == ALGORITHM_AES_256_GCM and tag is None:
        raise ValueError(f"{alg} blobs must carry a tag")
    if alg == ALGORITHM_AES_256_CBC and tag is not None:
        raise ValueError(f"{alg} blobs have no tag")


class EncryptedBlob(BaseModel):
    """Result of a successful encrypt: where the ciphertext lives and how to open it.

    All binary fields are lowercase hex strings.
    """
    model_config = ConfigDict(frozen=True)

    locator: str = Field(..., min_length=1)
    iv: str = Field(..., pattern=HEX_IV_PATTERN)
    tag: Optional[str] = Field(default=None, pattern=HEX_TAG_PATTERN)
    alg: str = Field(default=ALGORITHM_AES_256_GCM)
    size: int = Field(..., ge=0)  # plaintext bytes

    @field_validator("alg")
    @classmethod
    def validate_alg(cls, v):
        if v not in CIPHERS:
            raise ValueError(f"Unsupported algorithm: {v}")
        return v

    @model_validator(mode="after")
    def validate_tag(self):
        _check_alg_tag(self.alg, self.tag)
        return self


class BlobRecord(BaseModel):
    """Encrypted-file metadata attached to a note.

    ``encrypted_path``, ``iv``, ``tag`` and ``alg`` are internal: they are
    persisted with the note but never serialized to API clients.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    file_name: str = Field(..., min_length=1, max_length=255)
    original_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str = Field(default="application/octet-stream", max_length=255)
    size: int = Field(..., ge=0)
    encrypted_path: str = Field(..., min_length=1)
    iv: str = Field(..., pattern=HEX_IV_PATTERN)
    tag: Optional[str] = Field(default=None, pattern=HEX_TAG_PATTERN)
    alg: str = Field(default=ALGORITHM_AES_256_GCM)

    @model_validator(mode="after")
    def validate_tag(self):
        _check_alg_tag(self.alg, self.tag)
        return self

    @classmethod
    def from_blob(cls, blob: EncryptedBlob, file_name: str, original_name: str,
                  mime_type: Optional[str]) -> "BlobRecord":
        return cls(
            file_name=file_name,
            original_name=original_name,
            mime_type=mime_type or "application/octet-stream",
            size=blob.size,
            encrypted_path=blob.locator,
            iv=blob.iv,
            tag=blob.tag,
            alg=blob.alg,
        )
