"""Dependency Injection Module."""
import logging
from functools import lru_cache
from typing import Generator, Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from notevault.adapters.sql.note_store import NoteStore
from notevault.adapters.sql.session import session_scope
from notevault.adapters.storage.local import LocalBlobStorage
from notevault.domain.auth import JwtValidator
from notevault.domain.blobs.store import BlobStoreConfig, EncryptedBlobStore
from notevault.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def _build_blob_store(upload_dir: str, master_key_hex: str, alg: str) -> EncryptedBlobStore:
    config = BlobStoreConfig(master_key=bytes.fromhex(master_key_hex), alg=alg)
    return EncryptedBlobStore(config, LocalBlobStorage(upload_dir))


def get_blob_store(settings: Settings = Depends(get_settings)) -> EncryptedBlobStore:
    """Process-wide blob store over the upload directory."""
    return _build_blob_store(
        settings.UPLOAD_DIR,
        settings.NOTEVAULT_MASTER_KEY.get_secret_value(),
        settings.BLOB_CIPHER,
    )


def get_db(settings: Settings = Depends(get_settings)) -> Generator[Session, None, None]:
    yield from session_scope(settings.DATABASE_URL)


def get_note_store(db: Session = Depends(get_db)) -> NoteStore:
    return NoteStore(db)


@lru_cache(maxsize=8)
def _build_jwt_validator(jwks_url: Optional[str], issuer: Optional[str],
                         audience: Optional[str], secret: Optional[str]) -> JwtValidator:
    return JwtValidator(jwks_url=jwks_url, issuer=issuer, audience=audience, secret=secret)


def get_jwt_validator(settings: Settings = Depends(get_settings)) -> JwtValidator:
    # Cached so the JWKS cache survives across requests
    return _build_jwt_validator(
        settings.JWT_JWKS_URL,
        settings.JWT_ISSUER,
        settings.JWT_AUDIENCE,
        settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET else None,
    )
