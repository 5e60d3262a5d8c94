"""SQLAlchemy Models for notes."""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    desc,
)
from sqlalchemy.orm import DeclarativeBase

from notevault.domain.blobs.cipher import ALGORITHM_AES_256_CBC, ALGORITHM_AES_256_GCM
from notevault.domain.blobs.models import BlobRecord

TITLE_MAX_LENGTH = 200
CONTENT_MAX_LENGTH = 10000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Note(Base):
    """A user's note with an optional encrypted attachment.

    The attachment's Blob Record is flattened into ``file_*`` columns; all
    of them are null when there is no attachment.
    """
    __tablename__ = "notes"
    id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False)
    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    content = Column(Text, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)

    # Blob Record
    file_name = Column(String(255), nullable=True)
    file_original_name = Column(String(255), nullable=True)
    file_mime_type = Column(String(255), nullable=True)
    file_size = Column(Integer, nullable=True)
    file_encrypted_path = Column(String(1024), nullable=True)
    file_iv = Column(String(32), nullable=True)
    file_tag = Column(String(32), nullable=True)
    file_alg = Column(String(20), nullable=True)

    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("idx_notes_user_created", "user_id", desc("created_at")),
        Index("idx_notes_user_pinned_created", "user_id", desc("is_pinned"), desc("created_at")),
    )

    @property
    def has_file(self) -> bool:
        return bool(self.file_encrypted_path)

    @property
    def file_record(self) -> Optional[BlobRecord]:
        if not self.has_file:
            return None
        return BlobRecord(
            file_name=self.file_name,
            original_name=self.file_original_name,
            mime_type=self.file_mime_type or "application/octet-stream",
            size=self.file_size or 0,
            encrypted_path=self.file_encrypted_path,
            iv=self.file_iv,
            tag=self.file_tag,
            alg=self.file_alg or (ALGORITHM_AES_256_GCM if self.file_tag else ALGORITHM_AES_256_CBC),
        )

    def attach(self, record: BlobRecord) -> None:
        """Set the attachment; path, IV, tag and alg always move together."""
        self.file_name = record.file_name
        self.file_original_name = record.original_name
        self.file_mime_type = record.mime_type
        self.file_size = record.size
        self.file_encrypted_path = record.encrypted_path
        self.file_iv = record.iv
        self.file_tag = record.tag
        self.file_alg = record.alg

    def detach(self) -> None:
        self.file_name = None
        self.file_original_name = None
        self.file_mime_type = None
        self.file_size = None
        self.file_encrypted_path = None
        self.file_iv = None
        self.file_tag = None
        self.file_alg = None
