"""NoteStore - Database-backed note persistence."""
import logging
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from notevault.adapters.sql.models import Note
from notevault.domain.blobs.models import BlobRecord
from notevault.utils.id import uuid7

logger = logging.getLogger(__name__)


class NoteStore:
    """Repository for notes and their embedded Blob Records."""

    def __init__(self, db: Session):
        self._db = db

    def list_for_user(self, user_id: str) -> List[Note]:
        """Notes owned by ``user_id``: pinned first, then newest first."""
        return (
            self._db.query(Note)
            .filter(Note.user_id == user_id)
            .order_by(desc(Note.is_pinned), desc(Note.created_at), desc(Note.id))
            .all()
        )

    def get(self, note_id: str) -> Optional[Note]:
        return self._db.query(Note).filter(Note.id == note_id).first()

    def create(self, user_id: str, title: str, content: str,
               record: Optional[BlobRecord] = None) -> Note:
        note = Note(
            id=uuid7(),
            user_id=user_id,
            title=title,
            content=content,
            is_pinned=False,
        )
        if record is not None:
            note.attach(record)
        self._db.add(note)
        self._commit()
        self._db.refresh(note)
        logger.info(f"Created note {note.id} (attachment={note.has_file})")
        return note

    def save(self, note: Note) -> Note:
        self._db.add(note)
        self._commit()
        self._db.refresh(note)
        return note

    def delete(self, note: Note) -> None:
        note_id = note.id
        self._db.delete(note)
        self._commit()
        logger.info(f"Deleted note {note_id}")

    def _commit(self) -> None:
        try:
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise
