"""Public response schemas for the notes API.

These models define everything a client may see. Blob internals
(``encryptedPath``, ``iv``, ``tag``, ``alg``) have no field here, so they
cannot be serialized regardless of what the note row holds.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from notevault.adapters.sql.models import Note


class FileInfoOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_name: str
    original_name: str
    mime_type: str
    size: int


class NoteOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user: str
    title: str
    content: str
    is_pinned: bool
    file: Optional[FileInfoOut] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_note(cls, note: Note) -> "NoteOut":
        record = note.file_record
        return cls(
            id=note.id,
            user=note.user_id,
            title=note.title,
            content=note.content,
            is_pinned=bool(note.is_pinned),
            file=FileInfoOut(
                file_name=record.file_name,
                original_name=record.original_name,
                mime_type=record.mime_type,
                size=record.size,
            ) if record else None,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
