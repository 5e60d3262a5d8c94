"""Notes API: note CRUD plus encrypted attachment upload/download."""
import asyncio
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile

from notevault.adapters.sql.models import CONTENT_MAX_LENGTH, TITLE_MAX_LENGTH, Note
from notevault.adapters.sql.note_store import NoteStore
from notevault.api.notes.schemas import NoteOut
from notevault.dependencies import get_blob_store, get_note_store
from notevault.domain.blobs.errors import DecryptionFailed, EncryptionFailed
from notevault.domain.blobs.models import BlobRecord
from notevault.domain.blobs.store import EncryptedBlobStore
from notevault.errors import raise_notevault_error
from notevault.middleware.auth import Principal, get_principal
from notevault.settings import Settings, get_settings
from notevault.utils.id import new_blob_name

router = APIRouter()
logger = logging.getLogger(__name__)

UPLOAD_CHUNK_BYTES = 1024 * 1024
RECORD_FIELD_MAX_LENGTH = 255


def _load_owned_note(store: NoteStore, note_id: str, principal: Principal, action: str) -> Note:
    note = store.get(note_id)
    if not note:
        raise_notevault_error("NOTE_NOT_FOUND", 404, "Note not found")
    if note.user_id != principal.id:
        raise_notevault_error("NOTE_FORBIDDEN", 403, f"Not authorized to {action}")
    return note


def _clean_title(title: Optional[str]) -> Optional[str]:
    if title is None:
        return None
    title = title.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise_notevault_error("VALIDATION_FAILED", 400, f"Title cannot be more than {TITLE_MAX_LENGTH} characters")
    return title


def _clean_content(content: Optional[str]) -> Optional[str]:
    if content is not None and len(content) > CONTENT_MAX_LENGTH:
        raise_notevault_error("VALIDATION_FAILED", 400, f"Content cannot be more than {CONTENT_MAX_LENGTH} characters")
    return content


def _has_upload(file: Optional[UploadFile]) -> bool:
    return file is not None and bool(file.filename)


def _clean_filename(filename: Optional[str]) -> str:
    """Basename of the client's filename, cut to fit the record column."""
    name = Path(filename or "file").name or "file"
    if len(name) <= RECORD_FIELD_MAX_LENGTH:
        return name
    suffix = Path(name).suffix
    if len(suffix) > 16:
        suffix = ""
    return name[:RECORD_FIELD_MAX_LENGTH - len(suffix)] + suffix


def _clean_mime_type(content_type: Optional[str]) -> str:
    if not content_type or len(content_type) > RECORD_FIELD_MAX_LENGTH:
        return "application/octet-stream"
    return content_type


async def _encrypt_upload(upload: UploadFile, settings: Settings,
                          blob_store: EncryptedBlobStore) -> BlobRecord:
    """Spool an upload to a temp file, encrypt it, and return its Blob Record.

    The temp file never outlives this call, and a ciphertext that cannot be
    described by a record is deleted again.
    """
    original_name = _clean_filename(upload.filename)
    mime_type = _clean_mime_type(upload.content_type)

    upload_dir = Path(settings.UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    file_name = new_blob_name()
    tmp_path = upload_dir / f".{file_name}.upload"

    size = 0
    try:
        with open(tmp_path, "wb") as fh:
            while chunk := await upload.read(UPLOAD_CHUNK_BYTES):
                size += len(chunk)
                if size > settings.MAX_FILE_SIZE:
                    raise_notevault_error(
                        "FILE_TOO_LARGE", 413,
                        f"File too large. Maximum size is {settings.MAX_FILE_SIZE} bytes",
                    )
                fh.write(chunk)

        blob = await asyncio.to_thread(blob_store.encrypt_file, tmp_path, file_name)
    except EncryptionFailed:
        logger.exception("File encryption failed")
        raise_notevault_error("ENCRYPTION_FAILED", 500, "File encryption failed")
    finally:
        tmp_path.unlink(missing_ok=True)
        await upload.close()

    try:
        return BlobRecord.from_blob(blob, file_name=file_name, original_name=original_name, mime_type=mime_type)
    except Exception:
        await asyncio.to_thread(blob_store.delete, blob.locator)
        raise


def _content_disposition(filename: str) -> str:
    """``attachment`` header value; non-latin-1 names use RFC 5987 encoding."""
    safe = filename.replace("\\", "_").replace('"', "_").replace("\r", "").replace("\n", "")
    try:
        safe.encode("latin-1")
        return f'attachment; filename="{safe}"'
    except UnicodeEncodeError:
        fallback = safe.encode("ascii", "replace").decode("ascii").replace("?", "_")
        return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(safe)}"


@router.get("")
async def list_notes(
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
):
    notes = store.list_for_user(principal.id)
    return {
        "success": True,
        "count": len(notes),
        "notes": [NoteOut.from_note(n).to_response() for n in notes],
    }


@router.post("", status_code=201)
async def create_note(
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    is_pinned: Optional[bool] = Form(None, alias="isPinned"),
    file: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
    blob_store: EncryptedBlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    title = _clean_title(title)
    content = _clean_content(content)
    if not title or not content:
        raise_notevault_error("VALIDATION_FAILED", 400, "Please provide title and content")

    record = None
    if _has_upload(file):
        record = await _encrypt_upload(file, settings, blob_store)

    try:
        note = store.create(principal.id, title, content, record)
    except Exception:
        # Metadata was not saved; the ciphertext must not be left orphaned
        if record is not None:
            await asyncio.to_thread(blob_store.delete, record.encrypted_path)
        raise


    if is_pinned:
        note.is_pinned = True
        note = store.save(note)

    return {
        "success": True,
        "message": "Note created successfully",
        "note": NoteOut.from_note(note).to_response(),
    }


@router.get("/{note_id}")
async def get_note(
    note_id: str,
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
):
    note = _load_owned_note(store, note_id, principal, "access this note")
    return {"success": True, "note": NoteOut.from_note(note).to_response()}


@router.put("/{note_id}")
async def update_note(
    note_id: str,
    title: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    is_pinned: Optional[bool] = Form(None, alias="isPinned"),
    file: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
    blob_store: EncryptedBlobStore = Depends(get_blob_store),
    settings: Settings = Depends(get_settings),
):
    note = _load_owned_note(store, note_id, principal, "update this note")

    title = _clean_title(title)
    content = _clean_content(content)

    record = None
    if _has_upload(file):
        # Replacement: old ciphertext goes first, then the new blob is created.
        # Only the detach is committed here; field edits wait for the upload.
        old_record = note.file_record
        if old_record is not None:
            await asyncio.to_thread(blob_store.delete, old_record.encrypted_path)
            note.detach()
            store.save(note)
        record = await _encrypt_upload(file, settings, blob_store)
        note.attach(record)

    if title:
        note.title = title
    if content:
        note.content = content
    if is_pinned is not None:
        note.is_pinned = is_pinned

    try:
        note = store.save(note)
    except Exception:
        if record is not None:
            await asyncio.to_thread(blob_store.delete, record.encrypted_path)
        raise

    return {
        "success": True,
        "message": "Note updated successfully",
        "note": NoteOut.from_note(note).to_response(),
    }


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
    blob_store: EncryptedBlobStore = Depends(get_blob_store),
):
    note = _load_owned_note(store, note_id, principal, "delete this note")

    record = note.file_record
    if record is not None:
        await asyncio.to_thread(blob_store.delete, record.encrypted_path)

    store.delete(note)
    return {"success": True, "message": "Note deleted successfully"}


@router.get("/{note_id}/file")
async def download_file(
    note_id: str,
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
    blob_store: EncryptedBlobStore = Depends(get_blob_store),
):
    note = _load_owned_note(store, note_id, principal, "access this file")

    record = note.file_record
    if record is None:
        raise_notevault_error("FILE_NOT_FOUND", 404, "No file attached to this note")

    try:
        data = await asyncio.to_thread(
            blob_store.decrypt, record.encrypted_path, record.iv, record.tag, record.alg
        )
    except DecryptionFailed:
        logger.exception(f"File download failed for note {note.id}")
        raise_notevault_error("DOWNLOAD_FAILED", 500, "Failed to download file")

    return Response(
        content=data,
        media_type=record.mime_type,
        headers={
            "Content-Disposition": _content_disposition(record.original_name),
            "Content-Length": str(len(data)),
        },
    )


@router.delete("/{note_id}/file")
async def delete_file(
    note_id: str,
    principal: Principal = Depends(get_principal),
    store: NoteStore = Depends(get_note_store),
    blob_store: EncryptedBlobStore = Depends(get_blob_store),
):
    note = _load_owned_note(store, note_id, principal, "modify this note")

    record = note.file_record
    if record is None:
        raise_notevault_error("FILE_NOT_FOUND", 404, "No file attached to this note")

    await asyncio.to_thread(blob_store.delete, record.encrypted_path)
    note.detach()
    store.save(note)
    return {"success": True, "message": "File deleted successfully"}
