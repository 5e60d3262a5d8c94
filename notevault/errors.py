from fastapi import HTTPException
from typing import Optional, Dict, Any


def raise_notevault_error(
    code: str,
    status_code: int,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> None:
    """Raise a standardized NoteVault HTTPException.

    Args:
        code: Error code (AUTH_INVALID, NOTE_NOT_FOUND, etc.)
        status_code: HTTP Status Code (401, 404, etc.)
        message: Human readable message, safe to show to clients
        details: Optional extra details (never internal error text)
        headers: Optional response headers
    """
    error_body: Dict[str, Any] = {
        "code": code,
        "message": message
    }
    if details:
        error_body["details"] = details

    raise HTTPException(status_code=status_code, detail={"error": error_body}, headers=headers)
