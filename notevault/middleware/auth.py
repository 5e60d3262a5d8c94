"""Bearer authentication for the notes API."""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from fastapi import Depends, Header

from notevault.dependencies import get_jwt_validator
from notevault.domain.auth import JwtValidator
from notevault.errors import raise_notevault_error


@dataclass
class Principal:
    """Authenticated caller. ``id`` owns notes."""
    id: str
    claims: Dict[str, Any] = field(default_factory=dict)


async def get_principal(
    authorization: Optional[str] = Header(None),
    validator: JwtValidator = Depends(get_jwt_validator),
) -> Principal:
    """Resolve the caller from ``Authorization: Bearer <jwt>``."""
    if not authorization or not authorization.startswith("Bearer "):
        raise_notevault_error(
            "AUTH_INVALID", 401,
            "Not authorized to access this route. Please login.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    claims = validator.validate_token(authorization[7:].strip())
    principal_id = claims.get("sub")
    if not principal_id:
        raise_notevault_error("AUTH_INVALID", 401, "Not authorized. Invalid token.")

    return Principal(id=str(principal_id), claims=claims)
