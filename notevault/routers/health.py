import logging
import os
from pathlib import Path

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from notevault.dependencies import get_db
from notevault.errors import raise_notevault_error
from notevault.settings import Settings, get_settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health/live")
async def liveness():
    """Liveness probe: Service is running."""
    return {"status": "ok", "checks": {"api": "ok"}}


@router.get("/health/ready")
async def readiness(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Readiness probe: database reachable and upload directory writable."""
    health = {"status": "ok", "checks": {}}

    try:
        db.execute(text("SELECT 1"))
        health["checks"]["database"] = "ok"
    except Exception as e:
        logger.error(f"Health check failed (database): {e}")
        health["checks"]["database"] = "failed"
        health["status"] = "failed"

    upload_dir = Path(settings.UPLOAD_DIR)
    if upload_dir.is_dir() and os.access(upload_dir, os.W_OK):
        health["checks"]["blob_storage"] = "ok"
    else:
        logger.error(f"Health check failed (blob_storage): {upload_dir} is not a writable directory")
        health["checks"]["blob_storage"] = "failed"
        health["status"] = "failed"

    if health["status"] == "failed":
        raise_notevault_error("NOT_READY", 503, "Service not ready", details=health)

    return health
