"""NoteVault - Main Application."""
import asyncio
import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from notevault.adapters.sql.session import create_schema, dispose_engines
from notevault.api.notes import router as notes_router
from notevault.domain.blobs.errors import ConfigurationInvalid
from notevault.logging_hardening import setup_logging_redaction
from notevault.routers import health
from notevault.settings import get_settings

# Initialize logging redaction filters early
setup_logging_redaction(os.getenv("LOG_LEVEL", "INFO"))

logger = logging.getLogger(__name__)


def _run_migrations(database_url: str) -> None:
    from alembic import command
    from alembic.config import Config

    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: configuration problems are fatal
    try:
        settings = get_settings()
    except ConfigurationInvalid as e:
        logger.critical(f"CRITICAL STARTUP ERROR: {e}")
        sys.exit(1)

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)

    try:
        if settings.RUN_MIGRATIONS:
            logger.info("Running DB Migrations...")
            await asyncio.to_thread(_run_migrations, settings.DATABASE_URL)
            logger.info("Migrations complete.")
        else:
            await asyncio.to_thread(create_schema, settings.DATABASE_URL)
    except Exception as e:
        logger.critical(f"CRITICAL STARTUP ERROR (database): {e}")
        sys.exit(1)

    logger.info(f"NoteVault started (cipher={settings.BLOB_CIPHER}, upload_dir={settings.UPLOAD_DIR})")
    yield
    # Shutdown
    dispose_engines()
    logger.info("Shutdown complete.")


app = FastAPI(
    title="NoteVault",
    description="Personal notes with encrypted attachments",
    version="1.0.0",
    lifespan=lifespan,
)

if os.getenv("TRACING_ENABLED", "false").lower() == "true":
    from notevault.observability.tracing import setup_opentelemetry
    setup_opentelemetry(
        app,
        otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
        dev_mode=os.getenv("DEV_MODE", "false").lower() == "true",
    )


@app.exception_handler(HTTPException)
async def notevault_http_exception_handler(request: Request, exc: HTTPException):
    # raise_notevault_error bodies become {"success": false, "message", "error"}
    if isinstance(exc.detail, dict) and "error" in exc.detail:
        error = exc.detail["error"]
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": error.get("message"), "error": error},
            headers=exc.headers,
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Invalid request",
            "error": {"code": "VALIDATION_FAILED", "message": "Invalid request"},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Details go to the log only
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


@app.get("/")
async def index():
    return {
        "success": True,
        "message": "NoteVault API",
        "version": app.version,
        "endpoints": {"notes": "/api/notes", "health": "/health/live"},
    }


# Mount routers
app.include_router(notes_router.router, prefix="/api/notes", tags=["Notes"])
app.include_router(health.router, tags=["Health"])
