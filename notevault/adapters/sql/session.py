"""Database engine and session management."""
import logging
from typing import Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from notevault.adapters.sql.models import Base

logger = logging.getLogger(__name__)

_ENGINES: Dict[str, Engine] = {}
_SESSION_FACTORIES: Dict[str, sessionmaker] = {}


def get_engine(database_url: str) -> Engine:
    """Return the engine for ``database_url``, creating it once per process."""
    engine = _ENGINES.get(database_url)
    if engine is None:
        connect_args = {}
        if database_url.startswith("sqlite"):
            # Requests are served from a thread pool
            connect_args["check_same_thread"] = False
        engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)
        _ENGINES[database_url] = engine
        _SESSION_FACTORIES[database_url] = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        logger.info(f"Initialized database engine ({engine.dialect.name})")
    return engine


def create_schema(database_url: str) -> None:
    """Create missing tables. Used when alembic migrations are not run."""
    Base.metadata.create_all(get_engine(database_url))


def session_scope(database_url: str) -> Generator[Session, None, None]:
    """Yield a session bound to ``database_url`` and close it afterwards."""
    get_engine(database_url)
    db = _SESSION_FACTORIES[database_url]()
    try:
        yield db
    finally:
        db.close()


def dispose_engines() -> None:
    for engine in _ENGINES.values():
        engine.dispose()
    _ENGINES.clear()
    _SESSION_FACTORIES.clear()
