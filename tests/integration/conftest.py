import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notevault.adapters.sql.models import Base
from notevault.adapters.storage.local import LocalBlobStorage
from notevault.dependencies import get_blob_store, get_db
from notevault.domain.auth import issue_token
from notevault.domain.blobs.store import BlobStoreConfig, EncryptedBlobStore
from notevault.main import app
from notevault.settings import get_settings, load_settings

TEST_MASTER_KEY = "5a" * 32
TEST_JWT_SECRET = "integration-jwt-secret"


@pytest.fixture(autouse=True)
def clear_overrides():
    """Automatically clear FastAPI dependency overrides before each test."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}


@pytest.fixture
def settings_overrides():
    """Per-test settings tweaks; tests override this fixture or mutate the dict."""
    return {}


@pytest.fixture
def settings(tmp_path, settings_overrides):
    params = dict(
        NOTEVAULT_MASTER_KEY=TEST_MASTER_KEY,
        JWT_SECRET=TEST_JWT_SECRET,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        DATABASE_URL="sqlite://",
        _env_file=None,
    )
    params.update(settings_overrides)
    return load_settings(**params)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def upload_dir(settings):
    return LocalBlobStorage(settings.UPLOAD_DIR).root


@pytest.fixture
def blob_store(settings, upload_dir):
    return EncryptedBlobStore(BlobStoreConfig.from_settings(settings), LocalBlobStorage(upload_dir))


@pytest.fixture
def client(settings, session_factory, blob_store):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    # Not used as a context manager: lifespan startup is not exercised here
    return TestClient(app)


@pytest.fixture
def auth_headers():
    def _headers(user_id: str = "user-1"):
        return {"Authorization": f"Bearer {issue_token(user_id, TEST_JWT_SECRET, 3600)}"}
    return _headers
