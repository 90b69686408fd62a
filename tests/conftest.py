import os
import tempfile

# CRITICAL: Set environment variables BEFORE any quote_engine imports
# These must be set before quote_engine.config.settings is loaded
_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "test_price_quotes.db")
os.environ["SECRET_KEY"] = "test-secret-key-1234567890"
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_TEST_DB_PATH}"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_V1_STR"] = "/api"  # Ensure /api prefix is used in tests

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

# Now import quote_engine modules - they will use the test DATABASE_URL
from quote_engine import models  # noqa: F401
from quote_engine.core.security import create_access_token_for_subject
from quote_engine.database import Base, engine as app_engine, get_db
from quote_engine.main import app

# Use the same engine that the app uses
TEST_ENGINE = app_engine

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE, future=True)


def override_get_db():
    """Test database session that uses the test engine."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """Fresh tables and original dependency overrides for every test."""
    original_overrides = dict(app.dependency_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)

    yield

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def session_factory():
    """Open extra independent sessions (e.g. to race two writers)."""
    opened = []

    def _open():
        db = TestingSessionLocal()
        opened.append(db)
        return db

    yield _open

    for db in opened:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    token = create_access_token_for_subject("user-1")
    return {"Authorization": f"Bearer {token}"}
