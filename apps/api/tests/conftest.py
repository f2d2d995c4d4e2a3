"""
Pytest configuration and fixtures

IMPORTANT: All tests use transactional rollback isolation.
Nothing created during tests persists to the database.
The app runs against a shared in-memory SQLite database.
"""
import os
import sys
from uuid import uuid4

import pytest

# Must be set before any app module reads core.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-ironpath-0123456789abcdef")
os.environ.setdefault("LOG_FORMAT", "text")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from core.database import Base, engine, get_db  # noqa: E402
from core.security import create_access_token  # noqa: E402
import models  # noqa: E402
from models import User  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    """Create every table once for the whole run."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a database session with transactional rollback.

    Application code may flush, commit or use savepoints freely; everything
    lives inside the outer transaction, which is rolled back at the end.
    """
    connection = engine.connect()
    transaction = connection.begin()
    session = Session(bind=connection, join_transaction_mode="create_savepoint")

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db_session):
    """TestClient whose requests share the test's transactional session."""
    from main import app

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


def make_user(db_session, **kwargs) -> User:
    user = User(
        email=kwargs.pop("email", f"test_{uuid4()}@example.com"),
        display_name=kwargs.pop("display_name", "Test Lifter"),
        **kwargs,
    )
    db_session.add(user)
    db_session.flush()
    return user


@pytest.fixture
def test_user(db_session):
    """A regular user. No cleanup needed - transaction rollback handles it."""
    return make_user(db_session)


@pytest.fixture
def auth_headers(test_user):
    token = create_access_token({"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}
