"""Pytest configuration and fixtures."""

import os

import pytest

# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use a sibling PostgreSQL test database
    base_url, _, db_name = os.environ["DATABASE_URL"].rpartition("/")
    SQLALCHEMY_DATABASE_URL = f"{base_url}/{db_name}_test"
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

# The app engine is built at import time, so point it at the test database first
os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from src.api.dependencies import get_file_intake  # noqa: E402
from src.database import Base, get_db  # noqa: E402
from src.main import app  # noqa: E402
from src.services.uploads import FileIntake  # noqa: E402

TEST_PASSWORD = "testpass123"  # noqa: S105


class AuthHeaders(dict):
    """Dict subclass that also stores the user's id and email."""

    def __init__(self, *args, user_id: int | None = None, email: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def upload_dir(tmp_path):
    """Directory that receives uploaded files during a test."""
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture(scope="function")
def client(db, upload_dir):
    """Create a test client with database and upload directory overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_file_intake] = lambda: FileIntake(upload_dir)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_and_login(client, email: str, name: str, password: str = TEST_PASSWORD):
    """Register a user, log in, and return auth headers for them."""
    response = client.post(
        "/api/users/register",
        json={"name": name, "email": email, "password": password, "password2": password},
    )
    assert response.status_code == 201

    response = client.post("/api/users/login", json={"email": email, "password": password})
    assert response.status_code == 200
    data = response.json()

    return AuthHeaders(
        {"Authorization": f"Bearer {data['token']}"}, user_id=data["id"], email=email
    )


@pytest.fixture
def login_as(client):
    """Factory that registers a user and returns their auth headers."""

    def _login_as(email: str, name: str, password: str = TEST_PASSWORD):
        return register_and_login(client, email, name, password)

    return _login_as


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    return register_and_login(client, "test@example.com", "Test User")


@pytest.fixture
def other_auth_headers(client):
    """A second, unrelated user."""
    return register_and_login(client, "other@example.com", "Other User")


@pytest.fixture
def create_post(client):
    """Factory that creates a post through the API and returns its JSON."""

    def _create_post(
        headers,
        title: str = "Harvest report",
        category: str | None = "Agriculture",
        description: str = "Notes from this season's harvest.",
        filename: str = "field.png",
        content: bytes = b"\x89PNG thumbnail bytes",
    ):
        form = {"title": title, "description": description}
        if category is not None:
            form["category"] = category
        response = client.post(
            "/api/posts/",
            headers=headers,
            data=form,
            files={"thumbnail": (filename, content, "image/png")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create_post
