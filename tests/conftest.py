"""Shared fixtures and utilities for tests."""

import os
import tempfile

# Settings are read when core.config is first imported, so the environment
# must be in place before any test module imports application code.
_TEST_ROOT = tempfile.mkdtemp(prefix="jobboard-tests-")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT}/app.db"
os.environ["UPLOAD_DIR"] = f"{_TEST_ROOT}/uploads"
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("LOG_LEVEL", "INFO")

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from fastapi.testclient import TestClient

from core.security import hash_password
from core.storage.local import LocalStorage
from database.engine import Base, build_engine, get_db, get_session_factory, init_db
from database.models.users import User, UserRole
import database.models  # noqa: F401  (registers every table on Base.metadata)


# ==================== Async database (service tests) ==================== #

@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh file-backed SQLite database per test."""
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'service.db'}")
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def create_user(session_factory):
    """Factory fixture inserting a user and returning its id."""

    async def _create(
        email: str = "seeker@example.com",
        name: str = "Jane Seeker",
        role: UserRole | None = UserRole.EMPLOYEE,
    ) -> str:
        async with session_factory() as session:
            user = User(
                email=email,
                name=name,
                role=role,
                password_hash=hash_password("password123"),
            )
            session.add(user)
            await session.commit()
            return user.id

    return _create


# ==================== Application (HTTP tests) ==================== #

@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture
def client(tmp_path, storage):
    """
    TestClient for the real application backed by a per-test database.

    The schema is created with a synchronous engine so that no async
    connection outlives the event loop it was opened on.
    """
    from api.dependencies import get_storage
    from api.main import app

    db_path = tmp_path / "app.db"
    sync_engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()

    test_engine = build_engine(f"sqlite+aiosqlite:///{db_path}")
    factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: factory
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as test_client:
        yield test_client
        test_client.portal.call(test_engine.dispose)

    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Register through the API; the client keeps the latest session cookie."""

    def _register(email: str, role: str | None, name: str = "Test User") -> dict:
        payload = {"name": name, "email": email, "password": "password123"}
        if role is not None:
            payload["role"] = role
        response = client.post("/api/v1/auth/register", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _register
