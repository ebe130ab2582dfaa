"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
from faker import Faker
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Settings are read at import time, so the environment comes first
os.environ["DATABASE_URL_OVERRIDE"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["GOOGLE_CLIENT_ID"] = "test-client-id.apps.googleusercontent.com"
os.environ["ENVIRONMENT"] = "development"
os.environ["TASK_CHECKER_ENABLED"] = "false"

from studyhub.api.deps import create_access_token  # noqa: E402
from studyhub.db.base import Base  # noqa: E402
from studyhub.db.models import StudentProfile, TeacherProfile, User, UserRole  # noqa: E402
from studyhub.db.session import get_db  # noqa: E402
from studyhub.main import app  # noqa: E402
from studyhub.services.teacher_codes import random_code  # noqa: E402

fake = Faker()

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Fresh in-memory database per test (one shared connection)."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def file_engine(tmp_path):
    """
    File-backed database with a real connection per session.

    Use for concurrent writers: the in-memory engine shares one connection,
    so one session's rollback would undo another's work. Every transaction
    starts with BEGIN IMMEDIATE, so writers queue on SQLite's write lock.
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrent.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(test_engine.sync_engine, "connect")
    def _driver_autocommit(dbapi_connection, connection_record):
        # SQLAlchemy emits BEGIN itself (see _begin_immediate)
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def file_session_factory(file_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(file_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
def make_teacher(db_session: AsyncSession) -> UserFactory:
    """Create a teacher account with a profile. Pass code= to pin the join code."""

    async def factory(name: str | None = None, code: str | None = None) -> User:
        user = User(email=fake.unique.email(), name=name or fake.name(), role=UserRole.TEACHER.value)
        db_session.add(user)
        await db_session.flush()
        db_session.add(TeacherProfile(user_id=user.id, code=code or random_code()))
        await db_session.commit()
        return user

    return factory


@pytest.fixture
def make_student(db_session: AsyncSession) -> UserFactory:
    """Create a student account with a profile."""

    async def factory(name: str | None = None) -> User:
        user = User(email=fake.unique.email(), name=name or fake.name(), role=UserRole.STUDENT.value)
        db_session.add(user)
        await db_session.flush()
        db_session.add(StudentProfile(user_id=user.id))
        await db_session.commit()
        return user

    return factory


@pytest.fixture
async def teacher(make_teacher) -> User:
    return await make_teacher(code="XK9M2L")


@pytest.fixture
async def student(make_student) -> User:
    return await make_student()


def _bearer(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Build Authorization headers for any user."""
    return _bearer


@pytest.fixture
def teacher_headers(teacher: User) -> dict[str, str]:
    return _bearer(teacher)


@pytest.fixture
def student_headers(student: User) -> dict[str, str]:
    return _bearer(student)
