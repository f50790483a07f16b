"""Test configuration and fixtures.

Database-backed tests run against an in-memory SQLite database, created
fresh for every test.
"""

import os

# Must be set before woc modules read their settings.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from woc.db.models import Base, Project, PullRequest, PullRequestStatus, User, UserRole

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def pytest_configure(config):
    """Register integration test marker."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test requiring database"
    )


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    test_engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    test_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_maker() as session:
        yield session

    await test_engine.dispose()


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator:
    """Create a test client with overridden database dependency."""
    from httpx import ASGITransport, AsyncClient

    from woc.api.app import create_app
    from woc.db import get_db

    app = create_app()

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


class RecordFactory:
    """Creates users, projects and pull requests with sensible defaults."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._seq = count(1)

    async def user(self, login: str | None = None, role: UserRole = UserRole.CONTRIBUTOR) -> User:
        n = next(self._seq)
        login = login or f"user{n}"
        user = User(
            name=login.title(),
            email=f"{login.lower()}@example.com",
            github_username=login,
            role=role,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def project(self, name: str | None = None) -> Project:
        n = next(self._seq)
        name = name or f"project{n}"
        project = Project(name=name, github_repo_url=f"https://github.com/dsc/{name}")
        self.db.add(project)
        await self.db.flush()
        return project

    async def pull_request(
        self,
        user: User,
        project: Project,
        status: PullRequestStatus = PullRequestStatus.MERGED,
        additions: int = 100,
        deletions: int = 10,
        created_at: datetime | None = None,
        merged_at: datetime | None = None,
        validated_by: User | None = None,
        validated_at: datetime | None = None,
        points: int = 0,
    ) -> PullRequest:
        n = next(self._seq)
        created_at = created_at or NOW - timedelta(days=30) + timedelta(minutes=n)
        if status is PullRequestStatus.MERGED and merged_at is None:
            merged_at = created_at + timedelta(hours=1)
        pr = PullRequest(
            user_id=user.id,
            project_id=project.id,
            external_id=1000 + n,
            number=n,
            title=f"PR {n}",
            html_url=f"{project.github_repo_url}/pull/{n}",
            status=status,
            additions=additions,
            deletions=deletions,
            github_created_at=created_at,
            github_merged_at=merged_at,
            is_validated=validated_by is not None,
            validated_by_id=validated_by.id if validated_by else None,
            validated_at=(validated_at or NOW) if validated_by else None,
            points=points,
        )
        self.db.add(pr)
        await self.db.flush()
        return pr


@pytest.fixture(scope="function")
def factory(db_session: AsyncSession) -> RecordFactory:
    return RecordFactory(db_session)


@pytest.fixture(scope="function")
async def admin(factory: RecordFactory) -> User:
    return await factory.user("admin", role=UserRole.ADMIN)


@pytest.fixture
def now() -> datetime:
    """Fixed clock for time-windowed assertions."""
    return NOW
