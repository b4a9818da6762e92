"""
Pytest configuration and shared fixtures for backend tests.
"""

import os
import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Must be set before settings are first loaded
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CRON_SECRET", "test-cron-secret-0123456789")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-0123456789-abcdefghij")

import pytest
from datetime import UTC, datetime, timedelta
from typing import AsyncGenerator

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Import after path is set
from infrastructure.database.models import Base, Category, Post, Tag
from infrastructure.database.connection import get_db
from core.security import TokenService
from infrastructure.config import Settings, get_settings
from services.post_batch import PostBatchService
from services.post_service import PostService
from services.post_status import PostStatusService
from services.post_transfer import PostTransferService
from services.taxonomy import TaxonomyService
from services.version_service import PostVersionService

settings = get_settings()
token_service = TokenService(secret_key=settings.jwt_secret_key, algorithm=settings.jwt_algorithm)

# Database URL for testing (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

FIXED_NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class FixedClock:
    """Clock pinned to a settable instant."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


@pytest.fixture
async def db_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults; tests adjust fields directly."""
    return Settings(version_retention=None, batch_max_size=100, posts_page_size_max=100)


@pytest.fixture
def post_service(db_session, clock, test_settings) -> PostService:
    return PostService(db_session, clock=clock, settings=test_settings)


@pytest.fixture
def status_service(db_session, clock) -> PostStatusService:
    return PostStatusService(db_session, clock=clock)


@pytest.fixture
def version_service(db_session, clock, test_settings) -> PostVersionService:
    return PostVersionService(db_session, clock=clock, settings=test_settings)


@pytest.fixture
def batch_service(db_session, clock, test_settings) -> PostBatchService:
    return PostBatchService(db_session, clock=clock, settings=test_settings)


@pytest.fixture
def transfer_service(db_session, clock, test_settings) -> PostTransferService:
    return PostTransferService(db_session, clock=clock, settings=test_settings)


@pytest.fixture
def taxonomy_service(db_session) -> TaxonomyService:
    return TaxonomyService(db_session)


@pytest.fixture
def make_post(post_service):
    """Factory creating posts with unique slugs."""
    counter = {"n": 0}

    async def _make(**kwargs) -> Post:
        counter["n"] += 1
        kwargs.setdefault("title", f"Post {counter['n']}")
        kwargs.setdefault("content", f"Body of post {counter['n']}")
        kwargs.setdefault("slug", f"post-{counter['n']}")
        return await post_service.create_post(**kwargs)

    return _make


@pytest.fixture
async def category(taxonomy_service) -> Category:
    return await taxonomy_service.create_category("Engineering")


@pytest.fixture
async def tags(taxonomy_service) -> list[Tag]:
    return [
        await taxonomy_service.create_tag("Python"),
        await taxonomy_service.create_tag("Databases"),
        await taxonomy_service.create_tag("Testing"),
    ]


@pytest.fixture
def admin_headers() -> dict:
    """Authentication headers for an admin caller."""
    access_token = token_service.create_access_token(subject="admin-1", role="admin")
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def editor_headers() -> dict:
    """Authentication headers for a caller without the admin role."""
    access_token = token_service.create_access_token(subject="editor-1", role="editor")
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def cron_headers() -> dict:
    return {"Authorization": f"Bearer {settings.cron_secret}"}


@pytest.fixture
async def async_client(db_session: AsyncSession, clock: FixedClock) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here to avoid circular imports
    from main import app
    from api.dependencies import get_clock

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    # Reset rate limiter state between tests to prevent cross-test 429s
    if hasattr(app.state, "limiter"):
        app.state.limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
