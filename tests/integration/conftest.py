"""Integration test fixtures for database and HTTP client operations.

Each test gets its own SQLite file. The application engine is swapped for
the test engine, so request handlers, audit sessions and the CLI all see
the same database.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

import src.firmguard.models  # noqa: F401 - registers tables on SQLModel.metadata
from src.firmguard.core import db
from src.firmguard.main import create_app
from src.firmguard.repositories import AuditLogRepository
from src.firmguard.services.audit_service import AuditService
from src.firmguard.tenancy.principal import Principal
from tests.helpers import World, principal_for, seed_world


@pytest.fixture(scope="function")
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a fresh database and install it as the application engine."""
    await db.dispose_engine()

    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'firmguard.db'}",
        poolclass=NullPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    db.set_engine(test_engine)
    yield test_engine

    db.set_engine(None)
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Provide an async session for database operations.

    The session does NOT auto-commit. Tests must call `await session.commit()`
    before the data is visible to the application.
    """
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def world(db_session: AsyncSession) -> World:
    """Two firms with disjoint projects and users (see tests.helpers.World)."""
    return await seed_world(db_session)


@pytest.fixture
async def audit_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Separate session for audit writes, as the application uses."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def make_audit(audit_session: AsyncSession):
    """Build an AuditService attributed to a principal."""

    def _make(principal: Principal | None = None) -> AuditService:
        return AuditService(AuditLogRepository(audit_session), audit_session, principal)

    return _make


@pytest.fixture
def p_user1(world: World) -> Principal:
    return principal_for(world.user1)


@pytest.fixture
def p_user2(world: World) -> Principal:
    return principal_for(world.user2)


@pytest.fixture
def p_superadmin(world: World) -> Principal:
    return principal_for(world.superadmin)


@pytest.fixture
async def client(engine: AsyncEngine) -> AsyncGenerator[AsyncClient]:
    """HTTP client against a fresh application bound to the test engine."""
    app = create_app()
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
