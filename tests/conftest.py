"""Pytest configuration for all tests."""

from dataclasses import dataclass
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shelfguard.core.config import Settings, get_settings
from shelfguard.domain.entities import Role
from shelfguard.domain.schemas import RoleFields
from shelfguard.domain.services import DEFAULT_PERMISSIONS, PermissionRegistry
from shelfguard.infrastructure.persistence.database import Base
from shelfguard.infrastructure.persistence.models import (  # noqa: F401
    RoleModel,
    RolePermissionModel,
    UserRoleModel,
)
from shelfguard.infrastructure.persistence.repositories import RoleRepository

TEST_PERMISSIONS = DEFAULT_PERMISSIONS + ("page-edit", "page-view")

MANAGER_ID = "00000000-0000-0000-0000-00000000000m"
USER_A = "00000000-0000-0000-0000-00000000000a"
USER_B = "00000000-0000-0000-0000-00000000000b"
OUTSIDER_ID = "00000000-0000-0000-0000-00000000000z"


@dataclass
class SeededRoles:
    """Roles created by the seeded_roles fixture."""

    admin: Role
    viewer: Role
    editor: Role


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    """Keep cached settings from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def registry() -> PermissionRegistry:
    """Registry with the default catalog plus the short page permissions."""
    return PermissionRegistry(TEST_PERMISSIONS)


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, environment="testing")


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session.

    Uses an in-memory SQLite database for testing.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def role_repo(db_session: AsyncSession, registry: PermissionRegistry) -> RoleRepository:
    """Role repository bound to the test session."""
    return RoleRepository(db_session, registry)


@pytest_asyncio.fixture
async def seeded_roles(db_session: AsyncSession, role_repo: RoleRepository) -> SeededRoles:
    """Seed Admin (hidden), Viewer (default) and Editor roles.

    The manager holds Admin; users A and B hold Editor. Everything is committed.
    """
    admin = await role_repo.create(
        RoleFields(
            display_name="Admin",
            description="Administrator with full access",
            permissions=frozenset(TEST_PERMISSIONS),
        ),
        hidden=True,
    )
    viewer = await role_repo.create(
        RoleFields(
            display_name="Viewer",
            permissions=frozenset({"page-view"}),
            system_default=True,
        )
    )
    editor = await role_repo.create(
        RoleFields(display_name="Editor", permissions=frozenset({"page-edit"}))
    )

    await role_repo.add_user(admin.id, MANAGER_ID)
    await role_repo.add_user(editor.id, USER_A)
    await role_repo.add_user(editor.id, USER_B)
    await db_session.commit()

    return SeededRoles(admin=admin, viewer=viewer, editor=editor)
