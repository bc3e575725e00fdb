"""Database abstraction layer using SQLAlchemy 2.0 async.

This module provides the database session management and engine configuration
for SQLAlchemy with async support on SQLite through the aiosqlite driver.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from shelfguard.core.config import Settings, get_settings
from shelfguard.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class DatabaseManager:
    """Database connection and session manager.

    Owns the async engine and session factory and hands out
    transactional sessions.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine.

        Returns:
            AsyncEngine: SQLAlchemy async engine instance.
        """
        if self._engine is None:
            if self.settings.database_url.startswith("sqlite"):
                engine_options = {"connect_args": {"check_same_thread": False}}
            else:
                engine_options = {
                    "pool_size": self.settings.db_pool_size,
                    "max_overflow": self.settings.db_max_overflow,
                    "pool_timeout": self.settings.db_pool_timeout,
                    "pool_recycle": self.settings.db_pool_recycle,
                }
            self._engine = create_async_engine(
                self.settings.database_url,
                echo=self.settings.db_echo,
                **engine_options,
            )
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        """Get or create the session factory.

        Returns:
            async_sessionmaker: SQLAlchemy async session factory.
        """
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )
            logger.debug("Database session factory created")
        return self._session_factory

    async def create_tables(self) -> None:
        """Create all database tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created")

    async def drop_tables(self) -> None:
        """Drop all database tables.

        WARNING: This will delete all data. Only use in testing!
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            logger.warning("Database tables dropped")

    async def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations.

        Yields:
            AsyncSession: SQLAlchemy async session.

        Example:
            async with db.session() as session:
                service = RoleService(session)
                roles = await service.list_roles(actor_id)
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def check_connection(self) -> bool:
        """Check if database connection is working.

        Returns:
            bool: True if connection is successful, False otherwise.
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.debug("Database connection check successful")
                return True
        except SQLAlchemyError as e:
            logger.error("Database connection check failed", error=str(e))
            return False


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance.

    Returns:
        DatabaseManager: Global database manager instance.
    """
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_database(db: DatabaseManager | None = None) -> None:
    """Initialize the database.

    Creates the tables if they don't exist and seeds the default roles.

    Args:
        db: Database manager to use. Defaults to the global manager.
    """
    # Import all models to ensure they are registered with Base.metadata
    from shelfguard.infrastructure.persistence.models import (  # noqa: F401
        RoleModel,
        RolePermissionModel,
        UserRoleModel,
    )

    db = db or get_db_manager()
    settings = db.settings

    if settings.database_url.startswith("sqlite"):
        # Extract path from sqlite+aiosqlite:///path/to/file.db
        db_path = settings.database_url.split(":///")[-1]
        if db_path != ":memory:":
            db_dir = Path(db_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Database directory created", path=str(db_dir))

    if not await db.check_connection():
        logger.error("Database connection failed")
        raise RuntimeError("Failed to connect to database")

    await db.create_tables()

    async with db.session() as session:
        await seed_default_roles(session, settings)
        await session.commit()


async def seed_default_roles(session: AsyncSession, settings: Settings | None = None) -> None:
    """Seed the protected admin role and the default role if they don't exist.

    The admin role is hidden and holds every registered permission. The
    default role is assigned to new users and may view all content.

    Args:
        session: Database session. The caller commits.
        settings: Settings providing the role names.
    """
    from shelfguard.domain.schemas import RoleFields
    from shelfguard.domain.services.permission_registry import get_permission_registry
    from shelfguard.infrastructure.persistence.repositories import RoleRepository

    settings = settings or get_settings()
    registry = get_permission_registry()
    role_repo = RoleRepository(session, registry)

    if await role_repo.get_by_display_name(settings.admin_role_name) is None:
        role = await role_repo.create(
            RoleFields(
                display_name=settings.admin_role_name,
                description="Administrator with full access",
                permissions=registry.all(),
            ),
            hidden=True,
        )
        logger.info("Seeded default role", role_id=role.id, role_name=role.name)

    if (
        await role_repo.get_system_default() is None
        and await role_repo.get_by_display_name(settings.default_role_name) is None
    ):
        role = await role_repo.create(
            RoleFields(
                display_name=settings.default_role_name,
                description="Assigned to new users; may view all content",
                permissions=frozenset(p for p in registry.all() if p.endswith("-view-all")),
                system_default=True,
            )
        )
        logger.info("Seeded default role", role_id=role.id, role_name=role.name)
