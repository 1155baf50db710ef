"""
Async Database Manager for the recognition service with SQLAlchemy
- Automatic database creation if missing
- Table initialization from the registered models
- Per-request sessions for FastAPI
"""
import logging
from importlib import import_module
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy import text
import sqlalchemy
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine
)
import asyncpg
from recognition.core.config import settings
from recognition.models.base import Base

logger = logging.getLogger(__name__)


class DatabaseSessionManager:
    """Manages async database sessions with auto-creation and setup."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _create_engine(self, db_url: str) -> AsyncEngine:
        if make_url(db_url).get_backend_name() == "sqlite":
            return create_async_engine(db_url, echo=settings.DATABASE_ECHO)
        return create_async_engine(
            db_url,
            pool_size=15,
            max_overflow=5,
            pool_timeout=30,
            pool_recycle=300,
            pool_pre_ping=True,
            echo=settings.DATABASE_ECHO,
        )

    async def init(self, database_url: Optional[str] = None):
        """Initialize database connection with auto-creation fallback"""
        db_url = database_url or settings.DATABASE_URL
        try:
            self.engine = self._create_engine(db_url)

            try:
                async with self.engine.begin() as conn:
                    await self._setup_database(conn)
            except (asyncpg.exceptions.InvalidCatalogNameError, sqlalchemy.exc.DBAPIError) as e:
                if not self._is_missing_database(e) or not await self._create_database(db_url):
                    raise
                async with self.engine.begin() as conn:
                    await self._setup_database(conn)

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False
            )

        except Exception as e:
            logger.error(f"❌ Database initialization failed: {e}")
            raise

    @staticmethod
    def _is_missing_database(error: Exception) -> bool:
        """asyncpg raises InvalidCatalogNameError, SQLAlchemy wraps it in a DBAPIError."""
        if isinstance(error, asyncpg.exceptions.InvalidCatalogNameError):
            return True
        return isinstance(getattr(error.orig, "__cause__", None), asyncpg.exceptions.InvalidCatalogNameError)

    async def _setup_database(self, conn):
        """Initialize database schema"""
        await conn.execute(text("SELECT 1"))
        for model in settings.DB_MODELS:
            import_module(model)

        logger.info(f"📝 Models registered: {list(Base.metadata.tables.keys())}")
        await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Tables ready")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for safe session handling"""
        if not self.session_factory:
            raise RuntimeError("DatabaseSessionManager not initialized")
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _create_database(self, db_url: str) -> bool:
        """Create the database if it does not exist"""
        try:
            url = make_url(db_url)
            db_name = url.database

            # Connect to the default database (usually 'postgres')
            default_url = url.set(database="postgres")
            engine = create_async_engine(default_url, isolation_level="AUTOCOMMIT")
            async with engine.begin() as conn:
                await conn.execute(text(f'CREATE DATABASE "{db_name}"'))
            await engine.dispose()
            logger.info(f"✅ Database '{db_name}' created successfully.")
            return True
        except (asyncpg.exceptions.PostgresError, sqlalchemy.exc.SQLAlchemyError) as e:
            logger.error(f"❌ Failed to create database: {e}")
            return False

    async def close(self):
        """Cleanup connection pool"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None

# Initialize session manager
session_manager = DatabaseSessionManager()

async def aget_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions
    Usage:
    @router.get("/")
    async def endpoint(db: AsyncSession = Depends(aget_db)):
        ...
    """
    async with session_manager.get_session() as session:
        yield session
