"""
Database connection with SQLAlchemy async ORM
"""

from pathlib import Path
from typing import Optional, AsyncGenerator
from functools import lru_cache
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine

from src.infra.config.settings import get_settings
from src.infra.models import Base
from src.core.logger.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class DatabaseManager:
    """SQLAlchemy async database manager"""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    def _engine_options(self) -> dict:
        url = make_url(self.database_url)
        if url.get_backend_name() == "sqlite":
            # SQLite serializes writers; wait for the lock instead of failing fast
            database = url.database
            if database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            return {"connect_args": {"timeout": 15}}
        return {
            "pool_pre_ping": True,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_recycle": 3600,
        }

    async def connect(self) -> AsyncEngine:
        """Initialize database engine and session factory"""
        if self._engine is not None:
            return self._engine

        url = make_url(self.database_url)
        try:
            self._engine = create_async_engine(
                self.database_url,
                echo=settings.DB_LOGGING_ENABLED,
                **self._engine_options()
            )

            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False
            )

            # Test connection
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            logger.info(
                "Connected to database",
                extra={
                    "backend": url.get_backend_name(),
                    "host": url.host,
                    "database": url.database
                }
            )
            return self._engine

        except Exception as e:
            logger.error(
                "Failed to connect to database",
                extra={
                    "backend": url.get_backend_name(),
                    "host": url.host,
                    "database": url.database,
                    "error": str(e)
                }
            )
            self._engine = None
            self._session_factory = None
            raise

    async def create_tables(self) -> None:
        """Create tables that do not exist yet"""
        engine = await self.connect()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured", extra={"tables": sorted(Base.metadata.tables)})

    async def close(self):
        """Close database engine"""
        if self._engine is not None:
            try:
                await self._engine.dispose()
                logger.info("Database engine closed")
            except Exception as e:
                logger.error(f"Error closing database engine: {e}")
            finally:
                self._engine = None
                self._session_factory = None

    def get_session_factory(self) -> Optional[async_sessionmaker]:
        """Get the session factory"""
        return self._session_factory


@lru_cache()
def get_database_manager() -> DatabaseManager:
    """Get the global database manager instance (cached)"""
    return DatabaseManager()


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting async database session
    Use with FastAPI Depends()
    """
    db_manager = get_database_manager()

    if db_manager.get_session_factory() is None:
        await db_manager.connect()

    session_factory = db_manager.get_session_factory()
    if session_factory is None:
        raise RuntimeError("Database session factory not initialized")

    async with session_factory() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {e}")
            raise
