"""
Database Session Management for Fleet Relay

Provides connection management and async session handling.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
import structlog

from .models import Base

logger = structlog.get_logger(__name__)


def to_async_url(database_url: str) -> str:
    """Switch sync driver URLs to their async drivers"""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


class DatabaseManager:
    """
    Database connection and session manager.

    Supports both SQLite (development) and PostgreSQL (production).
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = to_async_url(database_url)

        if self.database_url.startswith("postgresql"):
            self._engine = create_async_engine(
                self.database_url,
                pool_pre_ping=True,
                echo=echo,
                pool_recycle=3600,
                connect_args={"server_settings": {"jit": "off"}, "command_timeout": 60}
            )
        else:
            self._engine = create_async_engine(self.database_url, echo=echo)

        self._session_factory = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        logger.info("Database engine initialized",
                    database_type="postgresql" if self.database_url.startswith("postgresql") else "sqlite")

    @property
    def engine(self):
        return self._engine

    async def create_tables(self) -> None:
        """Create missing tables"""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def get_async_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get async database session, committed on success"""
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database connections"""
        await self._engine.dispose()
        logger.info("Database connections closed")

    async def test_connection(self) -> bool:
        """Test database connectivity"""
        try:
            async with self.get_async_session() as session:
                await session.execute(text("SELECT 1"))
                return True
        except SQLAlchemyError as e:
            logger.error("Database connection test failed", error=str(e))
            return False
