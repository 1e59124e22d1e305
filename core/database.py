"""
Database session management with SQLAlchemy async
"""

from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


class Database:
    """
    Lazily-built async engine and session factory.

    Nothing connects at import time; the engine is created on first use.
    Engine construction is synchronous, so there is no await point between
    the check and the assignment.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker] = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                poolclass=NullPool,
                future=True
            )
            logger.debug("Database engine created")
        return self._engine

    @property
    def session_maker(self) -> async_sessionmaker:
        if self._session_maker is None:
            self._session_maker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False
            )
        return self._session_maker

    async def create_tables(self):
        """Create every table registered on the declarative Base"""
        import models  # noqa: F401  (registers all tables)
        from models.base import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None


database = Database(settings.DATABASE_URL, echo=settings.ENVIRONMENT == "development")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with database.session_maker() as session:
        yield session
