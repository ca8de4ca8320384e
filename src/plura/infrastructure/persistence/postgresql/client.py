"""Async PostgreSQL access through SQLAlchemy.

One engine per process; request handlers open short-lived sessions through
PostgreSQLClient.session(), which commits on success and rolls back on error.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


class PostgreSQLClient:
    """Owns the async engine and hands out transactional sessions.

    Attributes:
        url: Database connection URL
        engine: SQLAlchemy async engine
        sessionmaker: Session factory
    """

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[AsyncEngine] = None
        self.sessionmaker: Optional[async_sessionmaker] = None

    async def connect(self) -> None:
        """Create engine and session factory."""
        if self.engine is None:
            self.engine = create_async_engine(
                self.url,
                echo=False,
                pool_pre_ping=True,
                pool_size=20,
                max_overflow=10,
                pool_recycle=3600,
            )
            self.sessionmaker = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

    async def disconnect(self) -> None:
        """Dispose of engine and close all connections."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.sessionmaker = None

    async def health_check(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Open a session scoped to one unit of work.

        Yields:
            AsyncSession instance

        Example:
            async with client.session() as session:
                result = await session.execute(select(Agency))
        """
        if self.sessionmaker is None:
            raise RuntimeError("Client not connected. Call connect() first.")

        session = self.sessionmaker()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
