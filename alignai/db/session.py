"""Async database engine and session factory for AlignAI.

Usage:
    from alignai.db.session import get_session

    async with get_session() as session:
        result = await session.execute(select(Response))

IMPORTANT: Each request/operation must get its own session from the factory.
AsyncSession is NOT safe to share across concurrent coroutines or requests.
The get_session() context manager ensures each caller gets a fresh session
that is properly closed and returned to the pool on exit.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from alignai.config import settings
from alignai.db.models import Base

# Module-level async engine: shared across the process lifetime
engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_size=10,
    max_overflow=20,
)

# Session factory: call AsyncSessionFactory() to get a new session
# expire_on_commit=False keeps ORM objects accessible after commit
AsyncSessionFactory = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Async context manager that yields a database session.

    Yields a fresh AsyncSession for each call.  The session is closed and
    its connection returned to the pool when the context exits, whether
    normally or via exception.
    """
    async with AsyncSessionFactory() as session:
        yield session


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet.

    On PostgreSQL the pgvector extension is installed first.  Schema
    evolution is out of scope; this only bootstraps an empty database.
    """
    bind = bind or engine
    async with bind.begin() as conn:
        if conn.dialect.name == "postgresql":
            from sqlalchemy import text  # noqa: PLC0415

            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
