"""
Database engine and sessions for the entry ledger.

PostgreSQL (asyncpg) in production. SQLite URLs are accepted for local
runs; they get no connection pool sizing.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from weighcheck.app.core.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": settings.db_echo}
    if not database_url.startswith("sqlite"):
        options.update(pool_size=settings.db_pool_size, max_overflow=settings.db_max_overflow, pool_pre_ping=True)
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Objects stay readable after commit; services log and refresh statistics after committing entries
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db():
    """Request-scoped session; closed when the request finishes."""
    async with AsyncSessionLocal() as session:
        yield session
