"""
SnackCart Backend — Database Session Management
================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling and provides a session
       dependency that commits on success and rolls back on error.
Who:   Route handlers (via Depends), the health check, and Alembic.
When:  Engine is created at module import; sessions are created per-request.

The store is treated as a document collection: one row per snack, writes are
per-row atomic, and the only ordering the API promises is newest-first by
`created_at`.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from snackcart.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for the configured backend; SQLite (tests) keeps its own pool."""
    options: Dict[str, Any] = {
        "echo": settings.log_level == "DEBUG",
        "pool_pre_ping": settings.db_pool_pre_ping,
    }
    if not database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=3600,
        )
    return options


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# expire_on_commit=False: rows stay readable after the dependency commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models (shared metadata for Alembic)."""
    pass


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)

    Example usage in a route:
        @router.get("/snacks")
        async def list_snacks(db: AsyncSession = Depends(get_db_session)):
            return await snack_service.list_snacks(db)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def create_tables() -> None:
    """Creates all tables directly from the ORM metadata (tests and local SQLite runs)."""
    # Models must be imported so they register with Base.metadata
    from snackcart.models.snack import Snack  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    from snackcart.models.snack import Snack  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
