from typing import AsyncGenerator, Dict, Any
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from sqlalchemy.pool import StaticPool

from edupulse.core.config import settings
from edupulse.models.base import Base


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.endswith("://"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_pre_ping": True,     # Connection health check
        "pool_size": 20,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,      # Recycle connections after 30 minutes
    }


def build_engine(url: str) -> AsyncEngine:
    new_engine = create_async_engine(url, echo=settings.DATABASE_ECHO, **_engine_options(url))

    if new_engine.dialect.name == "sqlite":
        # SQLite leaves foreign keys (and ON DELETE CASCADE) off by default
        @event.listens_for(new_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,    # Don't expire objects after commit
        autoflush=False            # Explicit flush management
    )


engine = build_engine(settings.DATABASE_URL)
AsyncSessionLocal = build_session_factory(engine)


def configure_engine(url: str) -> AsyncEngine:
    """Point the module level engine and session factory at another database."""
    global engine, AsyncSessionLocal
    engine = build_engine(url)
    AsyncSessionLocal = build_session_factory(engine)
    return engine


# FastAPI dependency for database sessions
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    session = AsyncSessionLocal()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()

# Context manager for background tasks and scripts
@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for database sessions outside of request context.
    Usage: async with get_db_context() as session:
    """
    session = AsyncSessionLocal()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()

async def init_db() -> None:
    """Initialize database tables"""
    # Register every model on the metadata before create_all
    import edupulse.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def reset_db() -> None:
    """Reset database by dropping and recreating all tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await init_db()

async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
