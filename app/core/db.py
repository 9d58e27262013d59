# app/core/db.py
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy import text
from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator, Optional
import os
import time

from app.core.config import settings

logger = logging.getLogger(__name__)

# Initialize engine as None - it will be created during init_db
engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker] = None


def create_db_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine for PostgreSQL (asyncpg) or the local SQLite file (aiosqlite)"""
    url = url or settings.SQLALCHEMY_DATABASE_URI

    if url.startswith("sqlite"):
        logger.info("Using local SQLite database")
        db_path = url.split("///", 1)[-1]
        if db_path and db_path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        return create_async_engine(
            url,
            echo=settings.DB_ECHO,
            future=True,
            connect_args={"check_same_thread": False}  # Needed for SQLite
        )

    return create_async_engine(
        url,
        echo=settings.DB_ECHO,
        future=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_use_lifo=True,
    )


async def init_db(url: Optional[str] = None) -> bool:
    """Initialize database connection and verify it answers"""
    global engine, async_session_factory

    try:
        start_time = time.time()
        engine = create_db_engine(url)

        # Create session factory
        async_session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            autocommit=False
        )

        # Test the connection with a simple query
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

        elapsed = time.time() - start_time
        logger.info(f"Database ({engine.dialect.name}) connected in {elapsed:.2f}s")
        return True
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}", exc_info=True)
        raise


async def close_db() -> None:
    """Dispose the engine and its connection pool"""
    global engine, async_session_factory

    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    async_session_factory = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    # Ensure database is initialized
    if async_session_factory is None:
        await init_db()

    session = async_session_factory()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {str(e)}")
        await session.rollback()
        raise
    finally:
        await session.close()


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for getting database session - useful for scripts"""
    if async_session_factory is None:
        await init_db()

    session = async_session_factory()
    try:
        yield session
    except Exception as e:
        logger.error(f"Database context error: {str(e)}", exc_info=True)
        await session.rollback()
        raise
    finally:
        await session.close()


async def check_db_health() -> dict:
    """Run a trivial query and report the dialect in use"""
    try:
        if engine is None:
            await init_db()

        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {"ok": True, "dialect": engine.dialect.name}
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}")
        return {"ok": False, "error": str(e)}
