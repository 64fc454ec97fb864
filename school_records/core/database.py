# school_records/core/database.py
"""Database connection and session management using SQLAlchemy."""
from typing import AsyncGenerator, Any, Dict
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy import text
import logging

from .config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool and driver options for the configured backend"""
    if database_url.startswith("sqlite"):
        # SQLite serialises writers; wait for the lock instead of failing fast
        return {"connect_args": {"timeout": 30}}

    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
        "connect_args": {
            "command_timeout": 60,
            "server_settings": {
                "application_name": "school_records_api",
                "statement_timeout": "60s",
                "idle_in_transaction_session_timeout": "60s",  # Prevent hanging transactions
                "lock_timeout": "30s",  # Prevent long waits on row locks
            }
        },
    }


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(
        database_url,
        echo=(settings.environment == 'development' and settings.log_level == 'debug'),
        **engine_options(database_url)
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        expire_on_commit=False,
        class_=AsyncSession,
        autoflush=False,  # Manual control over flushing
    )


engine = build_engine(settings.database_url)

# Session factory for API requests
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for API requests with proper error handling"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.debug(f"Rolling back request session: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()


def get_session_factory() -> async_sessionmaker:
    """Session factory for operations that fan out over independent transactions"""
    return AsyncSessionLocal


async def health_check_db() -> bool:
    """Fast connectivity check"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def close_db_connections():
    """Properly close all database connections"""
    await engine.dispose()
    logger.info("Database connections closed")
