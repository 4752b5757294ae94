# domain_agent/database.py
from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

# ============================================================================
# ASYNC ENGINE CONFIGURATION
# ============================================================================

def _make_async_url(url: str) -> str:
    """Convert a sync PostgreSQL URL to the asyncpg driver"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def _engine_options(url: str) -> dict:
    # SQLite (tests, local dev) has no connection pool to size
    if url.startswith("sqlite"):
        return {"echo": False}
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": 10,
        "pool_recycle": 3600,
        "echo": False,
    }


ASYNC_DATABASE_URL = _make_async_url(settings.DATABASE_URL)

async_engine: AsyncEngine = create_async_engine(
    ASYNC_DATABASE_URL,
    **_engine_options(ASYNC_DATABASE_URL)
)

async_session = async_sessionmaker(
    bind=async_engine,
    expire_on_commit=False,
    class_=AsyncSession,
)

logger.info(
    "Async database engine configured",
    extra={"extra_data": {
        "driver": ASYNC_DATABASE_URL.split("://", 1)[0],
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "environment": settings.ENVIRONMENT
    }}
)

# ============================================================================
# BASE MODEL
# ============================================================================

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Import all models to ensure they're registered with Base
from .users import models as users_models  # noqa: E402,F401
from .domains import models as domain_models  # noqa: E402,F401
from .payments import models as payment_models  # noqa: E402,F401
from .ai import models as ai_models  # noqa: E402,F401

# ============================================================================
# DEPENDENCIES
# ============================================================================

async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Async DB session dependency.

    Rolls back on any exception raised while the request holds the session.

    Usage:
        @router.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_async_db)):
            ...
    """
    async with async_session() as session:
        try:
            yield session
        except Exception as e:
            logger.error(
                "Error in async database session",
                extra={"extra_data": {"error": str(e)}},
            )
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Run a trivial query; used by startup and /health"""
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(
            "Database connectivity check failed",
            extra={"extra_data": {"error": str(e)}},
            exc_info=True
        )
        return False


async def dispose_engine():
    """Close pooled connections on shutdown"""
    await async_engine.dispose()
    logger.info("All database connections closed successfully")
