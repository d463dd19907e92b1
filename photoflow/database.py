"""
Database connection and session management for SQLAlchemy 2.0.
Configured for async operations with Supabase PostgreSQL.

Two engines are kept: the privileged engine (service role credentials) used by
admin operations, and the public engine (anon role) used for gallery reads.
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from urllib.parse import urlparse
from typing import AsyncIterator
import logging

from photoflow.config import settings

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()

_FALLBACK_URL = "sqlite+aiosqlite:///:memory:"


def _engine_args(url: str, application_name: str) -> dict:
    """Build engine keyword arguments; pool settings only apply to PostgreSQL."""
    args = {"echo": False}
    if url.startswith("postgresql"):
        args.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # handles stale connections
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": application_name
                }
            }
        })
    return args


def _create_engine(url: str, application_name: str) -> AsyncEngine:
    url = url or _FALLBACK_URL
    return create_async_engine(url, **_engine_args(url, application_name))


engine = _create_engine(settings.DATABASE_URL, "photoflow-admin")

# The anon role gets its own pool only when it has its own URL
if settings.PUBLIC_DATABASE_URL and settings.PUBLIC_DATABASE_URL != settings.DATABASE_URL:
    public_engine = _create_engine(settings.PUBLIC_DATABASE_URL, "photoflow-public")
else:
    public_engine = engine

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)

PublicSessionLocal = async_sessionmaker(
    public_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency for privileged database sessions.

    Writes are committed by the backend client call that issues them, so the
    session is only rolled back here on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}", exc_info=True)
            raise


async def get_public_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency for unprivileged (read-only) database sessions."""
    async with PublicSessionLocal() as session:
        yield session


def _validate_database_url(url: str) -> tuple[bool, str]:
    """
    Validate database URL and provide diagnostic information.
    Returns (is_valid, diagnostic_message)
    """
    if not url:
        return False, "DATABASE_URL is empty"

    try:
        parsed = urlparse(url)

        if not url.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")):
            return False, f"Invalid database URL scheme: {parsed.scheme}"

        if parsed.scheme.startswith("sqlite"):
            return True, f"SQLite database: {parsed.path or ':memory:'}"

        hostname = parsed.hostname
        if not hostname:
            return False, "No hostname found in DATABASE_URL"

        return True, f"Hostname: {hostname}, Port: {parsed.port or 5432}, Database: {parsed.path or '/postgres'}"

    except Exception as e:
        return False, f"Error parsing DATABASE_URL: {str(e)}"


async def init_db():
    """
    Verify the privileged database connection on startup.
    """
    if not settings.DATABASE_URL:
        logger.warning("DATABASE_URL not set, skipping database initialization")
        return

    is_valid, diagnostic = _validate_database_url(settings.DATABASE_URL)
    if not is_valid:
        logger.error(f"Invalid DATABASE_URL: {diagnostic}")
        raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

    logger.info(f"Database URL validation: {diagnostic}")

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection initialized successfully")
    except Exception as e:
        error_msg = str(e)
        if "authentication failed" in error_msg.lower() or "password" in error_msg.lower():
            logger.error(
                f"Database connection failed - Authentication error: {error_msg}\n"
                f"Check the credentials in DATABASE_URL.\n"
                f"Diagnostic: {diagnostic}"
            )
        else:
            logger.error(
                f"Database connection failed ({type(e).__name__}): {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        raise


async def close_db():
    """
    Close database connections.
    """
    await engine.dispose()
    if public_engine is not engine:
        await public_engine.dispose()
    logger.info("Database connections closed")
