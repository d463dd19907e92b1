"""
FastAPI dependencies that pick the backend client for a request.
Tests override get_admin_client / get_public_client to run against a fake backend.
"""
import logging

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from photoflow.backend import BackendClient
from photoflow.config import settings
from photoflow.database import get_db, get_public_db
from photoflow.errors import ConfigurationError
from photoflow.services.cloudinary_service import get_storage

logger = logging.getLogger(__name__)


def _require_database() -> None:
    if not settings.DATABASE_URL:
        logger.error("DATABASE_URL is not configured")
        raise ConfigurationError("DATABASE_URL is not configured")


async def get_admin_client(db: AsyncSession = Depends(get_db)) -> BackendClient:
    """Privileged client: full read/write on the table and the bucket."""
    _require_database()
    return BackendClient(db, storage=get_storage(), privileged=True)


async def get_public_client(db: AsyncSession = Depends(get_public_db)) -> BackendClient:
    """Unprivileged client: public reads only."""
    _require_database()
    return BackendClient(db, privileged=False)
