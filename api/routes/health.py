"""
Health check endpoint with database and catalog status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from api.dependencies import get_db, get_store
from core.exceptions import SchemaIngestionException
from ingestion.loaders.catalog_store import SchemaCatalogStore
from schemas.api import HealthCheckResponse
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    store: SchemaCatalogStore = Depends(get_store),
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Releases present in the catalog
    """
    db_connected = False

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {str(e)}")

    releases = []
    if db_connected:
        try:
            releases = await store.list_releases()
        except SchemaIngestionException as e:
            logger.error(f"Failed to list catalog releases: {str(e)}")

    # Status is derived by the HealthCheckResponse validator
    return HealthCheckResponse(
        timestamp=datetime.utcnow(),
        database_connected=db_connected,
        releases=releases,
        total_releases=len(releases)
    )
