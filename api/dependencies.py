"""
FastAPI dependencies
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from core.database import get_session
from ingestion.loaders.catalog_store import SchemaCatalogStore
from ingestion.loaders.postgres_loader import PostgresCatalogStore


async def get_db():
    async for session in get_session():
        yield session


async def get_store(db: AsyncSession = Depends(get_db)) -> SchemaCatalogStore:
    return PostgresCatalogStore(db)
