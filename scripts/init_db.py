import asyncio
import logging

from sqlalchemy.ext.asyncio import create_async_engine
from core.config import settings
from models.base import Base
# Import all models to ensure they are registered
from models.kubernetes_schema import KubernetesSchema
from models.schema_gvk import SchemaGvk
from models.ingestion_run import IngestionRun

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    engine = create_async_engine(settings.DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        logger.info("Creating tables...")
        await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Tables created successfully: "
            f"{', '.join(sorted(Base.metadata.tables))}"
        )

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())
