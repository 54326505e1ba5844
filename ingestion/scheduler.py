import logging
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from core.config import settings
from core.database import async_session_maker
from core.exceptions import SchemaIngestionException
from ingestion.extractors.version_discovery import VersionDiscovery
from ingestion.loaders.postgres_loader import PostgresCatalogStore
from ingestion.runner import SchemaIngestionPipeline

logger = logging.getLogger(__name__)


class ReleaseSyncScheduler:
    """Periodically ingests the latest stable Kubernetes release if it is missing"""

    def __init__(self, interval_minutes: Optional[int] = None):
        self.interval_minutes = interval_minutes or settings.SYNC_INTERVAL_MINUTES
        self.scheduler = AsyncIOScheduler()
        self.SessionLocal = async_session_maker
        self.discovery = VersionDiscovery()

    async def run_sync_job(self) -> Optional[str]:
        """Job to ingest the latest stable release; returns it when ingested"""
        logger.info("Scheduler: Starting release sync job")
        try:
            release = await self.discovery.latest_stable()
        except SchemaIngestionException as e:
            logger.error(f"Scheduler: release discovery failed - {e}")
            return None

        async with self.SessionLocal() as session:
            store = PostgresCatalogStore(session)
            pipeline = SchemaIngestionPipeline(store)
            summary = await pipeline.ingest_many([release], skip_existing=True)

        if summary.failed:
            logger.error(f"Scheduler: ingestion of {release} failed - {summary.failed[release]}")
            return None
        if summary.skipped:
            logger.info(f"Scheduler: {release} already ingested")
            return None
        return release

    def start(self):
        """Start the scheduler"""
        self.scheduler.add_job(
            self.run_sync_job,
            trigger=IntervalTrigger(minutes=self.interval_minutes),
            id="release_sync_job",
            replace_existing=True
        )
        self.scheduler.start()
        logger.info(f"Release sync scheduler started (every {self.interval_minutes} minutes)")

    def stop(self):
        self.scheduler.shutdown()
        logger.info("Release sync scheduler stopped")
