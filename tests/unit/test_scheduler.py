import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from core.database import async_session_maker
from core.exceptions import VersionDiscoveryError
from ingestion.scheduler import ReleaseSyncScheduler
from schemas.catalog import IngestionResult, IngestionSummary


def make_scheduler(latest="v1.33.3"):
    scheduler = ReleaseSyncScheduler(interval_minutes=60)
    scheduler.discovery = AsyncMock()
    scheduler.discovery.latest_stable.return_value = latest

    mock_session = AsyncMock()
    session_maker = MagicMock()
    session_maker.return_value.__aenter__.return_value = mock_session
    scheduler.SessionLocal = session_maker
    return scheduler


@pytest.mark.asyncio
async def test_scheduler_initialization():
    scheduler = ReleaseSyncScheduler(interval_minutes=15)
    assert scheduler.scheduler is not None
    assert scheduler.SessionLocal is async_session_maker
    assert scheduler.interval_minutes == 15


@pytest.mark.asyncio
async def test_sync_job_ingests_latest_release():
    scheduler = make_scheduler()
    summary = IngestionSummary(succeeded=[
        IngestionResult(release="v1.33.3", schema_rows=4, gvk_rows=1, definition_count=1)
    ])

    with patch("ingestion.scheduler.SchemaIngestionPipeline") as mock_pipeline_cls:
        mock_pipeline_cls.return_value.ingest_many = AsyncMock(return_value=summary)

        assert await scheduler.run_sync_job() == "v1.33.3"

        mock_pipeline_cls.return_value.ingest_many.assert_awaited_once_with(["v1.33.3"], skip_existing=True)


@pytest.mark.asyncio
async def test_sync_job_skips_known_release():
    scheduler = make_scheduler()

    with patch("ingestion.scheduler.SchemaIngestionPipeline") as mock_pipeline_cls:
        mock_pipeline_cls.return_value.ingest_many = AsyncMock(
            return_value=IngestionSummary(skipped=["v1.33.3"])
        )

        assert await scheduler.run_sync_job() is None


@pytest.mark.asyncio
async def test_sync_job_survives_failed_ingestion():
    scheduler = make_scheduler()

    with patch("ingestion.scheduler.SchemaIngestionPipeline") as mock_pipeline_cls:
        mock_pipeline_cls.return_value.ingest_many = AsyncMock(
            return_value=IngestionSummary(failed={"v1.33.3": "Batch 1/3 failed"})
        )

        assert await scheduler.run_sync_job() is None


@pytest.mark.asyncio
async def test_sync_job_survives_discovery_failure():
    scheduler = make_scheduler()
    scheduler.discovery.latest_stable.side_effect = VersionDiscoveryError("No stable Kubernetes version found")

    with patch("ingestion.scheduler.SchemaIngestionPipeline") as mock_pipeline_cls:
        assert await scheduler.run_sync_job() is None
        mock_pipeline_cls.assert_not_called()


@pytest.mark.asyncio
async def test_start_registers_interval_job():
    scheduler = ReleaseSyncScheduler(interval_minutes=30)
    scheduler.start()
    try:
        job = scheduler.scheduler.get_job("release_sync_job")
        assert job is not None
        assert job.trigger.interval.total_seconds() == 30 * 60
    finally:
        scheduler.stop()
