"""
Unit tests for the schema ingestion pipeline
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from core.exceptions import (
    BatchUpsertError,
    MalformedDocumentError,
    DatabaseError,
    ResourceNotFoundError,
    SchemaIngestionException,
)
from ingestion.runner import SchemaIngestionPipeline, chunked
from models.base import IngestionStatus


def make_definitions(count):
    """count definitions in distinct groups, each staging four schema rows and one GVK"""
    return {
        f"io.k8s.api.group{i}.v1.Kind{i}": {
            "type": "object",
            "x-kubernetes-group-version-kind": [{"group": f"group{i}", "version": "v1", "kind": f"Kind{i}"}],
        }
        for i in range(count)
    }


def make_fetcher(*documents):
    fetcher = AsyncMock()
    fetcher.fetch.side_effect = list(documents)
    return fetcher


def test_chunked():
    assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
    assert list(chunked([], 100)) == []


def test_batch_size_must_be_positive(memory_store):
    with pytest.raises(ValueError):
        SchemaIngestionPipeline(memory_store, fetcher=AsyncMock(), batch_size=-1)


class TestIngest:
    """Test single release ingestion"""

    @pytest.mark.asyncio
    async def test_ingest_release(self, memory_store, swagger_document):
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(swagger_document))

        result = await pipeline.ingest("v1.33.3")

        assert result.release == "v1.33.3"
        assert result.definition_count == 8
        assert result.schema_rows == 32
        assert result.gvk_rows == 4
        assert result.schema_rows_loaded == 32
        assert len(memory_store.schemas) == 32
        assert await memory_store.has_release("v1.33.3")

    @pytest.mark.asyncio
    async def test_rows_written_in_batches_of_100(self, memory_store):
        # 60 definitions -> 240 schema rows and 60 GVK rows
        document = {"definitions": make_definitions(60)}
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(document))

        result = await pipeline.ingest("v1.33.3")

        assert memory_store.batch_sizes == [100, 100, 40, 60]
        assert result.batches_committed == 4
        assert result.gvk_rows_loaded == 60

    @pytest.mark.asyncio
    async def test_failed_batch_stops_release(self, memory_store):
        memory_store.fail_on_call = 2
        document = {"definitions": make_definitions(60)}
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(document))

        with pytest.raises(BatchUpsertError) as exc_info:
            await pipeline.ingest("v1.33.3")

        error = exc_info.value
        assert error.context["batch_index"] == 1
        assert error.context["table_name"] == "kubernetes_schemas"
        assert error.context["rows_committed"] == 100
        # First batch stays committed, nothing after the failure is attempted
        assert len(memory_store.schemas) == 100
        assert memory_store.upsert_calls == 2
        assert memory_store.gvks == {}

        run = memory_store.runs[0]
        assert run["status"] == IngestionStatus.PARTIAL
        assert run["stats"]["batches_committed"] == 1
        assert run["error"]["error_type"] == "BatchUpsertError"

    @pytest.mark.asyncio
    async def test_fetch_failure_persists_nothing(self, memory_store):
        fetcher = AsyncMock()
        fetcher.fetch.side_effect = ResourceNotFoundError("Resource not found", context={"release": "v9.0.0"})
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=fetcher)

        with pytest.raises(ResourceNotFoundError):
            await pipeline.ingest("v9.0.0")

        assert memory_store.upsert_calls == 0
        assert memory_store.runs[0]["status"] == IngestionStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, memory_store):
        fetcher = AsyncMock()
        fetcher.fetch.return_value = {"definitions": make_definitions(1)}
        parser = MagicMock()
        parser.parse.side_effect = ZeroDivisionError("division by zero")
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=fetcher, parser=parser)

        with pytest.raises(SchemaIngestionException) as exc_info:
            await pipeline.ingest("v1.33.3")

        assert isinstance(exc_info.value.original_exception, ZeroDivisionError)
        assert memory_store.runs[0]["status"] == IngestionStatus.FAILED

    @pytest.mark.asyncio
    async def test_reingest_is_idempotent(self, memory_store, swagger_document):
        pipeline = SchemaIngestionPipeline(
            memory_store, fetcher=make_fetcher(swagger_document, swagger_document)
        )

        await pipeline.ingest("v1.33.3")
        schema_count, gvk_count = len(memory_store.schemas), len(memory_store.gvks)
        second = await pipeline.ingest("v1.33.3")

        assert len(memory_store.schemas) == schema_count
        assert len(memory_store.gvks) == gvk_count
        assert second.gvk_rows == 4
        assert second.gvk_rows_loaded == 0


class TestIngestMany:
    """Test multi-release ingestion"""

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_releases(self, memory_store, swagger_document):
        fetcher = make_fetcher(
            swagger_document,
            MalformedDocumentError("swagger.json for v1.32.7 has no definitions", context={"release": "v1.32.7"}),
            swagger_document,
        )
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=fetcher)

        summary = await pipeline.ingest_many(["v1.33.3", "v1.32.7", "v1.31.11"])

        assert [result.release for result in summary.succeeded] == ["v1.33.3", "v1.31.11"]
        assert list(summary.failed) == ["v1.32.7"]
        assert "no definitions" in summary.failed["v1.32.7"]
        assert not summary.ok
        assert await memory_store.list_releases() == ["v1.33.3", "v1.31.11"]

    @pytest.mark.asyncio
    async def test_skip_existing(self, memory_store, swagger_document):
        pipeline = SchemaIngestionPipeline(
            memory_store, fetcher=make_fetcher(swagger_document, swagger_document)
        )
        await pipeline.ingest("v1.33.3")

        summary = await pipeline.ingest_many(["v1.33.3", "v1.32.7"], skip_existing=True)

        assert summary.skipped == ["v1.33.3"]
        assert [result.release for result in summary.succeeded] == ["v1.32.7"]
        assert summary.ok

    @pytest.mark.asyncio
    async def test_failure_reason_includes_cause(self, memory_store, swagger_document):
        memory_store.fail_on_call = 1
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(swagger_document))

        summary = await pipeline.ingest_many(["v1.33.3"])

        assert summary.failed["v1.33.3"].endswith(": connection reset")

    @pytest.mark.asyncio
    async def test_unrecordable_run_does_not_stop_later_releases(self, memory_store, swagger_document):
        record_run = memory_store.start_run
        memory_store.start_run = AsyncMock(side_effect=[
            DatabaseError(
                "Failed to record ingestion run for v1.33.3",
                context={"release": "v1.33.3"},
                original_exception=ConnectionRefusedError(111, "Connect call failed"),
            ),
            await record_run("v1.32.7"),
        ])
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(swagger_document))

        summary = await pipeline.ingest_many(["v1.33.3", "v1.32.7"])

        assert "Connect call failed" in summary.failed["v1.33.3"]
        assert [result.release for result in summary.succeeded] == ["v1.32.7"]
        # Nothing was fetched or written for the release without a run
        assert await memory_store.list_releases() == ["v1.32.7"]

    @pytest.mark.asyncio
    async def test_release_check_failure_is_reported(self, memory_store, swagger_document):
        memory_store.has_release = AsyncMock(side_effect=[
            DatabaseError("Failed to check release", context={"release": "v1.33.3"}),
            False,
        ])
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(swagger_document))

        summary = await pipeline.ingest_many(["v1.33.3", "v1.32.7"], skip_existing=True)

        assert list(summary.failed) == ["v1.33.3"]
        assert [result.release for result in summary.succeeded] == ["v1.32.7"]


class TestRunAudit:
    """Test that audit record failures never replace the ingestion outcome"""

    @pytest.mark.asyncio
    async def test_complete_run_failure_keeps_batch_error(self, memory_store):
        memory_store.fail_on_call = 2
        memory_store.complete_run = AsyncMock(side_effect=DatabaseError(
            "Failed to complete ingestion run", context={"status": "partial"}
        ))
        document = {"definitions": make_definitions(60)}
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(document))

        with pytest.raises(BatchUpsertError):
            await pipeline.ingest("v1.33.3")

        status = memory_store.complete_run.await_args.args[1]
        assert status == IngestionStatus.PARTIAL

    @pytest.mark.asyncio
    async def test_complete_run_failure_after_success_returns_result(self, memory_store, swagger_document):
        memory_store.complete_run = AsyncMock(side_effect=DatabaseError(
            "Failed to complete ingestion run", context={"status": "success"}
        ))
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=make_fetcher(swagger_document))

        result = await pipeline.ingest("v1.33.3")

        assert result.schema_rows_loaded == 32
        memory_store.complete_run.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_start_skips_complete(self, memory_store):
        memory_store.start_run = AsyncMock(side_effect=DatabaseError("Failed to record ingestion run"))
        memory_store.complete_run = AsyncMock()
        fetcher = AsyncMock()
        pipeline = SchemaIngestionPipeline(memory_store, fetcher=fetcher)

        with pytest.raises(DatabaseError):
            await pipeline.ingest("v1.33.3")

        fetcher.fetch.assert_not_called()
        memory_store.complete_run.assert_not_called()
