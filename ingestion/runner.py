# ============================================================================
# File: ingestion/runner.py
# Description: Schema ingestion orchestrator (fetch -> parse -> batch persist)
# ============================================================================
"""
Schema ingestion pipeline for Kubernetes releases.

Per release the work is strictly sequential:

1. Fetch the swagger.json document
2. Parse definitions into staged schema and GVK rows
3. Persist staged rows in fixed-size batches, one transaction per batch

A failing batch stops the release. Batches committed before it stay committed;
re-running the release is safe because every write is an upsert.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar
import logging

from core.config import settings
from core.exceptions import SchemaIngestionException, BatchUpsertError
from ingestion.extractors.swagger_fetcher import SwaggerFetcher
from ingestion.loaders.catalog_store import SchemaCatalogStore
from ingestion.transformers.definition_parser import DefinitionParser
from models.base import IngestionStatus
from schemas.catalog import SchemaRow, GvkRow, IngestionResult, IngestionSummary

logger = logging.getLogger(__name__)

T = TypeVar("T")


def chunked(rows: Sequence[T], size: int) -> Iterable[List[T]]:
    for start in range(0, len(rows), size):
        yield list(rows[start:start + size])


class SchemaIngestionPipeline:
    """
    Schema ingestion orchestrator

    Responsibilities:
    - Fetch -> parse -> persist for one release
    - Batch persistence with fail-fast on the first failing batch
    - Keep going across releases when one of them fails
    - Record an audit run per release when the store supports it
    """

    def __init__(
        self,
        store: SchemaCatalogStore,
        fetcher: Optional[SwaggerFetcher] = None,
        parser: Optional[DefinitionParser] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.fetcher = fetcher or SwaggerFetcher()
        self.parser = parser or DefinitionParser()
        self.batch_size = batch_size or settings.INGEST_BATCH_SIZE
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    async def _persist(
        self,
        release: str,
        rows: List[Any],
        upsert,
        table_name: str,
        progress: Dict[str, int],
        loaded_field: str,
    ):
        total_batches = (len(rows) + self.batch_size - 1) // self.batch_size

        for batch_index, batch in enumerate(chunked(rows, self.batch_size)):
            try:
                written = await upsert(batch)
            except Exception as e:
                raise BatchUpsertError(
                    f"Batch {batch_index + 1}/{total_batches} into {table_name} failed for {release}",
                    context={
                        "release": release,
                        "table_name": table_name,
                        "batch_index": batch_index,
                        "batch_size": len(batch),
                        "rows_committed": progress[loaded_field],
                    },
                    original_exception=e
                )

            progress[loaded_field] += written
            progress["batches_committed"] += 1
            logger.debug(f"{release}: committed batch {batch_index + 1}/{total_batches} into {table_name}")

    async def _complete_run(self, run, release: str, status: IngestionStatus, stats=None, error=None):
        """Close the audit record; a failure here is logged and never replaces the ingestion outcome"""
        if run is None:
            return
        try:
            await self.store.complete_run(run, status, stats=stats, error=error)
        except SchemaIngestionException as e:
            logger.error(
                f"Could not record {status.value} run for {release}: {e.message}",
                extra={"error_context": e.to_dict()}
            )

    async def ingest(self, release: str) -> IngestionResult:
        """
        Ingest one release.

        Returns:
            IngestionResult with staged and loaded row counts

        Raises:
            TransportError: The document could not be downloaded
            MalformedDocumentError: The document has no usable definitions
            BatchUpsertError: A persistence batch failed
            DatabaseError: The run could not be recorded
        """
        progress = {
            "definition_count": 0,
            "schema_rows_staged": 0,
            "gvk_rows_staged": 0,
            "schema_rows_loaded": 0,
            "gvk_rows_loaded": 0,
            "batches_committed": 0,
        }

        run = None
        logger.info(f"Starting schema ingestion for {release}")

        try:
            run = await self.store.start_run(release)

            # --------------------------------------------------
            # PHASE 1: FETCH
            # --------------------------------------------------
            document = await self.fetcher.fetch(release)
            definitions = document["definitions"]

            # --------------------------------------------------
            # PHASE 2: PARSE
            # --------------------------------------------------
            parsed = self.parser.parse(definitions)

            schema_rows = [
                SchemaRow(
                    release=release,
                    schema_key=schema.schema_key,
                    schema_data=schema.schema_data,
                    is_fully_resolved=schema.is_fully_resolved,
                )
                for schema in parsed.schemas
            ]
            gvk_rows = [
                GvkRow(release=release, group=gvk.group, gvk_version=gvk.version, kind=gvk.kind)
                for gvk in parsed.gvks
            ]

            progress["definition_count"] = parsed.definition_count
            progress["schema_rows_staged"] = len(schema_rows)
            progress["gvk_rows_staged"] = len(gvk_rows)

            # --------------------------------------------------
            # PHASE 3: PERSIST (BATCHED UPSERT)
            # --------------------------------------------------
            await self._persist(
                release, schema_rows, self.store.upsert_schema_rows,
                "kubernetes_schemas", progress, "schema_rows_loaded",
            )
            await self._persist(
                release, gvk_rows, self.store.upsert_gvk_rows,
                "schema_gvks", progress, "gvk_rows_loaded",
            )

        except SchemaIngestionException as e:
            logger.error(f"Schema ingestion failed for {release}: {e.message}", extra={"error_context": e.to_dict()})
            status = IngestionStatus.PARTIAL if progress["batches_committed"] else IngestionStatus.FAILED
            await self._complete_run(run, release, status, stats=progress, error=e.to_dict())
            raise

        except Exception as e:
            logger.exception(f"Unexpected error ingesting {release}")
            wrapped = SchemaIngestionException(
                "Unexpected error in schema ingestion",
                context={"release": release, **progress},
                original_exception=e
            )
            await self._complete_run(run, release, IngestionStatus.FAILED, stats=progress, error=wrapped.to_dict())
            raise wrapped

        await self._complete_run(run, release, IngestionStatus.SUCCESS, stats=progress)

        result = IngestionResult(
            release=release,
            schema_rows=len(schema_rows),
            gvk_rows=len(gvk_rows),
            definition_count=parsed.definition_count,
            schema_rows_loaded=progress["schema_rows_loaded"],
            gvk_rows_loaded=progress["gvk_rows_loaded"],
            batches_committed=progress["batches_committed"],
            skipped_definitions=parsed.skipped_definitions,
        )

        logger.info(
            f"Ingested {release}: {result.definition_count} definitions, "
            f"{result.schema_rows} schema rows, {result.gvk_rows} GVKs "
            f"in {result.batches_committed} batches"
        )
        return result

    async def ingest_many(self, releases: List[str], skip_existing: bool = False) -> IngestionSummary:
        """
        Ingest releases one at a time in the given order.

        A failing release is recorded in the summary and the next one still runs.
        """
        summary = IngestionSummary()

        for release in releases:
            try:
                if skip_existing and await self.store.has_release(release):
                    logger.info(f"Skipping {release}: already in catalog")
                    summary.skipped.append(release)
                    continue

                summary.succeeded.append(await self.ingest(release))
            except SchemaIngestionException as e:
                reason = e.message
                if e.original_exception is not None:
                    reason += f": {e.original_exception}"
                summary.failed[release] = reason

        logger.info(
            f"Ingestion finished: {len(summary.succeeded)} succeeded, "
            f"{len(summary.failed)} failed, {len(summary.skipped)} skipped"
        )
        return summary
