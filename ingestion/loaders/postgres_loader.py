"""
Load schema catalog rows into PostgreSQL with upsert logic (idempotency)
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
import logging
import uuid

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DatabaseError
from ingestion.extractors.version_discovery import sort_releases
from ingestion.loaders.catalog_store import SchemaCatalogStore
from models.base import IngestionStatus
from models.ingestion_run import IngestionRun
from models.kubernetes_schema import KubernetesSchema
from models.schema_gvk import SchemaGvk
from schemas.catalog import SchemaRow, GvkRow

logger = logging.getLogger(__name__)

SCHEMA_CONFLICT_KEYS = ["release", "schema_key", "is_fully_resolved"]
GVK_CONFLICT_KEYS = ["release", "group", "gvk_version", "kind"]

# asyncpg connection failures (refused, reset) surface as OSError
DB_ERRORS = (SQLAlchemyError, OSError)


class PostgresCatalogStore(SchemaCatalogStore):
    """
    Schema catalog on PostgreSQL with idempotent upsert operations.

    Ensures:
    - No duplicate rows on repeated runs
    - Schema documents are overwritten in place when upstream changes
    - One transaction per upsert call
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def _rollback(self):
        try:
            await self.db.rollback()
        except DB_ERRORS as e:
            logger.warning(f"Rollback failed: {e}")

    async def _execute_upsert(self, stmt, table_name: str, row_count: int, count_returned: bool = False) -> int:
        """
        Execute and commit one upsert statement.

        Returns row_count, or the number of RETURNING rows when count_returned is set.
        """
        try:
            result = await self.db.execute(stmt)
            written = len(result.scalars().all()) if count_returned else row_count
            await self.db.commit()
        except DB_ERRORS as e:
            await self._rollback()
            raise DatabaseError(
                f"Failed to upsert {row_count} rows into {table_name}",
                context={"operation": "UPSERT", "table_name": table_name, "row_count": row_count},
                original_exception=e
            )
        return written

    async def upsert_schema_rows(self, rows: List[SchemaRow]) -> int:
        """
        Upsert schema rows (INSERT ON CONFLICT DO UPDATE schema_data).

        Rows repeating a natural key inside one call collapse to the last one,
        PostgreSQL refuses to update the same row twice in one statement.
        """
        if not rows:
            return 0

        now = datetime.utcnow()
        values: Dict[tuple, Dict[str, Any]] = {}
        for row in rows:
            values[(row.release, row.schema_key, row.is_fully_resolved)] = {
                "release": row.release,
                "schema_key": row.schema_key,
                "schema_data": row.schema_data,
                "is_fully_resolved": row.is_fully_resolved,
                "created_at": now,
                "updated_at": now,
            }

        stmt = insert(KubernetesSchema).values(list(values.values()))
        stmt = stmt.on_conflict_do_update(
            index_elements=SCHEMA_CONFLICT_KEYS,
            set_={
                "schema_data": stmt.excluded.schema_data,
                "updated_at": stmt.excluded.updated_at,
            }
        )

        await self._execute_upsert(stmt, KubernetesSchema.__tablename__, len(values))
        logger.debug(f"Upserted {len(values)} rows into {KubernetesSchema.__tablename__}")
        return len(values)

    async def upsert_gvk_rows(self, rows: List[GvkRow]) -> int:
        """
        Insert GVK rows, existing natural keys are left untouched.

        Returns the number of rows actually inserted.
        """
        if not rows:
            return 0

        now = datetime.utcnow()
        values: Dict[tuple, Dict[str, Any]] = {}
        for row in rows:
            values[(row.release, row.group, row.gvk_version, row.kind)] = {
                "release": row.release,
                "group": row.group,
                "gvk_version": row.gvk_version,
                "kind": row.kind,
                "created_at": now,
            }

        stmt = insert(SchemaGvk).values(list(values.values()))
        stmt = stmt.on_conflict_do_nothing(index_elements=GVK_CONFLICT_KEYS).returning(SchemaGvk.id)

        inserted = await self._execute_upsert(
            stmt, SchemaGvk.__tablename__, len(values), count_returned=True
        )
        logger.debug(
            f"Inserted {inserted} of {len(values)} rows into {SchemaGvk.__tablename__}"
        )
        return inserted

    async def get_schemas(self, release: str, keys: List[str], resolved: bool) -> List[SchemaRow]:
        if not keys:
            return []
        wanted = sorted({key.lower() for key in keys})
        try:
            result = await self.db.execute(
                select(KubernetesSchema).where(
                    KubernetesSchema.release == release,
                    KubernetesSchema.schema_key.in_(wanted),
                    KubernetesSchema.is_fully_resolved.is_(resolved),
                ).order_by(KubernetesSchema.schema_key)
            )
        except DB_ERRORS as e:
            raise DatabaseError(
                "Failed to read schemas",
                context={"operation": "SELECT", "table_name": KubernetesSchema.__tablename__, "release": release},
                original_exception=e
            )
        return [SchemaRow.model_validate(row) for row in result.scalars().all()]

    async def get_gvks(self, release: str) -> List[GvkRow]:
        try:
            result = await self.db.execute(
                select(SchemaGvk)
                .where(SchemaGvk.release == release)
                .order_by(SchemaGvk.group, SchemaGvk.kind, SchemaGvk.gvk_version)
            )
        except DB_ERRORS as e:
            raise DatabaseError(
                "Failed to read GVKs",
                context={"operation": "SELECT", "table_name": SchemaGvk.__tablename__, "release": release},
                original_exception=e
            )
        return [GvkRow.model_validate(row) for row in result.scalars().all()]

    async def has_release(self, release: str) -> bool:
        try:
            result = await self.db.execute(
                select(SchemaGvk.id).where(SchemaGvk.release == release).limit(1)
            )
        except DB_ERRORS as e:
            raise DatabaseError(
                "Failed to check release",
                context={"operation": "SELECT", "table_name": SchemaGvk.__tablename__, "release": release},
                original_exception=e
            )
        return result.scalar_one_or_none() is not None

    async def list_releases(self) -> List[str]:
        try:
            result = await self.db.execute(select(SchemaGvk.release).distinct())
        except DB_ERRORS as e:
            raise DatabaseError(
                "Failed to list releases",
                context={"operation": "SELECT", "table_name": SchemaGvk.__tablename__},
                original_exception=e
            )
        return sort_releases(list(result.scalars().all()))

    # ------------------------------------------------------------------
    # Run audit
    # ------------------------------------------------------------------

    async def start_run(self, release: str) -> IngestionRun:
        """Create ingestion run record"""
        run = IngestionRun(
            run_id=uuid.uuid4(),
            release=release,
            status=IngestionStatus.RUNNING,
            started_at=datetime.utcnow(),
        )
        try:
            self.db.add(run)
            await self.db.commit()
            await self.db.refresh(run)
        except DB_ERRORS as e:
            await self._rollback()
            raise DatabaseError(
                f"Failed to record ingestion run for {release}",
                context={"operation": "INSERT", "table_name": IngestionRun.__tablename__, "release": release},
                original_exception=e
            )
        return run

    async def complete_run(
        self,
        run: Optional[IngestionRun],
        status: IngestionStatus,
        stats: Optional[Dict[str, int]] = None,
        error: Optional[Dict[str, Any]] = None,
    ):
        """
        Complete ingestion run with statistics.

        A failed batch rolls the session back and expires the run, so it is
        reloaded before any attribute is read.
        """
        if run is None:
            return

        try:
            await self.db.refresh(run)

            run.status = status
            run.completed_at = datetime.utcnow()
            run.duration_seconds = (run.completed_at - run.started_at).total_seconds()
            for field, value in (stats or {}).items():
                setattr(run, field, value)
            if error:
                run.error_message = error.get("message")
                run.error_details = error

            await self.db.commit()
        except DB_ERRORS as e:
            await self._rollback()
            raise DatabaseError(
                "Failed to complete ingestion run",
                context={"operation": "UPDATE", "table_name": IngestionRun.__tablename__, "status": status.value},
                original_exception=e
            )
