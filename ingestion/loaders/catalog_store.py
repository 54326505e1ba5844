"""
Persistence interface shared by the ingestion pipeline and catalog readers
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from models.base import IngestionStatus
from schemas.catalog import SchemaRow, GvkRow


class SchemaCatalogStore(ABC):
    """
    Create-or-replace storage for schema and GVK rows.

    Each upsert call is one transaction: either every row in the call is
    written or none is. Readers (schema browsing, the HTTP API) only go
    through the query methods and never see raw upstream documents.
    """

    @abstractmethod
    async def upsert_schema_rows(self, rows: List[SchemaRow]) -> int:
        """Upsert on (release, schema_key, is_fully_resolved); returns rows written"""

    @abstractmethod
    async def upsert_gvk_rows(self, rows: List[GvkRow]) -> int:
        """Insert on (release, group, gvk_version, kind), keeping existing rows; returns rows inserted"""

    @abstractmethod
    async def get_schemas(self, release: str, keys: List[str], resolved: bool) -> List[SchemaRow]:
        """Schema rows of one release for the given keys and variant"""

    @abstractmethod
    async def get_gvks(self, release: str) -> List[GvkRow]:
        """Every GVK row of one release, ordered by group then kind"""

    @abstractmethod
    async def has_release(self, release: str) -> bool:
        """True once at least one GVK row exists for the release"""

    @abstractmethod
    async def list_releases(self) -> List[str]:
        """Releases with catalog rows, newest first"""

    async def start_run(self, release: str) -> Optional[Any]:
        """Open an audit record for one ingestion; stores without auditing return None"""
        return None

    async def complete_run(
        self,
        run: Optional[Any],
        status: IngestionStatus,
        stats: Optional[Dict[str, int]] = None,
        error: Optional[Dict[str, Any]] = None,
    ):
        """Close an audit record opened by start_run"""
        return None
