"""
Read-only catalog endpoints: canonical resource kinds and schema documents
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
import json
import logging

from api.dependencies import get_store
from core.exceptions import DatabaseError
from ingestion.loaders.catalog_store import SchemaCatalogStore
from ingestion.transformers.gvk import filter_real_resources
from schemas.api import GvkListResponse, SchemaLookupResponse, ErrorResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/schemas", tags=["Schemas"])


def _split_kinds(kinds: str) -> List[str]:
    keys = []
    for key in kinds.split(","):
        key = key.strip().lower()
        if key and key not in keys:
            keys.append(key)
    return keys


@router.get(
    "/{release}/gvks",
    response_model=GvkListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_gvks(release: str, store: SchemaCatalogStore = Depends(get_store)):
    """Canonical resource kinds of a release, one preferred version per (group, kind)"""
    try:
        rows = await store.get_gvks(release)
    except DatabaseError as e:
        logger.error(f"GVK lookup failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to read GVKs")

    if not rows:
        raise HTTPException(status_code=404, detail=f"Release {release} is not in the catalog")

    gvks = filter_real_resources(row.to_gvk() for row in rows)
    return GvkListResponse(release=release, gvks=gvks, total=len(gvks))


@router.get(
    "/{release}",
    response_model=SchemaLookupResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_schemas(
    release: str,
    kinds: str = Query(..., description="Comma-separated schema keys, e.g. deployment-apps-v1,pod"),
    full: bool = Query(False, description="Return fully resolved schemas"),
    store: SchemaCatalogStore = Depends(get_store),
):
    """
    Schema documents of a release by schema key.

    Keys may be versioned (deployment-apps-v1) or unversioned (deployment).
    Keys without a stored row are reported in `missing`.
    """
    keys = _split_kinds(kinds)
    if not keys:
        raise HTTPException(status_code=400, detail="kinds must name at least one schema key")

    try:
        if not await store.has_release(release):
            raise HTTPException(status_code=404, detail=f"Release {release} is not in the catalog")
        rows = await store.get_schemas(release, keys, resolved=full)
    except DatabaseError as e:
        logger.error(f"Schema lookup failed: {e}")
        raise HTTPException(status_code=500, detail="Failed to read schemas")

    schemas = {row.schema_key: json.loads(row.schema_data) for row in rows}
    return SchemaLookupResponse(
        release=release,
        full=full,
        schemas=schemas,
        missing=[key for key in keys if key not in schemas],
    )
