"""
Pydantic schemas for data validation and serialization.

Schemas:
    catalog: Staged schema/GVK rows, parse results and ingestion summaries
    api: API endpoint request/response schemas

Usage:
    from schemas.catalog import SchemaRow, GvkRow, GroupVersionKind
    from schemas.api import HealthCheckResponse, GvkListResponse

Example:
    row = SchemaRow(
        release="v1.33.3",
        schema_key="deployment-apps-v1",
        schema_data='{"type":"object"}',
        is_fully_resolved=False,
    )

Validation:
    Release identifiers on stored rows must be stable tags (vMAJOR.MINOR.PATCH).
"""

__all__ = [
    "GroupVersionKind",
    "SchemaKeys",
    "ParsedSchema",
    "ParseResult",
    "SchemaRow",
    "GvkRow",
    "IngestionResult",
    "IngestionSummary",
    "HealthCheckResponse",
    "GvkListResponse",
    "SchemaLookupResponse",
    "ErrorResponse",
]
