"""
SQLAlchemy ORM models for the schema catalog tables.

Models:
    base: Base declarative class and shared enums (IngestionStatus)
    kubernetes_schema: Stored schema documents, resolved and unresolved
    schema_gvk: Group-Version-Kind records advertised by a release
    ingestion_run: Audit trail of ingestion runs

Database Schema:
    All models inherit from the Base declarative class. Natural uniqueness
    constraints back the idempotent upserts:
    - kubernetes_schemas: (release, schema_key, is_fully_resolved)
    - schema_gvks: (release, group, gvk_version, kind)

Usage:
    from models.kubernetes_schema import KubernetesSchema
    from models.schema_gvk import SchemaGvk
    from models.ingestion_run import IngestionRun
    from models.base import Base, IngestionStatus
"""

__all__ = [
    "Base",
    "IngestionStatus",
    "KubernetesSchema",
    "SchemaGvk",
    "IngestionRun",
]
