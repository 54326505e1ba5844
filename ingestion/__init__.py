"""
Kubernetes schema ingestion pipeline.

Modules:
    base: Shared HTTP source with retry, backoff and a circuit breaker
    runner: Orchestrator for fetch, parse and batched persistence per release
    scheduler: APScheduler job that keeps the latest stable release ingested

Subpackages:
    extractors: Release discovery (GitHub tags) and swagger.json fetching
    transformers: Key mapping, $ref resolution, GVK extraction and ranking
    loaders: Catalog store interface and its PostgreSQL implementation

Architecture:
    Each release is processed strictly in sequence:

    1. Fetch - Download {release}/api/openapi-spec/swagger.json
    2. Parse - Project every definition, stage resolved and unresolved
       schema rows under versioned and unversioned keys, collect GVKs
    3. Persist - Upsert staged rows in fixed-size batches, one
       transaction per batch, stopping at the first failing batch

    Re-running a release is idempotent: every write is an upsert on the
    row's natural key.

Usage:
    from ingestion.loaders.postgres_loader import PostgresCatalogStore
    from ingestion.runner import SchemaIngestionPipeline

    async with async_session_maker() as session:
        pipeline = SchemaIngestionPipeline(PostgresCatalogStore(session))
        summary = await pipeline.ingest_many(["v1.33.3", "v1.32.7"])

Error Handling:
    Transport, document and persistence failures raise the structured
    exceptions from core.exceptions. Per-definition anomalies are logged
    and skipped.
"""

__all__ = [
    "HTTPSource",
    "SchemaIngestionPipeline",
    "ReleaseSyncScheduler",
    "VersionDiscovery",
    "SwaggerFetcher",
    "DefinitionParser",
    "PostgresCatalogStore",
]
