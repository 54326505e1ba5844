from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Float, Integer, Text, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from datetime import datetime
import uuid
from models.base import Base, IngestionStatus


class IngestionRun(Base):
    """
    Tracks metadata for each schema ingestion of one release.

    Purpose:
    - Audit trail of all ingestion runs
    - Shows how far a failed run got (batches committed before the failure)
    - Error tracking and debugging
    """
    __tablename__ = "ingestion_runs"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    run_id = Column(UUID(as_uuid=True), default=uuid.uuid4, unique=True, nullable=False, index=True)

    release = Column(String(32), nullable=False, index=True)

    # Run metadata
    status = Column(Enum(IngestionStatus), default=IngestionStatus.PENDING, nullable=False, index=True)

    # Timestamps
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    completed_at = Column(DateTime, nullable=True)
    duration_seconds = Column(Float, nullable=True)

    # Statistics
    definition_count = Column(Integer, default=0)
    schema_rows_staged = Column(Integer, default=0)
    gvk_rows_staged = Column(Integer, default=0)
    schema_rows_loaded = Column(Integer, default=0)
    gvk_rows_loaded = Column(Integer, default=0)
    batches_committed = Column(Integer, default=0)

    # Error tracking
    error_message = Column(Text, nullable=True)
    error_details = Column(JSONB, nullable=True)

    __table_args__ = (
        Index("idx_ingestion_run_release_started", "release", "started_at"),
    )
