from sqlalchemy import Column, BigInteger, String, Text, Boolean, DateTime, Index
from datetime import datetime
from models.base import Base


class KubernetesSchema(Base):
    """
    One stored schema document for a Kubernetes release.

    Design:
    - schema_key is either versioned ("deployment-apps-v1") or unversioned
      ("deployment"); both point at the same kind of document
    - schema_data holds serialized JSON text exactly as served to consumers
    - is_fully_resolved separates the $ref-preserving form from the
      self-contained form
    - At most one row per (release, schema_key, is_fully_resolved); re-ingestion
      overwrites schema_data in place
    """
    __tablename__ = "kubernetes_schemas"

    id = Column(BigInteger, primary_key=True, autoincrement=True)

    release = Column(String(32), nullable=False, index=True)
    schema_key = Column(String(255), nullable=False)
    schema_data = Column(Text, nullable=False)
    is_fully_resolved = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index(
            "uq_schema_release_key_resolved",
            "release", "schema_key", "is_fully_resolved",
            unique=True,
        ),
    )
