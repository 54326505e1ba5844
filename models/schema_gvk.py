from sqlalchemy import Column, BigInteger, String, DateTime, Index
from datetime import datetime
from models.base import Base


class SchemaGvk(Base):
    """
    Group-Version-Kind advertised by a Kubernetes release.

    group is the empty string for the core API group. Rows are never updated,
    only inserted once per (release, group, gvk_version, kind).
    """
    __tablename__ = "schema_gvks"

    id = Column(BigInteger, primary_key=True, autoincrement=True)

    release = Column(String(32), nullable=False, index=True)
    group = Column(String(255), nullable=False, default="")
    gvk_version = Column(String(64), nullable=False)
    kind = Column(String(255), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index(
            "uq_gvk_release_group_version_kind",
            "release", "group", "gvk_version", "kind",
            unique=True,
        ),
    )
