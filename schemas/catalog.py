"""
Pydantic schemas for staged catalog rows and ingestion results
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict
from datetime import datetime


STABLE_RELEASE_PATTERN = r"^v\d+\.\d+\.\d+$"


class GroupVersionKind(BaseModel):
    """
    Group-Version-Kind triple as advertised by x-kubernetes-group-version-kind.

    group is "" for the core API group.
    """
    group: str = ""
    version: str = Field(..., min_length=1)
    kind: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True)

    @field_validator("group", mode="before")
    @classmethod
    def default_core_group(cls, v):
        """A missing group means the core group"""
        return "" if v is None else v


class SchemaKeys(BaseModel):
    """Versioned and unversioned catalog keys for one definition"""
    versioned: str
    unversioned: str

    model_config = ConfigDict(frozen=True)


class ParsedSchema(BaseModel):
    """One staged schema document, not yet bound to a release"""
    schema_key: str = Field(..., min_length=1, max_length=255)
    schema_data: str
    is_fully_resolved: bool


class ParseResult(BaseModel):
    """Output of parsing one release's definitions table"""
    schemas: List[ParsedSchema] = Field(default_factory=list)
    gvks: List[GroupVersionKind] = Field(default_factory=list)
    definition_count: int = 0
    skipped_definitions: List[str] = Field(default_factory=list)


class SchemaRow(BaseModel):
    """
    Schema row as written to and read from the catalog store.

    Natural key: (release, schema_key, is_fully_resolved)
    """
    release: str = Field(..., pattern=STABLE_RELEASE_PATTERN)
    schema_key: str = Field(..., min_length=1, max_length=255)
    schema_data: str
    is_fully_resolved: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GvkRow(BaseModel):
    """
    GVK row as written to and read from the catalog store.

    Natural key: (release, group, gvk_version, kind)
    """
    release: str = Field(..., pattern=STABLE_RELEASE_PATTERN)
    group: str = ""
    gvk_version: str = Field(..., min_length=1)
    kind: str = Field(..., min_length=1)
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def to_gvk(self) -> GroupVersionKind:
        return GroupVersionKind(group=self.group, version=self.gvk_version, kind=self.kind)


class IngestionResult(BaseModel):
    """Statistics for one successfully ingested release"""
    release: str
    schema_rows: int
    gvk_rows: int
    definition_count: int
    schema_rows_loaded: int = 0
    gvk_rows_loaded: int = 0
    batches_committed: int = 0
    skipped_definitions: List[str] = Field(default_factory=list)


class IngestionSummary(BaseModel):
    """Outcome of ingesting several releases one after another"""
    succeeded: List[IngestionResult] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    skipped: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed
