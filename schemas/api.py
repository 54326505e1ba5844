"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from schemas.catalog import GroupVersionKind


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field("healthy", description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    database_connected: bool
    releases: List[str] = Field(default_factory=list)
    total_releases: int = 0

    @model_validator(mode="after")
    def determine_status(self):
        """Determine overall health status"""
        if not self.database_connected:
            self.status = "unhealthy"
        elif self.total_releases == 0:
            self.status = "degraded"  # Nothing ingested yet
        else:
            self.status = "healthy"
        return self

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "releases": ["v1.33.3", "v1.32.7"],
                "total_releases": 2
            }
        }
    }


# ============================================================================
# Catalog Schemas
# ============================================================================

class GvkListResponse(BaseModel):
    """Canonical resource kinds for one release"""
    release: str
    gvks: List[GroupVersionKind]
    total: int

    model_config = {
        "json_schema_extra": {
            "example": {
                "release": "v1.33.3",
                "gvks": [
                    {"group": "apps", "version": "v1", "kind": "Deployment"},
                    {"group": "", "version": "v1", "kind": "Pod"}
                ],
                "total": 2
            }
        }
    }


class SchemaLookupResponse(BaseModel):
    """Schema documents for the requested kinds, keyed by schema key"""
    release: str
    full: bool
    schemas: Dict[str, Any]
    missing: List[str] = Field(default_factory=list)


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
