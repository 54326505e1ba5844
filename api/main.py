"""
FastAPI application initialization
"""

from fastapi import FastAPI
from api.routes import health, schemas
from core.config import settings
from core.logging import setup_logging
import logging
from api.middleware import RequestContextMiddleware
from ingestion.scheduler import ReleaseSyncScheduler

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Kubernetes Schema Catalog API",
    description="Read-only access to ingested Kubernetes API schemas",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

# Initialize Scheduler
scheduler = ReleaseSyncScheduler()


# Include routers
app.include_router(health.router)
app.include_router(schemas.router)


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    logger.info("Starting Kubernetes Schema Catalog API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Kubernetes Schema Catalog API")
    if scheduler.scheduler.running:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Kubernetes Schema Catalog API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "gvks": "/schemas/{release}/gvks",
            "schemas": "/schemas/{release}?kinds=deployment-apps-v1&full=true"
        }
    }
