"""
Health check and status endpoints
"""
from fastapi import APIRouter
from datetime import datetime
from sqlalchemy import text
from campaign_builder.config import get_settings
from campaign_builder.models.base import engine
from campaign_builder import __version__

settings = get_settings()

router = APIRouter()


def _database_ok() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    db_ok = _database_ok()
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": "connected" if db_ok else "disconnected",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status():
    """Get system status"""
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "imports": {
            "tabular_extensions": settings.tabular_extensions,
            "max_upload_bytes": settings.max_upload_bytes,
            "default_update_existing": settings.import_default_update_existing,
            "default_create_snapshot": settings.import_default_create_snapshot,
        },
        "timestamp": datetime.utcnow().isoformat()
    }
