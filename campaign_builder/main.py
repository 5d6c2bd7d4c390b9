"""
Campaign Builder
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from campaign_builder.config import get_settings
from campaign_builder.utils.logger import log
from campaign_builder import __version__

# Import routers
from campaign_builder.api import health, imports

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from campaign_builder.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    yield

    # Shutdown
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Campaign Builder import service

    Merges Google Ads Editor exports into the campaign structure:
    - Campaign → ad group → ads / keywords, from CSV or ZIP bundles
    - Existing entities are skipped or merged (update_existing)
    - Duplicate ads (same headlines) and keywords are never created twice
    - Pre-import snapshots of every touched campaign
    - Performance and search term report imports
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(imports.router)


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "app": settings.app_name,
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "import_editor_export": "POST /import/editor",
            "import_performance_report": "POST /import/performance",
            "import_search_terms": "POST /import/search-terms",
            "import_history": "GET /import/history",
            "import_detail": "GET /import/{import_id}",
            "campaign_snapshots": "GET /import/snapshots/{campaign_id}",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "campaign_builder.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
