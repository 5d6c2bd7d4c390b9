"""
Engine, session factory and declarative base for the campaign store.

Schema changes are owned by Alembic (`alembic upgrade head`); `init_db`
only creates tables that do not exist yet so a fresh SQLite file works
without a migration step.
"""
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from campaign_builder.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def _resolve_database_url(url: str) -> str:
    """Relative SQLite paths become absolute so the store does not follow the cwd."""
    prefix = "sqlite:///"
    if url.startswith(prefix) and not url.startswith("sqlite:////") and ":memory:" not in url:
        return prefix + os.path.abspath(url[len(prefix):])
    return url


database_url = _resolve_database_url(settings.database_url)

if database_url.startswith("sqlite"):
    # Sessions are handed across FastAPI's threadpool
    engine = create_engine(database_url, connect_args={"check_same_thread": False, "timeout": 60})
else:
    engine = create_engine(database_url, pool_pre_ping=True)

# Import passes flush explicitly before reading back their own writes
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Request-scoped session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create missing tables for every model."""
    import campaign_builder.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")
