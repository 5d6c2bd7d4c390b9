"""
Configuration management for the Campaign Builder import service
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Campaign Builder"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"  # Empty = console logging only

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    database_url: str = "sqlite:///./campaign_builder.db"

    # Imports
    max_upload_bytes: int = 50 * 1024 * 1024  # 50MB per uploaded file
    import_tabular_extensions: str = ".csv"  # Comma-separated, matched case-insensitively
    import_default_update_existing: bool = False
    import_default_create_snapshot: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def tabular_extensions(self) -> List[str]:
        exts = [e.strip().lower() for e in self.import_tabular_extensions.split(",") if e.strip()]
        return [e if e.startswith(".") else f".{e}" for e in exts]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
