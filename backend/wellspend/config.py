from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Relational store
    database_url: str = "sqlite:///./wellspend.db"
    database_echo: bool = False

    # Raw upload storage
    upload_dir: str = "./uploads"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_mime_types: List[str] = ["text/csv", "application/json", "text/plain"]

    # Metrics
    metric_unit: str = "USD"

    # Supabase (supports both SUPABASE_URL and supabase_url from env)
    supabase_url: Optional[str] = "https://your-project.supabase.co"
    supabase_key: Optional[str] = "your-supabase-anon-key"
    auth_timeout: float = 10.0

    # Local development without an identity provider
    auth_disabled: bool = False
    dev_user_id: str = "local-dev-user"
    dev_user_email: str = "admin@wellspend.local"

    # Comma separated in the environment, e.g. CORS_ORIGINS=http://localhost:3000,https://app.example.org
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields

    @property
    def allowed_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Settings loaded once per process from the environment / .env file"""
    return Settings()
