"""
Configuration settings for the Formwork Planner data service.
All sensitive values are loaded from environment variables.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "Formwork Planner"
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="production", env="ENVIRONMENT")

    # Server
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=8000, env="PORT")
    frontend_url: str = Field(default="*", env="FRONTEND_URL")

    # Database (PostgreSQL in production, SQLite for local runs)
    database_url: str = Field(default="", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")
    db_pool_size: int = Field(default=5, env="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, env="DB_MAX_OVERFLOW")
    db_pool_timeout: int = Field(default=30, env="DB_POOL_TIMEOUT")
    db_pool_recycle: int = Field(default=1800, env="DB_POOL_RECYCLE")

    # Realtime change notifications (PostgreSQL LISTEN/NOTIFY)
    change_notify_channel: str = Field(default="table_changes", env="CHANGE_NOTIFY_CHANNEL")
    refresh_debounce_seconds: float = Field(default=0.5, env="REFRESH_DEBOUNCE_SECONDS")

    # Task assignment push notifications
    notification_service_url: str = Field(default="", env="NOTIFICATION_SERVICE_URL")
    notification_timeout_seconds: float = Field(default=10.0, env="NOTIFICATION_TIMEOUT_SECONDS")

    # Data loading
    audit_log_page_size: int = Field(default=500, env="AUDIT_LOG_PAGE_SIZE")
    default_timezone: str = Field(default="Asia/Kolkata", env="DEFAULT_TIMEZONE")

    # ERP
    quotation_tax_rate: float = Field(default=0.08, env="QUOTATION_TAX_RATE")

    # Authentication
    password_reset_secret: Optional[str] = Field(default=None, env="PASSWORD_RESET_SECRET")
    password_reset_ttl_seconds: int = Field(default=3600, env="PASSWORD_RESET_TTL_SECONDS")
    bcrypt_rounds: int = Field(default=12, env="BCRYPT_ROUNDS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
