"""
Configuration settings for the Onboarding Automation backend.
All sensitive values are loaded from environment variables.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "Onboarding Automation"
    debug: bool = Field(default=False)
    environment: str = Field(default="production")

    # Database (PostgreSQL)
    database_url: str = Field(default="")
    database_echo: bool = Field(default=False)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_timeout: int = Field(default=30)
    db_pool_recycle: int = Field(default=1800)

    # Email delivery (Resend)
    resend_api_key: str = Field(default="")
    resend_api_url: str = Field(default="https://api.resend.com/emails")
    email_from_address: str = Field(default="onboarding@psprop.net")
    email_from_name: str = Field(default="PS Property Management")
    email_timeout_seconds: float = Field(default=10.0)

    # Client portal
    portal_base_url: str = Field(default="http://localhost:3000")

    # Automation engine
    automation_max_chain_events: int = Field(default=20, ge=1)
    automation_actor: str = Field(default="automation")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the application settings."""
    return settings
