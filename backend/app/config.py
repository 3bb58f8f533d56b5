"""Application configuration management."""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.debug and self.log_level.upper() != "TRACE":
            self.log_level = "DEBUG"

    # Database
    database_url: str = "sqlite:///./streak_manager.db"

    # Security
    secret_key: str
    encryption_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Application
    debug: bool = False
    log_level: str = "INFO"
    api_v1_str: str = "/api/v1"

    # GitHub
    github_client_id: str = ""
    github_client_secret: str = ""
    github_oauth_redirect_uri: Optional[str] = None
    github_oauth_scope: str = "repo read:user user:email"
    github_api_url: str = "https://api.github.com"
    github_graphql_url: str = "https://api.github.com/graphql"
    github_timeout_seconds: float = 30.0

    # Bulk scheduling
    max_bulk_commits: int = 30

    # Scheduled commit sweep
    cron_secret: Optional[str] = None
    sweep_enabled: bool = False
    sweep_cron: str = "*/5 * * * *"
    sweep_max_attempts: int = 3
    sweep_backoff_seconds: float = 2.0

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]


# Global settings instance
settings = Settings()
