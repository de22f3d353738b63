"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from cricket_fantasy.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Sportmonks cricket API
    sportmonks_api_base_url: str = "https://cricket.sportmonks.com/api/v2.0"
    sportmonks_api_token: str | None = None

    # Competition being tracked
    league_id: int = 1
    season_id: int = 1689
    team_ids: str = "2,3,4,5,6,7,8,9,1979,1976"  # comma-separated provider team IDs

    # Database
    database_url: str | None = None

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    # Logging
    log_level: str = "INFO"

    # Fixture lifecycle
    match_duration_hours: int = 4  # assumed length of the live window

    # Timeouts and throttling
    squad_fetch_delay_seconds: float = 1.0
    provider_timeout_seconds: float = 30.0
    fixture_timeout_seconds: float = 120.0
    max_concurrent_fixtures: int = 3
    scheduled_update_timeout_seconds: int = 240  # must stay below the cron interval

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def team_ids_list(self) -> list[int]:
        """Parse provider team IDs from comma-separated string."""
        return [int(team_id) for team_id in self.team_ids.split(",") if team_id.strip()]

    @property
    def db_connection_string(self) -> str | None:
        """Database URL, or None when not configured."""
        return self.database_url or None

    def require_api_token(self) -> str:
        """Return the provider token, failing fast when it is missing."""
        if not self.sportmonks_api_token:
            raise ConfigurationError(
                "SPORTMONKS_API_TOKEN is required. Set it in the environment or .env file."
            )
        return self.sportmonks_api_token


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
