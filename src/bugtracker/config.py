"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with BUGTRACKER_ prefix
(and an optional .env file in the working directory).

Learn: Settings are built once at startup and handed to create_app().
Tests build their own Settings instead of mutating environment state.
"""

from typing import Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-me-in-production"


class Settings(BaseSettings):
    """All app configuration. Set via BUGTRACKER_* env vars."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./bugtracker.db"

    # Auth
    jwt_secret: str = DEFAULT_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 30
    jwt_cookie_expire_days: int = 30
    token_cookie_name: str = "token"
    bcrypt_rounds: int = 10

    # Authorization rule set: "parity" keeps the historical issue rules,
    # "strict" requires project membership for issue create/update.
    policy_mode: Literal["parity", "strict"] = "parity"

    # Bootstrap admin, created at startup when all three are set
    admin_email: Optional[str] = None
    admin_username: Optional[str] = None
    admin_password: Optional[str] = None

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 5000

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = SettingsConfigDict(env_prefix="BUGTRACKER_", env_file=".env", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Ensure sensitive defaults are changed in non-development environments."""
        if self.environment not in ("development", "test") and self.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError(
                "BUGTRACKER_JWT_SECRET must be set to a secure value in "
                "non-development environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


def get_settings() -> Settings:
    return Settings()
