"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads happen here. No module should call os.getenv()
or os.environ.get() directly.

Design:
  One Settings object per process. The entry points (asgi.py, main.py) call
  get_settings() once and hand the result to create_app() / the CLI commands,
  which pass it on explicitly (TokenIssuer, stores, image host). Nothing else
  imports get_settings(), so tests build their own Settings(...) and never
  touch the process environment.

  BaseSettings reads values from environment variables and an optional .env
  file. Field names map to env var names (jwt_secret -> JWT_SECRET).

  @model_validator(mode="after") checks the signing secret at startup. A
  missing or short secret raises ConfigurationError. ConfigurationError is not
  a ValueError, so pydantic lets it propagate unwrapped and the process
  refuses to start with a clear message.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, catalog/, or media/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigurationError

logger = logging.getLogger("shopadmin.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'shopadmin.db'}"

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Everything except jwt_secret has a default, so a development checkout only
    needs JWT_SECRET set.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    # "production" turns on Secure cookies and hides failure detail in 500s.
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 3000

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured"; the validator rejects it.
    jwt_secret: str = ""
    token_expire_days: int = 6

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Image host (Cloudinary). Empty values leave uploads disabled.
    # ------------------------------------------------------------------

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""
    max_upload_bytes: int = 10 * 1024 * 1024

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    # List values are read from the environment as JSON, e.g.
    # CORS_ORIGINS='["https://shop.example.com"]'
    cors_origins: list[str] = ["http://localhost:5173"]
    allowed_hosts: list[str] = ["*"]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def token_expire_seconds(self) -> int:
        return self.token_expire_days * 24 * 60 * 60

    @model_validator(mode="after")
    def validate_jwt_secret(self) -> "Settings":
        """Refuse to start without a usable signing secret.

        There is no auto-generated fallback: a random key would silently
        invalidate every session on restart.
        """
        if not self.jwt_secret:
            raise ConfigurationError("JWT_SECRET is required. Set it in your environment or .env file.")
        if len(self.jwt_secret) < _MIN_SECRET_LENGTH:
            raise ConfigurationError(f"JWT_SECRET must be at least {_MIN_SECRET_LENGTH} characters.")
        if self.token_expire_days <= 0:
            raise ConfigurationError("TOKEN_EXPIRE_DAYS must be a positive number of days.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the process Settings, built on first call.

    Only the entry points call this. Everything downstream receives the
    Settings object it was constructed with.
    """
    settings = Settings()
    logger.info("Settings loaded (environment=%s)", settings.environment)
    return settings
