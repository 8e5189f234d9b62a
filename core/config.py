"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the agenda service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead, or receive a Settings instance through a constructor.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. jwt_secret -> JWT_SECRET). Type coercion and validation are built in.

  @model_validator(mode="after"): Runs cross-field validation after all fields
      are resolved from environment.

Startup contract:
  JWT_SECRET and JWT_EXPIRES_IN have no defaults. Settings() raises a
  pydantic ValidationError when either is missing, and the lifespan in
  api/main.py lets that error abort startup. There is no per-request fallback.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or events/.
"""

import logging
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.db import DEFAULT_DB_URL

logger = logging.getLogger("agenda.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    The instance is treated as immutable once built: the token service and
    the stores copy what they need at construction time.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    jwt_secret: str
    jwt_expires_in: int  # seconds

    # POST /user may only create admins when this is switched on. The first
    # admin is normally created with `python main.py create-user --admin`.
    allow_admin_signup: bool = False

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    database_url: str = DEFAULT_DB_URL
    db_connect_timeout: int = 3  # seconds

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_auth(self) -> "Settings":
        """Reject weak signing secrets and non-positive token lifetimes.

        A short secret weakens HS256 signing; 32 characters is the floor.
        """
        if len(self.jwt_secret) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        if self.jwt_expires_in <= 0:
            raise ValueError("JWT_EXPIRES_IN must be a positive number of seconds.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    settings = Settings()
    logger.info("Settings loaded (database=%s)", settings.database_url.split("://", 1)[0])
    return settings
