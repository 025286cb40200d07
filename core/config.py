"""
core/config.py -- Settings for the AuthLane demo application.

Every AUTHLANE_* environment variable is read here and nowhere else;
other modules call get_settings().

  get_settings() is wrapped in lru_cache, so Settings is built once per
      process. Tests that need different values build Settings() directly.

  Settings reads AUTHLANE_* variables and an optional .env file. Field
      names map to variable names (session_key -> AUTHLANE_SESSION_KEY).
      List fields such as serialize_user take JSON, e.g.
      AUTHLANE_SERIALIZE_USER='["id", "role"]'.

  The secret key signs the session cookie and keys the remember-token
      HMAC. Debug mode generates one with a warning; production refuses
      to start without one.

The engine never reads Settings. api/main.py converts them with
AuthLaneConfig.from_settings().

Layer rule: core/ is the kernel. This module may not import from api/, web/,
authlane/, or accounts/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authlane.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTHLANE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Signs the Starlette session cookie. Empty string is the sentinel for
    # "not configured"; the validator either generates one or raises.
    secret_key: str = ""

    # ------------------------------------------------------------------
    # AuthLane engine
    # ------------------------------------------------------------------

    session_key: str = "authlane"
    remember_cookie: str = "authlane.token"
    failed_route: str = "/user/unauthorized"
    serialize_user: list[str] = Field(default_factory=lambda: ["id"])
    id_field: str = "id"
    check_default_role: bool = False

    # ------------------------------------------------------------------
    # Cookies
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    session_cookie: str = "session"
    # Default 14 days, matching Starlette's SessionMiddleware default.
    session_max_age: int = 14 * 24 * 3600
    # Default 30 days for the remember-me cookie.
    remember_max_age: int = 30 * 24 * 3600

    # ------------------------------------------------------------------
    # Example account backend
    # ------------------------------------------------------------------

    # Empty string means accounts/authlane_accounts.db next to the package.
    db_url: str = ""
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("failed_route")
    @classmethod
    def validate_failed_route(cls, value: str) -> str:
        """The failed route must be a server-local path, never an absolute URL."""
        if not value.startswith("/") or value.startswith("//"):
            raise ValueError("failed_route must be a relative path starting with '/'.")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the session signing key policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.

        Production mode: refuse to start if SECRET_KEY is missing, since every
            restart would silently log all users out.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated AUTHLANE_SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "AUTHLANE_SECRET_KEY is required in production mode. "
                    "Set it in your environment or .env file. "
                    "To run in development mode, set AUTHLANE_DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("AUTHLANE_SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
