"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for vendportal happen here. No module should
call os.getenv() or os.environ.get() directly.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      application entry point (api/main.py lifespan) calls it; every auth
      component receives the Settings value through its constructor.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY).

  @model_validator(mode="after"): Enforces the signing-key policy once all
      fields are resolved.

Security notes:
  [M6] SECRET_KEY shorter than 32 chars is rejected outright. JWT signing
       relies on key entropy -- a short key weakens every session token.

  [M7] A missing SECRET_KEY is a hard startup failure in every mode. There is
       no generated or unsigned fallback; the process refuses to start.

Layer rule: core/ is the kernel. This module may not import from api/, web/,
or auth/.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'vendportal_auth.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Every field except secret_key has a default. Tests construct
    Settings(secret_key=...) directly instead of touching the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    log_level: str = "INFO"
    # Empty string is the sentinel for "not configured"; the validator below
    # turns it into a startup error.
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    # Fixed session lifetime. Claims are never refreshed in place; a new
    # login mints a new token.
    token_expire_seconds: int = 8 * 3600

    # ------------------------------------------------------------------
    # Access gate
    # ------------------------------------------------------------------

    login_path: str = "/login"
    # False: a role mismatch always lands on the login page.
    # True: a role mismatch lands on that role's own dashboard.
    redirect_to_role_home: bool = False

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Refuse to build Settings without a usable signing key [M6][M7]."""
        if not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required. "
                "Set SECRET_KEY in your environment or .env file before starting vendportal."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.token_expire_seconds <= 0:
            raise ValueError("TOKEN_EXPIRE_SECONDS must be positive.")
        if not self.login_path.startswith("/") or self.login_path.startswith("//"):
            raise ValueError("LOGIN_PATH must be a server-local path.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
