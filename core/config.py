"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Taskflow happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() and
pass the Settings value into the component that needs it.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  Frozen settings: model_config sets frozen=True, so the value built at process
      start cannot be mutated later by a request handler. Components receive the
      object explicitly (verifier, reconciler, engine factory, CORS setup).

  @model_validator(mode="after"): cross-field validation once all fields are
      resolved. Outside debug mode the Cognito pool and client id are required;
      without them every token would fail verification with an opaque error.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, tasks/, or services/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("taskflow.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'taskflow.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.

    Environment variable name mapping: field names are uppercased automatically.
    E.g. `database_url` reads from DATABASE_URL, `debug` reads from DEBUG.
    List fields (cors_origins, allowed_hosts) are read as JSON arrays.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False

    # ------------------------------------------------------------------
    # Database
    # ------------------------------------------------------------------

    database_url: str = _DEFAULT_DB_URL
    # Bounded pool: checkouts beyond pool_size + max_overflow wait up to
    # pool_timeout seconds for a connection instead of failing immediately.
    db_pool_size: int = 10
    db_max_overflow: int = 0
    db_pool_timeout: float = 30.0

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:5174",
        "http://localhost:3000",
    ]
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    default_rate_limit: str = "120/minute"

    # ------------------------------------------------------------------
    # Identity (AWS Cognito ID tokens)
    # ------------------------------------------------------------------

    cognito_region: str = "us-east-1"
    cognito_user_pool_id: str = ""
    cognito_client_id: str = ""
    jwks_cache_seconds: int = 3600

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    # The one account that is created as Admin on first sign-in. Every other
    # first-time subject is created as Candidate. Empty string disables it.
    bootstrap_admin_email: str = ""

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject configurations the service cannot run with.

        Production mode (DEBUG=false or not set): the Cognito user pool id and
            app client id are mandatory.

        Both modes: the connection pool must allow at least one connection.
        """
        if not self.debug and not (self.cognito_user_pool_id and self.cognito_client_id):
            raise ValueError(
                "COGNITO_USER_POOL_ID and COGNITO_CLIENT_ID are required in production mode. "
                "Set them in your environment or .env file. "
                "To run in development mode, set DEBUG=true."
            )
        if self.db_pool_size < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1.")
        if self.db_max_overflow < 0:
            raise ValueError("DB_MAX_OVERFLOW must not be negative.")
        if not self.bootstrap_admin_email:
            logger.info("No BOOTSTRAP_ADMIN_EMAIL configured; new users start as Candidate")
        return self

    @property
    def cognito_issuer(self) -> str:
        """Issuer claim Cognito writes into tokens for this user pool."""
        return f"https://cognito-idp.{self.cognito_region}.amazonaws.com/{self.cognito_user_pool_id}"

    @property
    def cognito_jwks_url(self) -> str:
        return f"{self.cognito_issuer}/.well-known/jwks.json"


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings() is instantiated exactly once -- at first call.
    This is the official FastAPI pattern for config (see FastAPI docs /advanced/settings/).

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
