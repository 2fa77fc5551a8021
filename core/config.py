"""
core/config.py -- Centralized configuration via pydantic-settings.

All environment variable reads happen here. No module should call
os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. auth_db_url -> AUTH_DB_URL).

  @model_validator(mode="after"): cross-field checks once every field is
      resolved. A malformed mount point or an empty initial password is a
      hard startup failure.

The superuser identity ("neo4j") is deliberately NOT a setting. It lives in
auth/models.py as a constant.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
from functools import lru_cache
from pathlib import Path

from limits import parse
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("useradmin.config")

_DEFAULT_AUTH_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'useradmin_auth.db'}"


class Settings(BaseSettings):
    """Settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"

    # ------------------------------------------------------------------
    # Auth store
    # ------------------------------------------------------------------

    auth_db_url: str = _DEFAULT_AUTH_DB_URL
    # Password given to the seeded superuser on first startup. The account is
    # created with password_change_required=True regardless.
    initial_password: str = "neo4j"

    # ------------------------------------------------------------------
    # HTTP surface
    # ------------------------------------------------------------------

    # Prefix for /useradd and /userdel. Empty string mounts them at the root.
    extension_mount_point: str = ""
    allowed_hosts: list[str] = ["*"]

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    user_admin_rate_limit: str = "30/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Reject a mount point the router cannot use, an empty initial password
        and a rate limit string the limits library cannot parse.

        The mount point is passed straight to include_router(prefix=...), which
        requires a leading slash and no trailing slash.
        """
        mount = self.extension_mount_point
        if mount and (not mount.startswith("/") or mount.endswith("/")):
            raise ValueError(
                f"EXTENSION_MOUNT_POINT must start with '/' and must not end with '/', got {mount!r}."
            )
        if not self.initial_password:
            raise ValueError("INITIAL_PASSWORD cannot be empty.")
        try:
            parse(self.user_admin_rate_limit)
        except ValueError as exc:
            raise ValueError(
                f"USER_ADMIN_RATE_LIMIT must look like '30/minute', got {self.user_admin_rate_limit!r}."
            ) from exc
        if self.debug:
            logger.warning("DEBUG is enabled. Do not run this configuration in production.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
