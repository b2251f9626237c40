"""
Application Configuration.

Pydantic Settings model for the GymManager data layer.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Remote collections / paths ---
    MEMBERS_TABLE: str = "Members"
    REVENUE_PATH: str = "Revenue"
    TOTAL_REVENUE_PATH: str = "TotalRevenue"
    REALTIME_VALUES_TABLE: str = "realtime_values"
    STORAGE_BUCKET: str = "gym-manager"
    MEMBER_IMAGE_PREFIX: str = "member_images"

    # --- Local cache ---
    SQLITE_PATH: Path = Path("gym_manager_local.db")

    # --- Logging ---
    LOG_FILE: str = "gym_manager.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    # --- Sync worker ---
    SYNC_INTERVAL_S: float = Field(default=60.0, gt=0)
    SYNC_MAX_INTERVAL_S: float = Field(default=900.0, gt=0)

    # --- Realtime listeners ---
    LISTEN_POLL_INTERVAL_S: float = Field(default=5.0, gt=0)

    # --- Audit ---
    DEVICE_ID: str = "front-desk"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when Supabase credentials are empty.

        Pydantic silently falls back to defaults when ``.env`` is missing,
        so operators would otherwise not notice the app is cache-only.
        """
        _log = logging.getLogger("gym_manager.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty; remote sync is disabled. "
                "Members will be served from the local cache only."
            )

        if self.SYNC_MAX_INTERVAL_S < self.SYNC_INTERVAL_S:
            raise ValueError("SYNC_MAX_INTERVAL_S must be >= SYNC_INTERVAL_S")

        return self


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern so the fast path stays lock-free.

    Prefer direct constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
