"""Centralised application settings loaded from environment / .env file."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def _resolve_db_dir() -> Path:
    """Return (and create) the directory that holds the SQLite file."""
    d = Path(os.getenv("NUDGE_DATA_DIR", str(_PROJECT_ROOT / "data")))
    d.mkdir(parents=True, exist_ok=True)
    return d


_DEFAULT_DB_URL = f"sqlite+aiosqlite:///{_resolve_db_dir() / 'emotion_nudge.db'}"


class Settings(BaseSettings):
    """All runtime configuration for the emotion-nudge engine.

    Values are read from environment variables first, then from a *.env* file
    located at the project root.  Every variable lives in the flat ``NUDGE_``
    namespace (stripped automatically by *pydantic-settings*).
    """

    model_config = SettingsConfigDict(
        env_prefix="NUDGE_",
        env_file=str(_PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Behaviour store ───────────────────────────────────────
    store_max_events: int = 5000
    store_reload_limit: int = 1000  # Per stream, when reloading from the database
    analysis_window_days: int = 30
    min_data_points: int = 20

    # ── Trigger thresholds ────────────────────────────────────
    emergency_threshold: float = 0.9  # anger / fear / sadness
    high_confidence_threshold: float = 0.8  # joy
    campaign_cooldown_seconds: int = 3600
    prediction_horizon_hours: int = 24  # Gateway's maximum future-send horizon
    prediction_confidence_threshold: float = 0.7

    # ── Rate limiting ─────────────────────────────────────────
    rate_limit_policy: Literal["unlimited", "daily_cap"] = "unlimited"
    max_daily_notifications: int = 5
    min_notification_interval_seconds: int = 3600

    # ── Periodic timers ───────────────────────────────────────
    scheduler_enabled: bool = True
    pattern_refresh_seconds: int = 3600
    optimization_interval_seconds: int = 86400
    cleanup_interval_seconds: int = 86400

    # ── Delivery (OneSignal REST) ─────────────────────────────
    onesignal_app_id: str = ""
    onesignal_rest_api_key: str = ""
    onesignal_api_url: str = "https://onesignal.com/api/v1"
    delivery_timeout: float = 10.0

    # ── Recipient ─────────────────────────────────────────────
    subscriber_id: str = ""
    recipient_opted_in: bool = True
    notification_permission_granted: bool = True

    # ── Locale ────────────────────────────────────────────────
    timezone: str = "UTC"

    # ── Database ──────────────────────────────────────────────
    database_url: str = _DEFAULT_DB_URL

    # ── API server ────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))

    # ── Logging ───────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Return a cached :class:`Settings` singleton."""
    return Settings()
