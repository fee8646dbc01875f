# backend/comptoir/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # "production" hides stack traces from 500 responses
    APP_ENV = os.environ.get("APP_ENV", "development")

    # SQLite DB stored in backend/instance/comptoir.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///comptoir.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "12"))
    CACHE_TTL_SECONDS = int(os.environ.get("CACHE_TTL_SECONDS", "300"))

    # Outbound webhooks. Database settings (webhook_enabled / webhook_url)
    # take precedence over WEBHOOK_URL for stock notifications.
    WEBHOOK_ENABLED = _env_bool("WEBHOOK_ENABLED", False)
    WEBHOOK_URL = os.environ.get("WEBHOOK_URL")
    SALES_WEBHOOK_URL = os.environ.get("SALES_WEBHOOK_URL")
    WEEKLY_WEBHOOK_URL = os.environ.get("WEEKLY_WEBHOOK_URL")
    WEBHOOK_TIMEOUT_SECONDS = float(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", "5"))
    # False delivers inline (tests); failures are swallowed either way
    NOTIFIER_ASYNC = _env_bool("NOTIFIER_ASYNC", True)

    EVENTS_KEEPALIVE_SECONDS = float(os.environ.get("EVENTS_KEEPALIVE_SECONDS", "15"))

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]
