# backend/pisonet/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pisonet.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pisonet.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Shared secret sent by the coin units when they request a harvest settlement.
    # Blank means every settlement request is rejected.
    HARVEST_API_KEY = os.environ.get("HARVEST_API_KEY", "")

    # Bearer token the external scheduler sends to POST /api/aggregate.
    CRON_SECRET = os.environ.get("CRON_SECRET", "")

    # Business day boundaries are a fixed UTC offset (Asia/Manila = +08:00, no DST).
    BUSINESS_UTC_OFFSET_MINUTES = int(os.environ.get("BUSINESS_UTC_OFFSET_MINUTES", "480"))

    HISTORY_DEFAULT_LIMIT = int(os.environ.get("HISTORY_DEFAULT_LIMIT", "30"))
