# backend/app/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storefront.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storefront.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Business hours gate
    # The store operates on a single civil clock regardless of the viewer's zone.
    OPERATING_TIMEZONE = os.environ.get("OPERATING_TIMEZONE", "Asia/Jakarta")
    BUSINESS_HOURS_CACHE_TTL_SECONDS = int(os.environ.get("BUSINESS_HOURS_CACHE_TTL_SECONDS", "300"))
    # None -> <instance_path>/business_hours_fallback.json
    BUSINESS_HOURS_FALLBACK_PATH = os.environ.get("BUSINESS_HOURS_FALLBACK_PATH")
