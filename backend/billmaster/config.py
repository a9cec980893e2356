# backend/billmaster/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/billmaster.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///billmaster.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Used when no shop settings row exists yet
    INVOICE_PREFIX = os.environ.get("INVOICE_PREFIX", "INV")

    # Over-selling is allowed unless explicitly switched off
    ALLOW_NEGATIVE_STOCK = _env_flag("ALLOW_NEGATIVE_STOCK", True)

    # Window for the "due soon" credit dues filter
    DUE_SOON_DAYS = int(os.environ.get("DUE_SOON_DAYS", "7"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # AccessPolicy consulted by routes; None means the default role map
    ACCESS_POLICY = None
