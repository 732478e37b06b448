# backend/storeledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/storeledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///storeledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Where `flask system backup` copies the database file
    BACKUP_DIR = os.environ.get("BACKUP_DIR")

    # Oversell policy: when False, sales are rejected if stock would go negative
    ALLOW_NEGATIVE_STOCK = _env_flag("STORELEDGER_ALLOW_NEGATIVE_STOCK", "true")

    # Attempts for a whole atomic unit on lock/optimistic-version conflicts
    WRITE_RETRIES = int(os.environ.get("STORELEDGER_WRITE_RETRIES", "3"))

    LOG_LEVEL = os.environ.get("STORELEDGER_LOG_LEVEL", "INFO").upper()
