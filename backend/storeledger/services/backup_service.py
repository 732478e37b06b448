# Overview: Point-in-time copy of the SQLite database file.

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

from flask import current_app

from ..extensions import db
from ..errors import ValidationError
from ..time_utils import file_stamp


def _database_path() -> Path:
    url = db.engine.url
    if url.get_backend_name() != "sqlite" or not url.database or url.database == ":memory:":
        raise ValidationError("Backups are only supported for file-based SQLite databases")
    return Path(url.database)


def backup_dir() -> Path:
    configured = current_app.config.get("BACKUP_DIR")
    return Path(configured) if configured else Path(current_app.instance_path) / "backups"


def backup_now(dest_dir: str | os.PathLike | None = None) -> Path:
    """
    Copy the live database to <dest_dir>/storeledger-<stamp>.sqlite3.

    Uses SQLite's online backup API, so the copy is consistent even if a
    unit is committing at the same time.
    """
    source = _database_path()
    target_dir = Path(dest_dir) if dest_dir else backup_dir()
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / f"storeledger-{file_stamp()}.sqlite3"

    src = sqlite3.connect(str(source))
    try:
        dst = sqlite3.connect(str(target))
        try:
            src.backup(dst)
        finally:
            dst.close()
    finally:
        src.close()

    current_app.logger.info("Database backed up to %s", target)
    return target
