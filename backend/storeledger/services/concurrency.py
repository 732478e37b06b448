# Overview: Atomic units, row locking and retry for multi-aggregate ledger writes.

from __future__ import annotations

import time
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

"""
Atomic unit rules (authoritative)

- A unit either commits every mutation it made (stock, balances, register
  totals, movements, audit entries) or none of them.
- Any exception inside the unit rolls it back and is re-raised unchanged.
- On SQLite the unit starts with BEGIN IMMEDIATE, which takes the write lock
  up front: reads made inside the unit ("is a session open?") cannot be
  invalidated by another writer before commit.
- Units nest: an inner atomic() joins the outer one and never commits.
"""

_DEPTH_KEY = "storeledger.atomic_depth"


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; there the BEGIN IMMEDIATE
    taken by atomic() already serializes writers.
    """
    return query.with_for_update()


def _begin_immediate() -> None:
    if db.engine.dialect.name != "sqlite":
        return
    raw = db.session.connection().connection.dbapi_connection
    if raw is not None and not raw.in_transaction:
        db.session.execute(text("BEGIN IMMEDIATE"))


@contextmanager
def atomic():
    """Run the enclosed block as one all-or-nothing unit."""
    session = db.session
    depth = session.info.get(_DEPTH_KEY, 0)
    if depth:
        session.info[_DEPTH_KEY] = depth + 1
        try:
            yield session
        finally:
            session.info[_DEPTH_KEY] = depth
        return

    session.info[_DEPTH_KEY] = 1
    try:
        _begin_immediate()
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.info[_DEPTH_KEY] = 0


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.05):
    """
    Execute a whole atomic unit, retrying on concurrency-related failures.

    Retries on OperationalError (database locked) and StaleDataError
    (optimistic version conflict on a session or account row). The unit has
    already been rolled back by atomic() when these surface, so a retry
    starts from committed state. Ledger errors are never retried.
    """
    if attempts is None:
        attempts = current_app.config.get("WRITE_RETRIES", 3)
    attempts = max(1, attempts)

    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning("Write conflict, retrying unit (attempt %d/%d)", attempt + 2, attempts)
            time.sleep(backoff_base * (2 ** attempt))


def run_atomic(func, *, attempts: int | None = None):
    """Shorthand: run `func` inside atomic(), with retry on write conflicts."""
    def _unit():
        with atomic():
            return func()
    return run_with_retry(_unit, attempts=attempts)
