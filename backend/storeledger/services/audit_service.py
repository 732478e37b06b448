# Overview: Append-only audit trail for every ledger mutation.

from __future__ import annotations

import json
from typing import Any, Optional

from ..extensions import db
from ..models import AuditLogEntry
from ..time_utils import utcnow

"""
Audit trail invariants (authoritative)

- Append-only: no updates, no deletes.
- No domain logic here.
- Entries are flushed into the caller's atomic unit, never committed here,
  so they share the fate of the mutation they describe.
"""


def _snapshot(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def record_audit(
    *,
    entity_kind: str,
    entity_id: int | None,
    action: str,
    before: Any = None,
    after: Any = None,
    actor: str | None = None,
) -> AuditLogEntry:
    """
    Append one audit entry for a mutation.

    before/after are JSON-serializable snapshots (dicts from to_dict() or
    the caller's payload); strings are stored as-is.
    """
    entry = AuditLogEntry(
        occurred_at=utcnow(),
        actor=str(actor) if actor is not None else None,
        entity_kind=entity_kind,
        entity_id=entity_id,
        action=action,
        before_json=_snapshot(before),
        after_json=_snapshot(after),
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_audit_entries(
    entity_kind: str | None = None,
    entity_id: int | None = None,
    limit: int = 100,
) -> list[AuditLogEntry]:
    """Most recent audit entries first, optionally for one entity."""
    query = db.session.query(AuditLogEntry)
    if entity_kind is not None:
        query = query.filter_by(entity_kind=entity_kind)
    if entity_id is not None:
        query = query.filter_by(entity_id=entity_id)
    return query.order_by(AuditLogEntry.id.desc()).limit(limit).all()
