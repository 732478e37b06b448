from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z


class AuditLogEntry(db.Model):
    """
    Append-only record of who changed what.

    Written inside the same DB transaction as the mutation it records, so a
    rolled-back operation leaves no audit entry behind.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        db.Index("ix_audit_log_entity", "entity_kind", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    # Opaque actor identifier, stored verbatim
    actor = db.Column(db.String(64), nullable=True, index=True)

    entity_kind = db.Column(db.String(64), nullable=False)  # e.g., sale, purchase, customer_account
    entity_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(32), nullable=False, index=True)  # create, cancel, payment, open, close

    # JSON snapshots (text)
    before_json = db.Column(db.Text, nullable=True)
    after_json = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "occurred_at": to_utc_z(self.occurred_at),
            "actor": self.actor,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "action": self.action,
            "before": json.loads(self.before_json) if self.before_json else None,
            "after": json.loads(self.after_json) if self.after_json else None,
        }
