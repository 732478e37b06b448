from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SESSION_STATUS_OPEN = "OPEN"
SESSION_STATUS_CLOSED = "CLOSED"

METHOD_CASH = "CASH"
METHOD_CARD = "CARD"
METHOD_TRANSFER = "TRANSFER"

# Payment method -> running total column on CashRegisterSession
TOTAL_COLUMNS = {
    METHOD_CASH: "cash_total_cents",
    METHOD_CARD: "card_total_cents",
    METHOD_TRANSFER: "transfer_total_cents",
}

MOVEMENT_SALE = "SALE"
MOVEMENT_CANCELLATION = "CANCELLATION"
MOVEMENT_ACCOUNT_PAYMENT = "ACCOUNT_PAYMENT"


class CashRegisterSession(db.Model):
    """
    The store's cash register session (one per working period).

    LIFECYCLE:
    - OPEN: cash-routed payments accumulate into the per-method totals
    - CLOSED: totals frozen at their final values

    INVARIANTS:
    - At most one session is OPEN (partial unique index below).
    - <method>_total_cents == sum(CashMovement.amount_cents) of this
      session for that method. Only register_service.record_cash_movement
      writes the totals.
    """
    __tablename__ = "cash_register_sessions"
    __table_args__ = (
        db.Index(
            "uq_cash_register_sessions_one_open",
            "status",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    status = db.Column(db.String(16), nullable=False, default=SESSION_STATUS_OPEN, index=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    opened_by = db.Column(db.String(64), nullable=True)
    opening_float_cents = db.Column(db.Integer, nullable=False, default=0)

    # Running totals per payment method (signed cents)
    cash_total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    card_total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    transfer_total_cents = db.Column(db.BigInteger, nullable=False, default=0)

    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def total_for(self, method: str) -> int:
        return getattr(self, TOTAL_COLUMNS[method]) or 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status,
            "opened_at": to_utc_z(self.opened_at),
            "opened_by": self.opened_by,
            "opening_float_cents": self.opening_float_cents,
            "totals": {
                "cash": self.cash_total_cents,
                "card": self.card_total_cents,
                "transfer": self.transfer_total_cents,
            },
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "closed_by": self.closed_by,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class CashMovement(db.Model):
    """
    Append-only register movement.

    KINDS:
    - SALE: payment received for a sale (positive)
    - CANCELLATION: reversal of a cancelled sale (negative)
    - ACCOUNT_PAYMENT: customer paying down store credit (positive)

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "cash_movements"
    __table_args__ = (
        db.Index("ix_cash_movements_session_method", "session_id", "method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("cash_register_sessions.id"), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    kind = db.Column(db.String(32), nullable=False, index=True)
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)

    ref_kind = db.Column(db.String(32), nullable=True)
    ref_id = db.Column(db.Integer, nullable=True)
    description = db.Column(db.String(255), nullable=True)

    session = db.relationship("CashRegisterSession", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "kind": self.kind,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "ref_kind": self.ref_kind,
            "ref_id": self.ref_id,
            "description": self.description,
        }
