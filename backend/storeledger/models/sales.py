from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


SALE_STATUS_CONFIRMED = "CONFIRMED"
SALE_STATUS_CANCELLED = "CANCELLED"


class Sale(db.Model):
    """
    Sale document.

    LIFECYCLE:
    - CONFIRMED: stock decremented, payment routed (register or account)
    - CANCELLED: stock restored, payment reversed

    The transition is one-way and happens at most once. Apart from the
    cancellation fields, a sale is never modified after creation.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    actor = db.Column(db.String(64), nullable=True)

    # CASH, CARD, TRANSFER, STORE_CREDIT
    payment_method = db.Column(db.String(16), nullable=False)
    total_cents = db.Column(db.BigInteger, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_CONFIRMED, index=True)
    notes = db.Column(db.Text, nullable=True)

    # Register session the payment was booked against (None for store credit)
    cash_session_id = db.Column(db.Integer, db.ForeignKey("cash_register_sessions.id"), nullable=True, index=True)

    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.String(64), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "created_at": to_utc_z(self.created_at),
            "customer_id": self.customer_id,
            "actor": self.actor,
            "payment_method": self.payment_method,
            "total_cents": self.total_cents,
            "status": self.status,
            "notes": self.notes,
            "cash_session_id": self.cash_session_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by": self.cancelled_by,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in sorted(self.items, key=lambda i: i.id)]
        return data


class SaleItem(db.Model):
    """Line item on a sale. subtotal_cents == quantity * unit_price_cents."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("subtotal_cents = quantity * unit_price_cents", name="ck_sale_items_subtotal"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    subtotal_cents = db.Column(db.BigInteger, nullable=False)

    sale = db.relationship("Sale", backref=db.backref("items", lazy=True))
    variant = db.relationship("Variant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "subtotal_cents": self.subtotal_cents,
        }
