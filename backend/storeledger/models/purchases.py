from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Purchase(db.Model):
    """
    Stock intake from a provider.

    Purchases only move stock; payment to the provider happens outside
    this ledger, so there is no register or account effect.
    """
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("providers.id"), nullable=False, index=True)

    # Business date of the purchase (caller-supplied or "now")
    purchased_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)
    actor = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    provider = db.relationship("Provider", backref=db.backref("purchases", lazy=True))

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "provider_id": self.provider_id,
            "purchased_at": to_utc_z(self.purchased_at),
            "notes": self.notes,
            "actor": self.actor,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in sorted(self.items, key=lambda i: i.id)]
        return data


class PurchaseItem(db.Model):
    """Line item on a purchase (ordered by id)."""
    __tablename__ = "purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("variants.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", backref=db.backref("items", lazy=True))
    variant = db.relationship("Variant")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
        }
