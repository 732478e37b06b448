from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data (name, model, reference prices).

    Stock is NOT tracked here: each product is sold through one or more
    variants, and each variant owns its own stock counter.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    model = db.Column(db.String(128), nullable=True)

    # Reference prices in cents; sale lines carry their own unit price
    cost_cents = db.Column(db.Integer, nullable=False, default=0)
    list_price_cents = db.Column(db.Integer, nullable=False, default=0)
    cash_price_cents = db.Column(db.Integer, nullable=False, default=0)
    transfer_price_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "model": self.model,
            "cost_cents": self.cost_cents,
            "list_price_cents": self.list_price_cents,
            "cash_price_cents": self.cash_price_cents,
            "transfer_price_cents": self.transfer_price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Variant(db.Model):
    """
    Stock-keeping unit: one product in one color/size.

    INVARIANT: stock_quantity is only changed by sale creation, sale
    cancellation and purchase intake (see services/stock_service.py).
    It may go negative when overselling is allowed.
    """
    __tablename__ = "variants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    color = db.Column(db.String(64), nullable=True)
    size = db.Column(db.String(32), nullable=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("variants", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "color": self.color,
            "size": self.size,
            "sku": self.sku,
            "stock_quantity": self.stock_quantity,
            "created_at": to_utc_z(self.created_at),
        }


class Provider(db.Model):
    """Supplier that purchases are received from."""
    __tablename__ = "providers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    tax_id = db.Column(db.String(32), nullable=True)
    contact = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "tax_id": self.tax_id,
            "contact": self.contact,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
