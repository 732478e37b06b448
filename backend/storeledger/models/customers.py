from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data.

    Every customer is created together with exactly one CustomerAccount
    (see services/customer_service.py), so store-credit sales always have
    a ledger to post to.
    """
    __tablename__ = "customers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    national_id = db.Column(db.String(32), nullable=True)
    points = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "national_id": self.national_id,
            "points": self.points,
            "created_at": to_utc_z(self.created_at),
        }


class CustomerAccount(db.Model):
    """
    Store-credit account: money the customer owes the business.

    INVARIANT: balance_cents == sum(debit_cents) - sum(credit_cents) over
    the account's movements. Only account_service.post_debit/post_credit
    write to balance_cents.

    CONCURRENCY: version_id is an optimistic-locking counter; two units
    updating the same balance cannot both commit.
    """
    __tablename__ = "customer_accounts"
    __table_args__ = (
        db.UniqueConstraint("customer_id", name="uq_customer_accounts_customer"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    balance_cents = db.Column(db.BigInteger, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("account", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class AccountMovement(db.Model):
    """
    Append-only customer account ledger line.

    A sale on store credit is a debit (customer owes more); a payment or a
    cancelled store-credit sale is a credit.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "account_movements"
    __table_args__ = (
        db.Index("ix_account_movements_account_occurred", "account_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("customer_accounts.id"), nullable=False, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    description = db.Column(db.String(255), nullable=True)

    debit_cents = db.Column(db.BigInteger, nullable=False, default=0)
    credit_cents = db.Column(db.BigInteger, nullable=False, default=0)

    # Generic pointer to what caused the movement (sale, sale_cancel, account_payment)
    ref_kind = db.Column(db.String(32), nullable=True)
    ref_id = db.Column(db.Integer, nullable=True)

    account = db.relationship("CustomerAccount", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "description": self.description,
            "debit_cents": self.debit_cents,
            "credit_cents": self.credit_cents,
            "ref_kind": self.ref_kind,
            "ref_id": self.ref_id,
        }
