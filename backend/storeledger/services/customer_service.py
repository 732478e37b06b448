# Overview: Service-layer operations for customers; every customer gets an account.

from __future__ import annotations

from ..extensions import db
from ..models import Customer, CustomerAccount
from ..errors import NotFoundError, ValidationError
from ..validation import clean_text, require_int
from .audit_service import record_audit
from .concurrency import run_atomic


def create_customer(
    first_name: str,
    actor: str | None,
    last_name: str | None = None,
    phone: str | None = None,
    national_id: str | None = None,
    points: int = 0,
) -> Customer:
    """
    Create a customer and its store-credit account (balance 0) in one unit.

    WHY: Store-credit sales require an account; creating both together
    means no customer can exist without one.
    """
    first_name = clean_text(first_name, max_length=128)
    if not first_name:
        raise ValidationError("first_name required")
    points = require_int("points", points or 0, minimum=0)

    def _op():
        customer = Customer(
            first_name=first_name,
            last_name=clean_text(last_name, max_length=128),
            phone=clean_text(phone, max_length=32),
            national_id=clean_text(national_id, max_length=32),
            points=points,
        )
        db.session.add(customer)
        db.session.flush()

        db.session.add(CustomerAccount(customer_id=customer.id, balance_cents=0))
        db.session.flush()

        record_audit(entity_kind="customer", entity_id=customer.id, action="create",
                     after=customer.to_dict(), actor=actor)
        return customer

    return run_atomic(_op)


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.id.desc()).all()


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})
    return customer
