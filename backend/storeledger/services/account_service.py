# Overview: Service-layer operations for customer store-credit accounts.

"""
Customer Account Ledger

WHY: Customers may buy on store credit and pay later. Each customer has
one account whose balance is what they owe; every change to it is an
append-only movement.

INVARIANT: balance_cents == sum(debit_cents) - sum(credit_cents).
post_debit / post_credit are the only writers of balance_cents, and they
always write the matching movement in the same unit.
"""

from __future__ import annotations

from ..extensions import db
from ..models import CustomerAccount, AccountMovement
from ..models.registers import MOVEMENT_ACCOUNT_PAYMENT
from ..errors import NotFoundError
from ..validation import MAX_AMOUNT_CENTS, clean_text, normalize_method, require_int
from ..time_utils import utcnow
from .audit_service import record_audit
from .concurrency import lock_for_update, run_atomic
from .register_service import CASH_METHODS, record_cash_movement, require_open_session


REF_ACCOUNT_PAYMENT = "account_payment"


def get_account(customer_id: int, *, for_update: bool = False) -> CustomerAccount:
    """
    Account for a customer.

    Raises:
        NotFoundError: If the customer has no account
    """
    query = db.session.query(CustomerAccount).filter_by(customer_id=customer_id)
    if for_update:
        query = lock_for_update(query)
    account = query.first()
    if not account:
        raise NotFoundError(
            f"No account found for customer {customer_id}",
            details={"customer_id": customer_id},
        )
    return account


def post_debit(
    account: CustomerAccount,
    amount_cents: int,
    description: str,
    *,
    ref_kind: str | None = None,
    ref_id: int | None = None,
) -> AccountMovement:
    """Customer owes more: debit movement, balance += amount."""
    return _post(account, debit_cents=amount_cents, credit_cents=0,
                 description=description, ref_kind=ref_kind, ref_id=ref_id)


def post_credit(
    account: CustomerAccount,
    amount_cents: int,
    description: str,
    *,
    ref_kind: str | None = None,
    ref_id: int | None = None,
) -> AccountMovement:
    """Customer owes less: credit movement, balance -= amount."""
    return _post(account, debit_cents=0, credit_cents=amount_cents,
                 description=description, ref_kind=ref_kind, ref_id=ref_id)


def _post(account, *, debit_cents, credit_cents, description, ref_kind, ref_id) -> AccountMovement:
    movement = AccountMovement(
        account_id=account.id,
        occurred_at=utcnow(),
        description=description,
        debit_cents=debit_cents,
        credit_cents=credit_cents,
        ref_kind=ref_kind,
        ref_id=ref_id,
    )
    db.session.add(movement)
    account.balance_cents = (account.balance_cents or 0) + debit_cents - credit_cents
    db.session.flush()
    return movement


def register_payment(
    customer_id: int,
    amount_cents: int,
    method: str,
    actor: str | None,
    description: str | None = None,
) -> AccountMovement:
    """
    Record a customer paying down their account.

    The money goes into the open register under `method`, so only
    register methods (cash, card, transfer) are accepted.

    Raises:
        ValidationError: Non-positive amount or non-register method
        NotFoundError: Customer has no account
        RegisterNotOpenError: No open register session
    """
    customer_id = require_int("customer_id", customer_id, minimum=1)
    amount_cents = require_int("amount_cents", amount_cents, minimum=1, maximum=MAX_AMOUNT_CENTS)
    method = normalize_method(method, CASH_METHODS)
    description = clean_text(description, max_length=255)

    def _op():
        account = get_account(customer_id, for_update=True)
        session = require_open_session()
        before = account.to_dict()

        movement = post_credit(
            account,
            amount_cents,
            description or f"Account payment ({method.lower()})",
            ref_kind=REF_ACCOUNT_PAYMENT,
        )

        record_cash_movement(
            session,
            kind=MOVEMENT_ACCOUNT_PAYMENT,
            method=method,
            amount_cents=amount_cents,
            ref_kind=REF_ACCOUNT_PAYMENT,
            ref_id=movement.id,
            description=description or "Account payment",
        )

        record_audit(
            entity_kind="customer_account",
            entity_id=account.id,
            action="payment",
            before=before,
            after={
                "customer_id": customer_id,
                "amount_cents": amount_cents,
                "method": method,
                "description": description,
                "balance_cents": account.balance_cents,
                "cash_session_id": session.id,
            },
            actor=actor,
        )
        return movement

    return run_atomic(_op)


def list_movements(customer_id: int) -> dict:
    """
    Account plus its movements, most recent first.

    Raises:
        NotFoundError: Customer has no account
    """
    account = get_account(customer_id)
    movements = db.session.query(AccountMovement).filter_by(
        account_id=account.id
    ).order_by(AccountMovement.id.desc()).all()

    return {
        "account": account.to_dict(),
        "movements": [m.to_dict() for m in movements],
    }
