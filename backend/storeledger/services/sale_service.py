"""
Sale Engine

WHY: A sale touches every hot aggregate at once: variant stock, the open
register session or the customer's account, and the audit trail. All of
it happens in one atomic unit, so a failure at any step leaves stock and
money exactly as they were.

LIFECYCLE:
- CONFIRMED: created; stock decremented; payment routed
- CANCELLED: stock restored; payment reversed (one-way, at most once)

PAYMENT ROUTING:
- STORE_CREDIT: debit on the customer's account (balance += total)
- CASH / CARD / TRANSFER: SALE movement (+total) in the open register
  session, under that method's running total

The payment target (account or open session) is resolved once at the
start of the unit and passed explicitly to the routing step.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Sale, SaleItem, Customer, CustomerAccount, CashRegisterSession
from ..models.sales import SALE_STATUS_CONFIRMED, SALE_STATUS_CANCELLED
from ..models.registers import MOVEMENT_SALE, MOVEMENT_CANCELLATION
from ..errors import NotFoundError
from ..validation import clean_text, lines_total, normalize_items, normalize_method, require_int
from ..time_utils import utcnow
from .account_service import get_account, post_credit, post_debit
from .audit_service import record_audit
from .concurrency import lock_for_update, run_atomic
from .register_service import CASH_METHODS, record_cash_movement, require_open_session
from .stock_service import apply_stock_delta, ensure_available, quantities_by_variant


METHOD_STORE_CREDIT = "STORE_CREDIT"
SALE_METHODS = CASH_METHODS + (METHOD_STORE_CREDIT,)

REF_SALE = "sale"
REF_SALE_CANCEL = "sale_cancel"


# =============================================================================
# PAYMENT ROUTING
# =============================================================================

def _resolve_payment_target(
    method: str,
    customer_id: int | None,
) -> tuple[CustomerAccount | None, CashRegisterSession | None]:
    """Locked account for store credit, otherwise the locked open session."""
    if method == METHOD_STORE_CREDIT:
        if customer_id is None:
            raise NotFoundError("Store credit sales require a customer account")
        return get_account(customer_id, for_update=True), None
    return None, require_open_session()


def _route_sale_payment(
    sale: Sale,
    account: CustomerAccount | None,
    session: CashRegisterSession | None,
) -> None:
    if account is not None:
        post_debit(
            account,
            sale.total_cents,
            "Sale on store credit",
            ref_kind=REF_SALE,
            ref_id=sale.id,
        )
        return

    record_cash_movement(
        session,
        kind=MOVEMENT_SALE,
        method=sale.payment_method,
        amount_cents=sale.total_cents,
        ref_kind=REF_SALE,
        ref_id=sale.id,
        description="Sale of goods",
    )


def _reverse_sale_payment(
    sale: Sale,
    account: CustomerAccount | None,
    session: CashRegisterSession | None,
) -> None:
    if account is not None:
        post_credit(
            account,
            sale.total_cents,
            "Sale cancelled",
            ref_kind=REF_SALE_CANCEL,
            ref_id=sale.id,
        )
        return

    record_cash_movement(
        session,
        kind=MOVEMENT_CANCELLATION,
        method=sale.payment_method,
        amount_cents=-sale.total_cents,
        ref_kind=REF_SALE,
        ref_id=sale.id,
        description="Sale cancelled",
    )


# =============================================================================
# SALE LIFECYCLE
# =============================================================================

def create_sale(
    actor: str | None,
    payment_method: str,
    items: list[dict],
    customer_id: int | None = None,
    notes: str | None = None,
) -> Sale:
    """
    Create a confirmed sale.

    Args:
        actor: Opaque identifier of the seller
        payment_method: cash, card, transfer or store_credit
        items: [{"variant_id", "quantity", "unit_price_cents"}, ...]
        customer_id: Required for store credit, optional otherwise
        notes: Free text

    Returns:
        The confirmed Sale (total_cents = sum of line subtotals)

    Raises:
        ValidationError: Bad items/method, or insufficient stock when
            overselling is disabled
        NotFoundError: Unknown customer/account or variant
        RegisterNotOpenError: Register-routed method with no open session
    """
    method = normalize_method(payment_method, SALE_METHODS)
    lines = normalize_items(items, amount_field="unit_price_cents", min_amount=0)
    total_cents = lines_total(lines, amount_field="unit_price_cents")
    if customer_id is not None:
        customer_id = require_int("customer_id", customer_id, minimum=1)
    notes = clean_text(notes)
    allow_negative = current_app.config.get("ALLOW_NEGATIVE_STOCK", True)

    def _op():
        account, session = _resolve_payment_target(method, customer_id)
        if customer_id is not None and account is None and not db.session.get(Customer, customer_id):
            raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})

        if not allow_negative:
            ensure_available(quantities_by_variant(lines))

        sale = Sale(
            created_at=utcnow(),
            customer_id=customer_id,
            actor=actor,
            payment_method=method,
            total_cents=total_cents,
            status=SALE_STATUS_CONFIRMED,
            notes=notes,
            cash_session_id=session.id if session is not None else None,
        )
        db.session.add(sale)
        db.session.flush()

        for line in lines:
            db.session.add(SaleItem(
                sale_id=sale.id,
                variant_id=line["variant_id"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                subtotal_cents=line["quantity"] * line["unit_price_cents"],
            ))
            apply_stock_delta(line["variant_id"], -line["quantity"])

        _route_sale_payment(sale, account, session)

        record_audit(
            entity_kind="sale",
            entity_id=sale.id,
            action="create",
            after=sale.to_dict(include_items=True),
            actor=actor,
        )
        return sale

    return run_atomic(_op)


def cancel_sale(sale_id: int, actor: str | None = None) -> Sale:
    """
    Cancel a confirmed sale, restoring stock and reversing its payment.

    Idempotent: cancelling an already cancelled sale returns it unchanged.
    Register-paid sales are reversed against the session open NOW, which
    may differ from the one that took the payment.

    Raises:
        NotFoundError: Sale not found
        RegisterNotOpenError: Register-paid sale with no open session
    """
    sale_id = require_int("sale_id", sale_id, minimum=1)

    def _op():
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale:
            raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})

        if sale.status == SALE_STATUS_CANCELLED:
            return sale

        account, session = _resolve_payment_target(sale.payment_method, sale.customer_id)
        before = sale.to_dict(include_items=True)
        who = actor or sale.actor

        items = db.session.query(SaleItem).filter_by(sale_id=sale.id).order_by(SaleItem.id).all()
        for item in items:
            apply_stock_delta(item.variant_id, item.quantity)

        _reverse_sale_payment(sale, account, session)

        sale.status = SALE_STATUS_CANCELLED
        sale.cancelled_at = utcnow()
        sale.cancelled_by = who
        db.session.flush()

        record_audit(
            entity_kind="sale",
            entity_id=sale.id,
            action="cancel",
            before=before,
            after=sale.to_dict(),
            actor=who,
        )
        return sale

    return run_atomic(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale
