# Overview: External interface of the ledger core; plain records in, plain records out.

"""
Ledger operations

Each function takes plain values (a payload dict for the multi-field
writes) and returns a plain dict:

    {"ok": True, ...}                                   on success
    {"ok": False, "error": {"kind", "code", "message", "details"}}

`kind` is NotFound, InvalidState or ValidationError; `code` narrows it
(AlreadyOpen, NotOpen). A failed operation has rolled back completely.
Anything that is not a ledger error is logged and re-raised.

Must be called inside an application context.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Mapping

from flask import current_app

from .errors import LedgerError, ValidationError
from .services import account_service, purchase_service, register_service, sale_service


def _failure(error: LedgerError) -> dict:
    return {"ok": False, "error": error.to_dict()}


def ledger_operation(name: str):
    """Convert LedgerError into a failure record and log the outcome."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                result = f(*args, **kwargs)
            except LedgerError as e:
                current_app.logger.warning("%s failed: %s (%s)", name, e.message, e.to_dict()["code"])
                return _failure(e)
            except Exception:
                current_app.logger.exception("Unexpected error in %s", name)
                raise
            current_app.logger.info("%s ok %s", name, {k: v for k, v in result.items() if k.endswith("_id")})
            return {"ok": True, **result}
        return decorated_function
    return decorator


def _payload(data: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValidationError("payload must be an object")
    return data


# =============================================================================
# SALES
# =============================================================================

@ledger_operation("create_sale")
def create_sale(data: Mapping[str, Any]) -> dict:
    """
    Request body:
    {
        "customer_id": 7,                 (required for store_credit)
        "actor": "admin",
        "payment_method": "cash",         (cash, card, transfer, store_credit)
        "items": [{"variant_id": 1, "quantity": 2, "unit_price_cents": 50000}],
        "notes": "..."                    (optional)
    }
    """
    data = _payload(data)
    sale = sale_service.create_sale(
        actor=data.get("actor"),
        payment_method=data.get("payment_method"),
        items=data.get("items"),
        customer_id=data.get("customer_id"),
        notes=data.get("notes"),
    )
    return {"sale_id": sale.id, "total_cents": sale.total_cents}


@ledger_operation("cancel_sale")
def cancel_sale(sale_id: int, actor: str | None = None) -> dict:
    sale = sale_service.cancel_sale(sale_id, actor=actor)
    return {"sale_id": sale.id, "status": sale.status}


# =============================================================================
# PURCHASES
# =============================================================================

@ledger_operation("create_purchase")
def create_purchase(data: Mapping[str, Any]) -> dict:
    """
    Request body:
    {
        "provider_id": 1,
        "purchased_at": "2026-10-01T09:30:00Z",   (optional, defaults to now)
        "notes": "...",                            (optional)
        "items": [{"variant_id": 1, "quantity": 10, "unit_cost_cents": 20000}],
        "actor": "admin"
    }
    """
    data = _payload(data)
    purchase = purchase_service.create_purchase(
        provider_id=data.get("provider_id"),
        items=data.get("items"),
        actor=data.get("actor"),
        purchased_at=data.get("purchased_at"),
        notes=data.get("notes"),
    )
    return {"purchase_id": purchase.id}


# =============================================================================
# CUSTOMER ACCOUNTS
# =============================================================================

@ledger_operation("register_payment")
def register_payment(data: Mapping[str, Any]) -> dict:
    """
    Request body:
    {
        "customer_id": 7,
        "amount_cents": 30000,
        "method": "cash",           (cash, card, transfer)
        "description": "...",       (optional)
        "actor": "admin"
    }
    """
    data = _payload(data)
    movement = account_service.register_payment(
        customer_id=data.get("customer_id"),
        amount_cents=data.get("amount_cents"),
        method=data.get("method"),
        actor=data.get("actor"),
        description=data.get("description"),
    )
    return {"movement_id": movement.id, "account_id": movement.account_id}


@ledger_operation("list_movements")
def list_movements(customer_id: int) -> dict:
    return account_service.list_movements(customer_id)


# =============================================================================
# CASH REGISTER
# =============================================================================

@ledger_operation("open_register")
def open_register(opening_float_cents: int, actor: str | None) -> dict:
    session = register_service.open_register(opening_float_cents, actor)
    return {"session_id": session.id}


@ledger_operation("close_register")
def close_register(actor: str | None = None, notes: str | None = None) -> dict:
    session = register_service.close_register(actor=actor, notes=notes)
    return {"session_id": session.id, "session": session.to_dict()}


@ledger_operation("register_status")
def register_status() -> dict:
    return register_service.register_status()
