# Overview: Read-only reports over stock, sales and register sessions.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Variant, Sale, CashMovement
from ..models.registers import TOTAL_COLUMNS
from ..errors import ValidationError
from ..time_utils import parse_iso_datetime
from .register_service import get_session


def _as_datetime(name: str, value) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        dt = parse_iso_datetime(value)
    except (TypeError, ValueError):
        dt = None
    if dt is None:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
    return dt


def stock_report() -> list[dict]:
    """One row per variant with its product, newest products first."""
    rows = db.session.query(
        Product.id, Product.name, Variant.id, Variant.color, Variant.size, Variant.stock_quantity
    ).join(Variant, Variant.product_id == Product.id).order_by(
        Product.id.desc(), Variant.id.desc()
    ).all()

    return [
        {
            "product_id": product_id,
            "name": name,
            "variant_id": variant_id,
            "color": color,
            "size": size,
            "stock_quantity": stock,
        }
        for product_id, name, variant_id, color, size, stock in rows
    ]


def sales_by_period(start, end) -> list[Sale]:
    """Sales created in [start, end] (inclusive), newest first."""
    start_dt = _as_datetime("start", start)
    end_dt = _as_datetime("end", end)
    if end_dt < start_dt:
        raise ValidationError("end must not be before start")

    return db.session.query(Sale).filter(
        Sale.created_at >= start_dt,
        Sale.created_at <= end_dt,
    ).order_by(Sale.id.desc()).all()


def cash_session_summary(session_id: int) -> dict:
    """
    Session totals next to the totals recomputed from its movements.

    `consistent` is False only if stored totals drifted from the movements.
    """
    session = get_session(session_id)
    sums = dict(
        db.session.query(CashMovement.method, func.coalesce(func.sum(CashMovement.amount_cents), 0))
        .filter_by(session_id=session_id)
        .group_by(CashMovement.method)
        .all()
    )

    recomputed = {method: int(sums.get(method, 0)) for method in TOTAL_COLUMNS}
    stored = {method: session.total_for(method) for method in TOTAL_COLUMNS}

    return {
        "session": session.to_dict(),
        "stored_totals": stored,
        "movement_totals": recomputed,
        "consistent": stored == recomputed,
    }
