# Overview: Variant stock counters; signed deltas applied inside the caller's unit.

from __future__ import annotations

from ..extensions import db
from ..models import Variant
from ..errors import NotFoundError, ValidationError


def get_variant(variant_id: int) -> Variant:
    variant = db.session.get(Variant, variant_id)
    if not variant:
        raise NotFoundError(f"Variant {variant_id} not found", details={"variant_id": variant_id})
    return variant


def apply_stock_delta(variant_id: int, delta: int) -> Variant:
    """
    Add a signed quantity to a variant's stock.

    The update is expressed in SQL (stock = stock + delta) so concurrent
    units cannot lose each other's changes. No floor check: callers that
    must not oversell call ensure_available() first.
    """
    variant = get_variant(variant_id)
    variant.stock_quantity = Variant.stock_quantity + delta
    db.session.flush()
    return variant


def quantities_by_variant(items) -> dict[int, int]:
    """Sum line quantities per variant (a variant may appear on several lines)."""
    totals: dict[int, int] = {}
    for item in items:
        totals[item["variant_id"]] = totals.get(item["variant_id"], 0) + item["quantity"]
    return totals


def ensure_available(variant_totals: dict[int, int]) -> None:
    """Raise ValidationError listing every variant without enough stock."""
    insufficient = []
    for variant_id, qty in variant_totals.items():
        on_hand = get_variant(variant_id).stock_quantity
        if on_hand < qty:
            insufficient.append({
                "variant_id": variant_id,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise ValidationError(
            "Insufficient stock for sale",
            details={"items": insufficient},
        )
