# Overview: Service-layer operations for purchase intake; records purchases and raises stock.

"""
Purchase Engine

WHY: Goods received from a provider increase stock. A purchase and all its
stock increments are one unit: a failure on any line leaves no purchase and
no stock change behind.

Purchases have no register or account effect (providers are paid outside
this ledger).
"""

from __future__ import annotations

from datetime import datetime, timezone

from ..extensions import db
from ..models import Purchase, PurchaseItem
from ..errors import NotFoundError, ValidationError
from ..validation import clean_text, normalize_items, require_int
from ..time_utils import utcnow, parse_iso_datetime
from .audit_service import record_audit
from .catalog_service import get_provider
from .concurrency import run_atomic
from .stock_service import apply_stock_delta


def _parse_purchased_at(value) -> datetime:
    """Business date of the purchase; defaults to now."""
    if value is None:
        return utcnow()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError("Invalid purchased_at format")
        return dt or utcnow()

    raise ValidationError("Invalid purchased_at format")


def create_purchase(
    provider_id: int,
    items: list[dict],
    actor: str | None,
    purchased_at: datetime | str | None = None,
    notes: str | None = None,
) -> Purchase:
    """
    Record a purchase and add each line's quantity to its variant's stock.

    Args:
        provider_id: Provider the goods come from
        items: [{"variant_id", "quantity", "unit_cost_cents"}, ...]
        actor: Opaque identifier of who recorded it
        purchased_at: Business date (ISO-8601 or datetime); defaults to now
        notes: Free text

    Raises:
        ValidationError: Empty items, quantity <= 0 or unit cost < 0
        NotFoundError: Unknown provider or variant
    """
    provider_id = require_int("provider_id", provider_id, minimum=1)
    lines = normalize_items(items, amount_field="unit_cost_cents", min_amount=0)
    purchased_dt = _parse_purchased_at(purchased_at)
    notes = clean_text(notes)

    def _op():
        get_provider(provider_id)

        purchase = Purchase(
            provider_id=provider_id,
            purchased_at=purchased_dt,
            notes=notes,
            actor=actor,
        )
        db.session.add(purchase)
        db.session.flush()

        for line in lines:
            db.session.add(PurchaseItem(
                purchase_id=purchase.id,
                variant_id=line["variant_id"],
                quantity=line["quantity"],
                unit_cost_cents=line["unit_cost_cents"],
            ))
            apply_stock_delta(line["variant_id"], line["quantity"])

        record_audit(
            entity_kind="purchase",
            entity_id=purchase.id,
            action="create",
            after=purchase.to_dict(include_items=True),
            actor=actor,
        )
        return purchase

    return run_atomic(_op)


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError(f"Purchase {purchase_id} not found", details={"purchase_id": purchase_id})
    return purchase
