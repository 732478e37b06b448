# Overview: Service-layer operations for products, variants and providers.

"""
Catalog Service

Plain record creation and listing. Each create runs as its own atomic unit
with an audit entry. Stock is never edited here after creation: it moves
only through sales, cancellations and purchases.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, Variant, Provider
from ..errors import NotFoundError, ValidationError
from ..validation import MAX_AMOUNT_CENTS, clean_text, require_int
from .audit_service import record_audit
from .concurrency import run_atomic


def _require_name(value) -> str:
    name = clean_text(value, max_length=255)
    if not name:
        raise ValidationError("name required")
    return name


def _price(name: str, value) -> int:
    return require_int(name, value or 0, minimum=0, maximum=MAX_AMOUNT_CENTS)


# =============================================================================
# PRODUCTS
# =============================================================================

def create_product(
    name: str,
    actor: str | None,
    model: str | None = None,
    cost_cents: int = 0,
    list_price_cents: int = 0,
    cash_price_cents: int = 0,
    transfer_price_cents: int = 0,
) -> Product:
    product = Product(
        name=_require_name(name),
        model=clean_text(model, max_length=128),
        cost_cents=_price("cost_cents", cost_cents),
        list_price_cents=_price("list_price_cents", list_price_cents),
        cash_price_cents=_price("cash_price_cents", cash_price_cents),
        transfer_price_cents=_price("transfer_price_cents", transfer_price_cents),
        is_active=True,
    )

    def _op():
        db.session.add(product)
        db.session.flush()
        record_audit(entity_kind="product", entity_id=product.id, action="create",
                     after=product.to_dict(), actor=actor)
        return product

    return run_atomic(_op)


def list_products() -> list[Product]:
    """Active products, newest first."""
    return db.session.query(Product).filter_by(is_active=True).order_by(Product.id.desc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


# =============================================================================
# VARIANTS
# =============================================================================

def create_variant(
    product_id: int,
    actor: str | None,
    color: str | None = None,
    size: str | None = None,
    sku: str | None = None,
    stock_quantity: int = 0,
) -> Variant:
    """
    Create a variant with its initial stock count.

    Raises:
        NotFoundError: Unknown product
        ValidationError: Duplicate SKU
    """
    stock_quantity = require_int("stock_quantity", stock_quantity or 0)

    def _op():
        get_product(product_id)
        variant = Variant(
            product_id=product_id,
            color=clean_text(color, max_length=64),
            size=clean_text(size, max_length=32),
            sku=clean_text(sku, max_length=64),
            stock_quantity=stock_quantity,
        )
        db.session.add(variant)
        try:
            db.session.flush()
        except IntegrityError:
            raise ValidationError(f"SKU '{sku}' already exists", details={"sku": sku})

        record_audit(entity_kind="variant", entity_id=variant.id, action="create",
                     after=variant.to_dict(), actor=actor)
        return variant

    return run_atomic(_op)


def list_variants(product_id: int) -> list[Variant]:
    """Variants of a product, newest first."""
    return db.session.query(Variant).filter_by(product_id=product_id).order_by(Variant.id.desc()).all()


# =============================================================================
# PROVIDERS
# =============================================================================

def create_provider(
    name: str,
    actor: str | None,
    tax_id: str | None = None,
    contact: str | None = None,
    notes: str | None = None,
) -> Provider:
    provider = Provider(
        name=_require_name(name),
        tax_id=clean_text(tax_id, max_length=32),
        contact=clean_text(contact, max_length=255),
        notes=clean_text(notes),
    )

    def _op():
        db.session.add(provider)
        db.session.flush()
        record_audit(entity_kind="provider", entity_id=provider.id, action="create",
                     after=provider.to_dict(), actor=actor)
        return provider

    return run_atomic(_op)


def list_providers() -> list[Provider]:
    return db.session.query(Provider).order_by(Provider.id.desc()).all()


def get_provider(provider_id: int) -> Provider:
    provider = db.session.get(Provider, provider_id)
    if not provider:
        raise NotFoundError(f"Provider {provider_id} not found", details={"provider_id": provider_id})
    return provider
