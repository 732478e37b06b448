"""
Pytest fixtures for store ledger tests.

Provides an in-memory database, a per-test clean slate and small seed
fixtures (catalog, provider, customer with account, open register).
"""

import pytest

from storeledger import create_app
from storeledger.extensions import db
from storeledger.models import (
    Variant, CustomerAccount, CashRegisterSession, Sale, AuditLogEntry,
)
from storeledger.services import catalog_service, customer_service, register_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'ALLOW_NEGATIVE_STOCK': True,
        'WRITE_RETRIES': 3,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        app.config['ALLOW_NEGATIVE_STOCK'] = True


@pytest.fixture(scope='function')
def product(db_session):
    return catalog_service.create_product("Denim Jacket", actor="admin", model="DJ-01",
                                          list_price_cents=60000, cash_price_cents=50000)


@pytest.fixture(scope='function')
def variant(db_session, product):
    """Variant with 10 units in stock."""
    return catalog_service.create_variant(product.id, actor="admin", color="blue", size="M",
                                          sku="DJ-01-BLU-M", stock_quantity=10)


@pytest.fixture(scope='function')
def variant_b(db_session, product):
    """Second variant with 5 units in stock."""
    return catalog_service.create_variant(product.id, actor="admin", color="black", size="L",
                                          sku="DJ-01-BLK-L", stock_quantity=5)


@pytest.fixture(scope='function')
def provider(db_session):
    return catalog_service.create_provider("Textiles Norte", actor="admin", tax_id="30-1234-5")


@pytest.fixture(scope='function')
def customer(db_session):
    """Customer with a zero-balance account."""
    return customer_service.create_customer("Ana", actor="admin", last_name="Paz", phone="555-0101")


@pytest.fixture(scope='function')
def open_session(db_session):
    """Register opened with a zero float."""
    return register_service.open_register(0, actor="admin")


# =============================================================================
# READ HELPERS (always from the database, never from stale objects)
# =============================================================================

def stock_of(variant_id: int) -> int:
    db.session.expire_all()
    return db.session.get(Variant, variant_id).stock_quantity


def balance_of(customer_id: int) -> int:
    db.session.expire_all()
    return db.session.query(CustomerAccount).filter_by(customer_id=customer_id).one().balance_cents


def session_totals(session_id: int) -> dict:
    db.session.expire_all()
    session = db.session.get(CashRegisterSession, session_id)
    return {
        "CASH": session.cash_total_cents,
        "CARD": session.card_total_cents,
        "TRANSFER": session.transfer_total_cents,
    }


def count(model) -> int:
    return db.session.query(model).count()


def sale_audit_count() -> int:
    return db.session.query(AuditLogEntry).filter_by(entity_kind="sale").count()


def sale_count() -> int:
    return count(Sale)
