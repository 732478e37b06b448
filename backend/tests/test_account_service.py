# Overview: Pytest coverage for customer accounts and account payments.

import pytest

from storeledger.errors import NotFoundError, RegisterNotOpenError, ValidationError
from storeledger.models import AccountMovement, AuditLogEntry, CashMovement
from storeledger.services import account_service, sale_service

from conftest import balance_of, count, session_totals


def _buy_on_credit(customer, variant, amount):
    return sale_service.create_sale(
        "admin", "store_credit",
        [{"variant_id": variant.id, "quantity": 1, "unit_price_cents": amount}],
        customer_id=customer.id,
    )


class TestRegisterPayment:
    """Paying down a store-credit balance through the register."""

    def test_payment_scenario(self, db_session, open_session, variant, customer):
        _buy_on_credit(customer, variant, 30000)

        movement = account_service.register_payment(customer.id, 20000, "cash", actor="admin")

        assert movement.credit_cents == 20000
        assert movement.debit_cents == 0
        assert movement.ref_kind == "account_payment"
        assert balance_of(customer.id) == 10000
        assert session_totals(open_session.id) == {"CASH": 20000, "CARD": 0, "TRANSFER": 0}

        cash = db_session.query(CashMovement).one()
        assert cash.kind == "ACCOUNT_PAYMENT"
        assert cash.method == "CASH"
        assert cash.amount_cents == 20000
        assert cash.ref_id == movement.id

    def test_overpayment_leaves_credit_balance(self, db_session, open_session, customer):
        account_service.register_payment(customer.id, 5000, "transfer", actor="admin")

        assert balance_of(customer.id) == -5000
        assert session_totals(open_session.id)["TRANSFER"] == 5000

    def test_custom_description(self, db_session, open_session, customer):
        movement = account_service.register_payment(
            customer.id, 100, "card", actor="admin", description="Cuota 1/3"
        )
        assert movement.description == "Cuota 1/3"

    @pytest.mark.parametrize("amount", [0, -100, "abc", 10.5, None])
    def test_invalid_amount(self, db_session, open_session, customer, amount):
        with pytest.raises(ValidationError):
            account_service.register_payment(customer.id, amount, "cash", actor="admin")

        assert count(AccountMovement) == 0
        assert session_totals(open_session.id)["CASH"] == 0

    def test_store_credit_is_not_a_payment_method(self, db_session, open_session, customer):
        with pytest.raises(ValidationError):
            account_service.register_payment(customer.id, 100, "store_credit", actor="admin")

    def test_unknown_customer(self, db_session, open_session):
        with pytest.raises(NotFoundError):
            account_service.register_payment(777, 100, "cash", actor="admin")
        assert count(CashMovement) == 0

    def test_register_closed(self, db_session, variant, customer):
        _buy_on_credit(customer, variant, 30000)

        with pytest.raises(RegisterNotOpenError):
            account_service.register_payment(customer.id, 1000, "cash", actor="admin")

        assert balance_of(customer.id) == 30000
        assert count(AccountMovement) == 1

    def test_payment_is_audited(self, db_session, open_session, customer):
        account_service.register_payment(customer.id, 2500, "card", actor="cashier")

        entry = db_session.query(AuditLogEntry).filter_by(entity_kind="customer_account").one()
        data = entry.to_dict()
        assert data["action"] == "payment"
        assert data["actor"] == "cashier"
        assert data["before"]["balance_cents"] == 0
        assert data["after"]["balance_cents"] == -2500
        assert data["after"]["method"] == "CARD"
        assert data["after"]["cash_session_id"] == open_session.id


class TestListMovements:

    def test_newest_first_with_balance(self, db_session, open_session, variant, customer):
        _buy_on_credit(customer, variant, 30000)
        account_service.register_payment(customer.id, 10000, "cash", actor="admin")
        _buy_on_credit(customer, variant, 5000)

        result = account_service.list_movements(customer.id)

        assert result["account"]["balance_cents"] == 25000
        assert [(m["debit_cents"], m["credit_cents"]) for m in result["movements"]] == [
            (5000, 0),
            (0, 10000),
            (30000, 0),
        ]

    def test_balance_matches_movements(self, db_session, open_session, variant, customer):
        for amount in (1200, 3400, 560):
            _buy_on_credit(customer, variant, amount)
        account_service.register_payment(customer.id, 2000, "transfer", actor="admin")

        result = account_service.list_movements(customer.id)
        net = sum(m["debit_cents"] - m["credit_cents"] for m in result["movements"])
        assert result["account"]["balance_cents"] == net == 3160

    def test_new_customer_has_empty_account(self, db_session, customer):
        result = account_service.list_movements(customer.id)
        assert result["account"]["balance_cents"] == 0
        assert result["movements"] == []

    def test_unknown_customer(self, db_session):
        with pytest.raises(NotFoundError):
            account_service.list_movements(31337)
