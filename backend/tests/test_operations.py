# Overview: Pytest coverage for the operation facade's success and failure records.

import logging

import pytest

from storeledger import operations

from conftest import balance_of, sale_count, stock_of


class TestSaleOperations:

    def test_create_and_cancel(self, db_session, open_session, variant):
        result = operations.create_sale({
            "actor": "admin",
            "payment_method": "cash",
            "items": [{"variant_id": variant.id, "quantity": 2, "unit_price_cents": 50000}],
        })

        assert result["ok"] is True
        assert result["total_cents"] == 100000

        cancelled = operations.cancel_sale(result["sale_id"], actor="admin")
        assert cancelled == {"ok": True, "sale_id": result["sale_id"], "status": "CANCELLED"}

    def test_register_closed_failure_record(self, db_session, variant):
        result = operations.create_sale({
            "actor": "admin",
            "payment_method": "card",
            "items": [{"variant_id": variant.id, "quantity": 1, "unit_price_cents": 100}],
        })

        assert result["ok"] is False
        assert result["error"]["kind"] == "InvalidState"
        assert result["error"]["code"] == "NotOpen"
        assert result["error"]["message"]
        assert sale_count() == 0
        assert stock_of(variant.id) == 10

    def test_validation_failure_record(self, db_session, open_session, variant):
        result = operations.create_sale({
            "actor": "admin",
            "payment_method": "cash",
            "items": [{"variant_id": variant.id, "quantity": 0, "unit_price_cents": 100}],
        })

        assert result["ok"] is False
        assert result["error"]["kind"] == "ValidationError"
        assert result["error"]["code"] == "ValidationError"

    def test_oversized_line_is_a_failure_record(self, db_session, open_session, variant):
        result = operations.create_sale({
            "actor": "admin",
            "payment_method": "cash",
            "items": [{"variant_id": variant.id, "quantity": 10**10, "unit_price_cents": 999_999_999}],
        })

        assert result["ok"] is False
        assert result["error"]["kind"] == "ValidationError"
        assert sale_count() == 0
        assert stock_of(variant.id) == 10

    def test_payload_must_be_a_mapping(self, db_session):
        result = operations.create_sale(["not", "a", "dict"])
        assert result["error"]["kind"] == "ValidationError"

    def test_store_credit_without_customer(self, db_session, variant):
        result = operations.create_sale({
            "actor": "admin",
            "payment_method": "store_credit",
            "items": [{"variant_id": variant.id, "quantity": 1, "unit_price_cents": 100}],
        })
        assert result["error"]["kind"] == "NotFound"

    def test_cancel_unknown_sale(self, db_session):
        result = operations.cancel_sale(404)
        assert result["ok"] is False
        assert result["error"]["kind"] == "NotFound"
        assert result["error"]["details"] == {"sale_id": 404}


class TestPurchaseOperations:

    def test_create_purchase(self, db_session, provider, variant):
        result = operations.create_purchase({
            "provider_id": provider.id,
            "purchased_at": "2026-10-01T09:30:00Z",
            "items": [{"variant_id": variant.id, "quantity": 10, "unit_cost_cents": 20000}],
            "actor": "admin",
        })

        assert result["ok"] is True
        assert result["purchase_id"]
        assert stock_of(variant.id) == 20

    def test_create_purchase_failure(self, db_session, provider, variant):
        result = operations.create_purchase({
            "provider_id": provider.id,
            "items": [{"variant_id": variant.id, "quantity": -1, "unit_cost_cents": 20000}],
        })
        assert result["error"]["kind"] == "ValidationError"
        assert stock_of(variant.id) == 10


class TestAccountOperations:

    def test_payment_and_movements(self, db_session, open_session, variant, customer):
        operations.create_sale({
            "actor": "admin",
            "customer_id": customer.id,
            "payment_method": "store_credit",
            "items": [{"variant_id": variant.id, "quantity": 1, "unit_price_cents": 30000}],
        })

        paid = operations.register_payment({
            "customer_id": customer.id,
            "amount_cents": 20000,
            "method": "cash",
            "actor": "admin",
        })
        assert paid["ok"] is True
        assert paid["movement_id"]

        listed = operations.list_movements(customer.id)
        assert listed["ok"] is True
        assert listed["account"]["balance_cents"] == 10000
        assert len(listed["movements"]) == 2
        assert balance_of(customer.id) == 10000

    def test_payment_with_register_closed(self, db_session, customer):
        result = operations.register_payment({
            "customer_id": customer.id,
            "amount_cents": 100,
            "method": "cash",
        })
        assert result["error"]["code"] == "NotOpen"

    def test_movements_unknown_customer(self, db_session):
        assert operations.list_movements(8)["error"]["kind"] == "NotFound"


class TestRegisterOperations:

    def test_lifecycle(self, db_session):
        opened = operations.open_register(1000, actor="admin")
        assert opened["ok"] is True

        again = operations.open_register(0, actor="admin")
        assert again["error"] == {
            "kind": "InvalidState",
            "code": "AlreadyOpen",
            "message": again["error"]["message"],
            "details": {"session_id": opened["session_id"]},
        }

        status = operations.register_status()
        assert status["ok"] is True
        assert status["open"] is True
        assert status["session"]["id"] == opened["session_id"]

        closed = operations.close_register(actor="admin")
        assert closed["ok"] is True
        assert closed["session"]["status"] == "CLOSED"

        not_open = operations.close_register()
        assert not_open["error"]["code"] == "NotOpen"


class TestOperationLogging:

    def test_failure_is_logged_as_warning(self, db_session, caplog):
        with caplog.at_level(logging.WARNING):
            operations.close_register()

        assert any("close_register failed" in r.getMessage() for r in caplog.records)

    def test_unexpected_error_is_reraised(self, db_session, monkeypatch):
        from storeledger.services import register_service

        def boom(*args, **kwargs):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(register_service, "register_status", boom)

        with pytest.raises(RuntimeError):
            operations.register_status()
