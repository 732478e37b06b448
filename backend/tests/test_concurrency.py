# Overview: Pytest coverage for atomic units and write-conflict retries.

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from storeledger import create_app, shutdown_app
from storeledger.extensions import db
from storeledger.errors import RegisterAlreadyOpenError, ValidationError
from storeledger.models import CashRegisterSession, Provider, Sale, Variant
from storeledger.services import (
    account_service, catalog_service, customer_service, register_service, reporting_service, sale_service,
)
from storeledger.services.concurrency import atomic, run_atomic, run_with_retry

from conftest import count


class TestAtomic:

    def test_commits_on_success(self, db_session):
        with atomic():
            db.session.add(Provider(name="Alpha"))

        db.session.rollback()
        assert count(Provider) == 1

    def test_rolls_back_on_error(self, db_session):
        with pytest.raises(ValidationError):
            with atomic():
                db.session.add(Provider(name="Alpha"))
                db.session.flush()
                raise ValidationError("nope")

        assert count(Provider) == 0

    def test_nested_unit_joins_outer(self, db_session):
        """Inner units never commit; an outer failure discards their work too."""
        with pytest.raises(RuntimeError):
            with atomic():
                with atomic():
                    db.session.add(Provider(name="Inner"))
                db.session.add(Provider(name="Outer"))
                db.session.flush()
                raise RuntimeError("late failure")

        assert count(Provider) == 0

    def test_depth_resets_after_failure(self, db_session):
        with pytest.raises(RuntimeError):
            with atomic():
                raise RuntimeError("x")

        with atomic():
            db.session.add(Provider(name="After"))
        db.session.rollback()
        assert count(Provider) == 1


class TestRetry:

    def test_retries_operational_error(self, db_session):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError("UPDATE ...", {}, Exception("database is locked"))
            return "done"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_gives_up_after_attempts(self, db_session):
        calls = []

        def always_stale():
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(StaleDataError):
            run_with_retry(always_stale, attempts=2, backoff_base=0)
        assert len(calls) == 2

    def test_ledger_errors_are_not_retried(self, db_session):
        calls = []

        def invalid():
            calls.append(1)
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            run_atomic(invalid, attempts=5)
        assert len(calls) == 1

    def test_attempts_default_from_config(self, app, db_session):
        calls = []

        def always_locked():
            calls.append(1)
            raise OperationalError("BEGIN", {}, Exception("database is locked"))

        app.config["WRITE_RETRIES"] = 2
        try:
            with pytest.raises(OperationalError):
                run_with_retry(always_locked, backoff_base=0)
        finally:
            app.config["WRITE_RETRIES"] = 3
        assert len(calls) == 2


class TestConcurrentWriters:
    """Several threads writing to one file database at the same time."""

    THREADS = 4
    ROUNDS = 15

    @pytest.fixture
    def file_app(self, tmp_path):
        app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrent.sqlite3'}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30, "check_same_thread": False}},
            "WRITE_RETRIES": 10,
        })
        with app.app_context():
            db.create_all()
        yield app
        shutdown_app(app)

    def _seed(self, app):
        with app.app_context():
            product = catalog_service.create_product("Tee", actor="admin")
            variant = catalog_service.create_variant(product.id, actor="admin", stock_quantity=1000)
            customer = customer_service.create_customer("Rita", actor="admin")
            session = register_service.open_register(0, actor="admin")
            return variant.id, customer.id, session.id

    def _run_threads(self, app, work):
        errors = []
        barrier = threading.Barrier(self.THREADS)

        def worker():
            barrier.wait()
            with app.app_context():
                try:
                    for _ in range(self.ROUNDS):
                        work()
                except Exception as e:
                    errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(self.THREADS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return errors

    def test_sales_and_payments_keep_counters_consistent(self, file_app):
        variant_id, customer_id, session_id = self._seed(file_app)

        def work():
            sale_service.create_sale("clerk", "cash", [
                {"variant_id": variant_id, "quantity": 1, "unit_price_cents": 100},
            ])
            account_service.register_payment(customer_id, 50, "cash", actor="clerk")

        errors = self._run_threads(file_app, work)
        assert errors == []

        writes = self.THREADS * self.ROUNDS
        with file_app.app_context():
            summary = reporting_service.cash_session_summary(session_id)
            assert summary["consistent"] is True
            assert summary["stored_totals"]["CASH"] == writes * 150

            assert db.session.get(Variant, variant_id).stock_quantity == 1000 - writes
            assert db.session.query(Sale).count() == writes

            listed = account_service.list_movements(customer_id)
            net = sum(m["debit_cents"] - m["credit_cents"] for m in listed["movements"])
            assert listed["account"]["balance_cents"] == net == -writes * 50

    def test_only_one_register_session_opens(self, file_app):
        results = []

        def work():
            try:
                register_service.open_register(0, actor="clerk")
                results.append("opened")
            except RegisterAlreadyOpenError:
                results.append("rejected")

        errors = self._run_threads(file_app, work)
        assert errors == []

        assert results.count("opened") == 1
        assert results.count("rejected") == self.THREADS * self.ROUNDS - 1
        with file_app.app_context():
            assert db.session.query(CashRegisterSession).count() == 1
