"""InvoiceStatusReconciler tests."""
from datetime import date
from decimal import Decimal

import pytest

from business.reconciler import InvoiceStatusReconciler, classify_payment_status
from database.errors import InternalError
from database.models import Invoice, PaymentStatus
from tests.factories import make_invoice


def _insert_payment(db, invoice_id, amount):
    """Insert a payment directly, bypassing BillingService (no reconciliation)."""
    db.payments.run_transaction(lambda sess: db.payments.add({
        "invoice_id": invoice_id, "amount_paid": Decimal(amount),
        "method": "PIX", "payment_date": date.today(),
    }, session=sess))


class TestClassifyPaymentStatus:
    """Pure classification rule."""

    @pytest.mark.parametrize("paid, due, expected", [
        ("0", "100", PaymentStatus.OPEN),
        ("0.01", "100", PaymentStatus.PARTIALLY_PAID),
        ("99.99", "100", PaymentStatus.PARTIALLY_PAID),
        ("100", "100", PaymentStatus.PAID),
        ("120", "100", PaymentStatus.PAID),
        ("0", "0", PaymentStatus.OPEN),
    ])
    def test_classification(self, paid, due, expected):
        assert classify_payment_status(Decimal(paid), Decimal(due)) == expected


class TestInvoiceStatusReconciler:
    """Recomputing and persisting invoice status."""

    def test_reconcile_partial(self, sample_invoice, temp_db):
        _insert_payment(temp_db, sample_invoice["id"], "40")
        status = InvoiceStatusReconciler(temp_db).reconcile(sample_invoice["id"])
        assert status == PaymentStatus.PARTIALLY_PAID
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Parcialmente Pago"

    def test_reconcile_paid(self, sample_invoice, temp_db):
        _insert_payment(temp_db, sample_invoice["id"], "60")
        _insert_payment(temp_db, sample_invoice["id"], "40")
        status = InvoiceStatusReconciler(temp_db).reconcile(sample_invoice["id"])
        assert status == PaymentStatus.PAID
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Pago"

    def test_reconcile_without_payments_is_open(self, sample_invoice, temp_db):
        temp_db.invoices.update_by_id(Invoice, sample_invoice["id"], payment_status="Pago")
        status = InvoiceStatusReconciler(temp_db).reconcile(sample_invoice["id"])
        assert status == PaymentStatus.OPEN
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Aberto"

    def test_reconcile_missing_invoice_returns_none(self, temp_db):
        assert InvoiceStatusReconciler(temp_db).reconcile(99999) is None

    def test_reconcile_failure_is_swallowed(self, sample_invoice, temp_db, monkeypatch):
        def broken(*args, **kwargs):
            raise InternalError("数据库操作失败")

        monkeypatch.setattr(temp_db.invoices, "run_transaction", broken)
        assert InvoiceStatusReconciler(temp_db).reconcile(sample_invoice["id"]) is None

    def test_reconcile_all_repairs_drift(self, temp_db):
        first = make_invoice(temp_db, 100, suffix="1")
        second = make_invoice(temp_db, 50, suffix="2")
        _insert_payment(temp_db, first["id"], "100")
        _insert_payment(temp_db, second["id"], "10")

        results = InvoiceStatusReconciler(temp_db).reconcile_all()

        assert results == {
            first["id"]: PaymentStatus.PAID,
            second["id"]: PaymentStatus.PARTIALLY_PAID,
        }
        statuses = {i["id"]: i["payment_status"] for i in temp_db.invoices.list_all()}
        assert statuses == {first["id"]: "Pago", second["id"]: "Parcialmente Pago"}
