"""BillingService tests: admission check and reconciliation triggers."""
from decimal import Decimal

import pytest

from business.billing import BillingService, check_payment_admission
from database.errors import NotFoundError, ValidationError
from tests.factories import make_invoice


def _pay(billing, invoice_id, amount, method="PIX"):
    return billing.create_payment({
        "invoice_id": invoice_id, "amount_paid": amount, "method": method,
    })


@pytest.fixture
def billing(temp_db):
    return BillingService(temp_db)


class TestCheckPaymentAdmission:
    """Pure ceiling rule."""

    def test_within_total(self):
        check_payment_admission(Decimal("50"), Decimal("50"), Decimal("100"))

    def test_over_total(self):
        with pytest.raises(ValidationError):
            check_payment_admission(Decimal("50"), Decimal("60"), Decimal("100"))


class TestCreatePayment:
    """Payment creation with admission check."""

    def test_full_payment_marks_paid(self, sample_invoice, billing, temp_db):
        payment = _pay(billing, sample_invoice["id"], 100)
        assert payment["invoice_status"] == "Pago"
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Pago"

    def test_overpayment_rejected(self, sample_invoice, billing, temp_db):
        _pay(billing, sample_invoice["id"], 50)
        with pytest.raises(ValidationError, match="超过"):
            _pay(billing, sample_invoice["id"], 60)
        assert len(temp_db.payments.list_by_invoice(sample_invoice["id"])) == 1
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Parcialmente Pago"

    def test_partial_after_existing(self, sample_invoice, billing, temp_db):
        _pay(billing, sample_invoice["id"], 50)
        _pay(billing, sample_invoice["id"], 40)
        invoice = temp_db.invoices.get(sample_invoice["id"])
        assert invoice["payment_status"] == "Parcialmente Pago"
        assert invoice["balance_due"] == 10.0

    def test_exact_remaining_marks_paid(self, sample_invoice, billing, temp_db):
        _pay(billing, sample_invoice["id"], 50)
        _pay(billing, sample_invoice["id"], "50.00")
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Pago"

    def test_unknown_invoice(self, billing, temp_db):
        with pytest.raises(ValidationError, match="发票不存在"):
            _pay(billing, 99999, 10)
        assert temp_db.payments.list_all() == []

    def test_missing_fields(self, sample_invoice, billing):
        with pytest.raises(ValidationError, match="method"):
            billing.create_payment({"invoice_id": sample_invoice["id"], "amount_paid": 10})

    def test_non_positive_amount(self, sample_invoice, billing):
        with pytest.raises(ValidationError):
            _pay(billing, sample_invoice["id"], -10)

    def test_payment_date_defaults_to_today(self, sample_invoice, billing):
        payment = _pay(billing, sample_invoice["id"], 10)
        assert payment["payment_date"] == sample_invoice["issue_date"]


class TestUpdateAndDeletePayment:
    """Reconciliation after payment update and delete."""

    def test_delete_only_payment_reopens_invoice(self, sample_invoice, billing, temp_db):
        payment = _pay(billing, sample_invoice["id"], 100)
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Pago"

        billing.delete_payment(payment["id"])
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Aberto"

    def test_delete_nonexistent(self, billing):
        with pytest.raises(NotFoundError):
            billing.delete_payment(99999)

    def test_update_amount_reconciles(self, sample_invoice, billing, temp_db):
        payment = _pay(billing, sample_invoice["id"], 100)
        updated = billing.update_payment(payment["id"], {"amount_paid": 30})
        assert updated["amount_paid"] == 30.0
        assert temp_db.invoices.get(sample_invoice["id"])["payment_status"] == "Parcialmente Pago"

    def test_move_payment_between_invoices(self, billing, temp_db):
        invoice_a = make_invoice(temp_db, 100, suffix="A")
        invoice_b = make_invoice(temp_db, 40, suffix="B")
        payment = _pay(billing, invoice_a["id"], 40)
        assert temp_db.invoices.get(invoice_a["id"])["payment_status"] == "Parcialmente Pago"

        billing.update_payment(payment["id"], {"invoice_id": invoice_b["id"]})

        assert temp_db.invoices.get(invoice_a["id"])["payment_status"] == "Aberto"
        assert temp_db.invoices.get(invoice_b["id"])["payment_status"] == "Pago"

    def test_move_to_unknown_invoice(self, sample_invoice, billing, temp_db):
        payment = _pay(billing, sample_invoice["id"], 10)
        with pytest.raises(ValidationError, match="发票不存在"):
            billing.update_payment(payment["id"], {"invoice_id": 99999})
        assert temp_db.payments.get(payment["id"])["invoice_id"] == sample_invoice["id"]

    def test_update_nonexistent(self, billing):
        with pytest.raises(NotFoundError):
            billing.update_payment(99999, {"amount_paid": 10})


class TestUpdateInvoice:
    """Editing total_due re-reconciles the invoice."""

    def test_raising_total_reopens_partial(self, sample_invoice, billing, temp_db):
        _pay(billing, sample_invoice["id"], 100)
        invoice = billing.update_invoice(sample_invoice["id"], {"total_due": 150})
        assert invoice["payment_status"] == "Parcialmente Pago"
        assert invoice["balance_due"] == 50.0

    def test_lowering_total_marks_paid(self, sample_invoice, billing):
        _pay(billing, sample_invoice["id"], 60)
        invoice = billing.update_invoice(sample_invoice["id"], {"total_due": 60})
        assert invoice["payment_status"] == "Pago"

    def test_status_not_writable(self, sample_invoice, billing):
        invoice = billing.update_invoice(sample_invoice["id"], {"payment_status": "Pago"})
        assert invoice["payment_status"] == "Aberto"

    def test_update_nonexistent(self, billing):
        with pytest.raises(NotFoundError):
            billing.update_invoice(99999, {"total_due": 10})
