"""收款业务服务。

付款的新增、修改、删除以及发票金额修改都会影响发票付款状态，
这些操作统一经由 BillingService 完成：先在事务中写入，提交后再
触发 InvoiceStatusReconciler 重算相关发票。
"""
from decimal import Decimal
from typing import Any, Dict

from loguru import logger

from database.errors import NotFoundError, ValidationError
from database.manager import DatabaseManager
from database.models import Payment
from .reconciler import InvoiceStatusReconciler


def check_payment_admission(existing_total: Decimal, amount: Decimal,
                            total_due: Decimal) -> None:
    """检查新付款是否会使付款合计超过发票金额。

    Raises:
        ValidationError: 超过发票金额。
    """
    if existing_total + amount > total_due:
        remaining = total_due - existing_total
        raise ValidationError(
            f"付款金额超过发票剩余应付金额（剩余 {remaining}）"
        )


class BillingService:
    """收款业务服务。

    Attributes:
        db: 数据库管理器。
        reconciler: 发票状态重算器。
    """

    def __init__(self, db: DatabaseManager,
                 reconciler: InvoiceStatusReconciler = None) -> None:
        self.db = db
        self.reconciler = reconciler or InvoiceStatusReconciler(db)

    def create_payment(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """登记付款。

        额度校验与插入在同一事务中完成，发票行被锁定，
        并发付款不会让合计超过发票金额。提交后重算发票状态。

        Args:
            data: ``invoice_id``、``amount_paid``、``method`` 必填，
                ``payment_date`` 默认当天。

        Returns:
            新付款记录的详细字典。

        Raises:
            ValidationError: 缺少字段、金额无效、发票不存在或超过剩余应付金额。
        """
        payments = self.db.payments
        fields = payments.prepare_new(data)
        invoice_id = fields["invoice_id"]

        def _admit(sess):
            invoice = self.db.invoices.lock(invoice_id, session=sess)
            if invoice is None:
                raise ValidationError("发票不存在")
            existing = payments.sum_for_invoice(invoice_id, session=sess)
            check_payment_admission(existing, fields["amount_paid"], invoice.total_due)
            return payments.add(fields, session=sess).id

        payment_id = payments.run_transaction(_admit)
        logger.info(f"发票 {invoice_id} 登记付款 {fields['amount_paid']}（付款ID {payment_id}）")

        self.reconciler.reconcile(invoice_id)
        return payments.get(payment_id)

    def update_payment(self, payment_id: int,
                       data: Dict[str, Any]) -> Dict[str, Any]:
        """修改付款记录，并重算原发票与新发票的状态。

        修改不重新做额度校验。

        Raises:
            NotFoundError: 付款记录不存在。
            ValidationError: 金额无效或新发票不存在。
        """
        payments = self.db.payments
        fields = payments.normalize(data)

        def _update(sess):
            payment = sess.get(Payment, payment_id)
            if payment is None:
                raise NotFoundError("付款记录不存在")
            original_invoice_id = payment.invoice_id
            for key, value in fields.items():
                setattr(payment, key, value)
            sess.flush()
            return original_invoice_id, payment.invoice_id

        original_invoice_id, new_invoice_id = payments.run_transaction(_update)

        self.reconciler.reconcile(original_invoice_id)
        if new_invoice_id != original_invoice_id:
            logger.info(f"付款 {payment_id} 从发票 {original_invoice_id} 转到发票 {new_invoice_id}")
            self.reconciler.reconcile(new_invoice_id)
        return payments.get(payment_id)

    def delete_payment(self, payment_id: int) -> None:
        """删除付款记录，并重算所属发票的状态。

        Raises:
            NotFoundError: 付款记录不存在。
        """
        payments = self.db.payments

        def _delete(sess):
            payment = sess.get(Payment, payment_id)
            if payment is None:
                raise NotFoundError("付款记录不存在")
            invoice_id = payment.invoice_id
            payments.delete_by_id(Payment, payment_id, session=sess)
            return invoice_id

        invoice_id = payments.run_transaction(_delete)
        logger.info(f"删除付款 {payment_id}（发票 {invoice_id}）")
        self.reconciler.reconcile(invoice_id)

    def update_invoice(self, invoice_id: int,
                       data: Dict[str, Any]) -> Dict[str, Any]:
        """修改发票；修改了应付金额时重算付款状态。

        Raises:
            NotFoundError: 发票不存在。
            ValidationError: 字段无效或服务单不存在。
        """
        invoice = self.db.invoices.update_invoice(invoice_id, data)
        if data.get("total_due") is None:
            return invoice

        previous = invoice["payment_status"]
        status = self.reconciler.reconcile(invoice_id)
        if status is not None and status.value != previous:
            invoice = self.db.invoices.get(invoice_id)
        return invoice

