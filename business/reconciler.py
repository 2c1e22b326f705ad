"""发票付款状态重算。

发票的付款状态（Aberto / Parcialmente Pago / Pago）是派生数据，
只由这里根据发票金额与付款合计计算并写回。付款的新增、修改、删除
以及发票金额修改之后都会触发重算。

重算失败只记录日志，不影响触发它的操作；遗留的不一致可通过
``scripts/reconcile_invoices.py`` 批量修复。
"""
from decimal import Decimal
from typing import Dict, Optional

from loguru import logger
from sqlalchemy.orm import Session

from database.errors import RepairShopError
from database.manager import DatabaseManager
from database.models import PaymentStatus


def classify_payment_status(total_paid: Decimal,
                            total_due: Decimal) -> PaymentStatus:
    """根据付款合计判断发票状态。

    Args:
        total_paid: 付款合计。
        total_due: 发票应付金额。

    Returns:
        合计为 0 时为 OPEN，未付清为 PARTIALLY_PAID，付清（含超付）为 PAID。
    """
    if total_paid <= 0:
        return PaymentStatus.OPEN
    if total_paid < total_due:
        return PaymentStatus.PARTIALLY_PAID
    return PaymentStatus.PAID


class InvoiceStatusReconciler:
    """发票状态重算器。

    Attributes:
        db: 数据库管理器。
    """

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def _reconcile_in(self, session: Session,
                      invoice_id: int) -> Optional[PaymentStatus]:
        invoice = self.db.invoices.lock(invoice_id, session=session)
        if invoice is None:
            logger.warning(f"重算发票状态时发票不存在: {invoice_id}")
            return None

        total_paid = self.db.payments.sum_for_invoice(invoice_id, session=session)
        status = classify_payment_status(total_paid, invoice.total_due)

        if invoice.payment_status == status.value:
            logger.debug(f"发票 {invoice_id} 状态未变化: {status.value}")
            return status

        logger.info(
            f"发票 {invoice_id} 状态更新: {invoice.payment_status} -> {status.value} "
            f"(已付 {total_paid} / 应付 {invoice.total_due})"
        )
        invoice.payment_status = status.value
        return status

    def reconcile(self, invoice_id: int) -> Optional[PaymentStatus]:
        """重算并保存单张发票的付款状态。

        在独立事务中锁定发票行、汇总付款并写回状态。

        Args:
            invoice_id: 发票ID。

        Returns:
            重算后的状态；发票不存在或保存失败时返回 None。
        """
        try:
            return self.db.invoices.run_transaction(
                lambda sess: self._reconcile_in(sess, invoice_id)
            )
        except RepairShopError as e:
            logger.error(f"发票 {invoice_id} 状态重算失败: {e.message} {e.detail or ''}")
            return None

    def reconcile_all(self) -> Dict[int, Optional[PaymentStatus]]:
        """重算全部发票的付款状态。

        Returns:
            ``{发票ID: 重算后的状态}``，失败的发票对应 None。
        """
        results = {}
        for invoice_id in self.db.invoices.list_ids():
            results[invoice_id] = self.reconcile(invoice_id)

        failed = sum(1 for status in results.values() if status is None)
        logger.info(f"批量重算完成: 共 {len(results)} 张发票，失败 {failed} 张")
        return results
