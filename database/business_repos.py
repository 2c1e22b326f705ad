"""业务记录仓库：核心业务数据的数据访问层。

管理汽修门店的核心业务记录（服务单、发票、付款），
这些记录是日常经营活动产生的交易数据。

涉及多步读写的流程（如付款入账后重算发票状态）由 business 层
组合这里的方法完成：各方法都接受外部会话，以便在同一事务中执行。
"""
from typing import Optional, List, Dict, Any
from datetime import date, datetime, time
from decimal import Decimal
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, joinedload, selectinload

from .base_crud import BaseCRUD, pick_fields, to_decimal, to_float, to_iso
from .connection import DatabaseConnection
from .errors import ValidationError, NotFoundError
from .models import (
    ServiceOrder, ServiceOrderPart, InventoryPart, Vehicle,
    Invoice, Payment, PaymentStatus
)
from config.business_config import shop_config


def _parse_date(value: Any, field_name: str) -> date:
    """解析日期值（date 对象或 YYYY-MM-DD 字符串）。

    Raises:
        ValidationError: 格式无效。
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value, "%Y-%m-%d").date()
        except ValueError:
            pass
    raise ValidationError(f"{field_name} 日期格式无效，应为 YYYY-MM-DD")


def _parse_time(value: Any, field_name: str) -> time:
    """解析时间值（time 对象或 HH:MM[:SS] 字符串）。

    Raises:
        ValidationError: 格式无效。
    """
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        for fmt in ("%H:%M", "%H:%M:%S"):
            try:
                return datetime.strptime(value, fmt).time()
            except ValueError:
                continue
    raise ValidationError(f"{field_name} 时间格式无效，应为 HH:MM")


def service_order_to_dict(s: ServiceOrder) -> Dict[str, Any]:
    vehicle = s.vehicle
    customer = vehicle.customer if vehicle else None
    return {
        "id": s.id,
        "vehicle_id": s.vehicle_id,
        "vehicle_model": vehicle.model if vehicle else None,
        "vehicle_plate": vehicle.plate if vehicle else None,
        "customer_id": customer.id if customer else None,
        "customer_name": customer.name if customer else None,
        "employee_id": s.employee_id,
        "employee_name": s.employee.name if s.employee else None,
        "scheduled_date": to_iso(s.scheduled_date),
        "scheduled_time": to_iso(s.scheduled_time),
        "service_type": s.service_type,
        "status": s.status,
        "description": s.description,
        "total_value": to_float(s.total_value),
        "created_at": to_iso(s.created_at),
    }


def order_part_to_dict(link: ServiceOrderPart) -> Dict[str, Any]:
    sale_price = link.part.sale_price if link.part else None
    return {
        "part_id": link.part_id,
        "name": link.part.name if link.part else None,
        "quantity": link.quantity,
        "sale_price": to_float(sale_price),
        "subtotal": to_float(sale_price * link.quantity) if sale_price is not None else None,
    }


def payment_to_dict(p: Payment) -> Dict[str, Any]:
    return {
        "id": p.id,
        "invoice_id": p.invoice_id,
        "payment_date": to_iso(p.payment_date),
        "amount_paid": to_float(p.amount_paid),
        "method": p.method,
        "created_at": to_iso(p.created_at),
    }


def payment_detail_to_dict(p: Payment) -> Dict[str, Any]:
    data = payment_to_dict(p)
    invoice = p.invoice
    order = invoice.service_order if invoice else None
    vehicle = order.vehicle if order else None
    data.update({
        "invoice_total_due": to_float(invoice.total_due) if invoice else None,
        "invoice_status": invoice.payment_status if invoice else None,
        "service_order_id": invoice.service_order_id if invoice else None,
        "customer_name": vehicle.customer.name if vehicle and vehicle.customer else None,
    })
    return data


def invoice_to_dict(i: Invoice) -> Dict[str, Any]:
    order = i.service_order
    vehicle = order.vehicle if order else None
    total_paid = sum((p.amount_paid for p in i.payments), Decimal("0"))
    return {
        "id": i.id,
        "service_order_id": i.service_order_id,
        "service_type": order.service_type if order else None,
        "vehicle_plate": vehicle.plate if vehicle else None,
        "customer_name": vehicle.customer.name if vehicle and vehicle.customer else None,
        "issue_date": to_iso(i.issue_date),
        "total_due": to_float(i.total_due),
        "payment_status": i.payment_status,
        "total_paid": to_float(total_paid),
        "balance_due": to_float(i.total_due - total_paid),
        "created_at": to_iso(i.created_at),
    }


class ServiceOrderRepository(BaseCRUD):
    """服务单 仓库。

    管理维修服务单及其使用的零件（服务单与零件多对多，带数量）。
    """

    entity_label = "服务单"
    reference_missing_message = "车辆或员工不存在"
    delete_blocked_message = "该服务单已开具发票，无法删除"

    FIELDS = ("vehicle_id", "employee_id", "scheduled_date", "scheduled_time",
              "service_type", "status", "description", "total_value")

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        fields = pick_fields(data, ServiceOrderRepository.FIELDS)
        if fields.get("scheduled_date") is not None:
            fields["scheduled_date"] = _parse_date(fields["scheduled_date"], "scheduled_date")
        if fields.get("scheduled_time") is not None:
            fields["scheduled_time"] = _parse_time(fields["scheduled_time"], "scheduled_time")
        if fields.get("total_value") is not None:
            fields["total_value"] = to_decimal(fields["total_value"], "total_value")
        return fields

    @staticmethod
    def _query_detailed(sess: Session):
        return sess.query(ServiceOrder).options(
            joinedload(ServiceOrder.vehicle).joinedload(Vehicle.customer),
            joinedload(ServiceOrder.employee),
        )

    def list_all(self) -> List[Dict[str, Any]]:
        """获取全部服务单（按预约日期、时间倒序）。"""
        def _query(sess):
            orders = self._query_detailed(sess).order_by(
                ServiceOrder.scheduled_date.desc(),
                ServiceOrder.scheduled_time.desc(),
            ).all()
            return [service_order_to_dict(s) for s in orders]

        return self._execute(_query)

    def get(self, order_id: int) -> Dict[str, Any]:
        """按ID获取服务单，附带使用的零件明细。

        Raises:
            NotFoundError: 服务单不存在。
        """
        def _query(sess):
            order = self._query_detailed(sess).filter(
                ServiceOrder.id == order_id
            ).first()
            if order is None:
                raise self._not_found()
            data = service_order_to_dict(order)
            data["parts"] = self._list_parts(sess, order_id)
            return data

        return self._execute(_query)

    @staticmethod
    def _list_parts(sess: Session, order_id: int) -> List[Dict[str, Any]]:
        links = sess.query(ServiceOrderPart).options(
            joinedload(ServiceOrderPart.part)
        ).filter(
            ServiceOrderPart.service_order_id == order_id
        ).order_by(ServiceOrderPart.part_id.asc()).all()
        return [order_part_to_dict(link) for link in links]

    @staticmethod
    def _normalize_parts(parts: List[Dict[str, Any]]) -> Dict[int, int]:
        """整理初始零件列表为 {part_id: quantity}，同一零件以最后一次为准。"""
        normalized: Dict[int, int] = {}
        for item in parts:
            part_id = item.get("part_id")
            quantity = item.get("quantity")
            if part_id is None or quantity is None:
                raise ValidationError("零件ID和数量为必填项")
            if quantity <= 0:
                raise ValidationError("零件数量必须大于0")
            normalized[part_id] = quantity
        return normalized

    def create_order(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """创建服务单（可同时附带初始零件）。

        Args:
            data: 服务单字段，``vehicle_id``、``scheduled_date``、
                ``scheduled_time``、``service_type`` 必填；
                ``parts`` 为可选的 ``[{part_id, quantity}]`` 列表。

        Returns:
            新服务单的详细字典。

        Raises:
            ValidationError: 缺少字段、车辆不存在、零件不存在或员工不存在。
        """
        self._require(data, ["vehicle_id", "scheduled_date",
                             "scheduled_time", "service_type"])
        fields = self._normalize(data)
        fields["status"] = fields.get("status") or shop_config.get_default_service_status()
        if fields.get("total_value") is None:
            fields["total_value"] = Decimal("0.00")
        parts = self._normalize_parts(data.get("parts") or [])

        def _do(sess):
            if sess.get(Vehicle, fields["vehicle_id"]) is None:
                raise ValidationError("车辆不存在")
            order = ServiceOrder(**fields)
            sess.add(order)
            sess.flush()

            for part_id, quantity in parts.items():
                if sess.get(InventoryPart, part_id) is None:
                    raise ValidationError(f"零件不存在: {part_id}")
                sess.add(ServiceOrderPart(
                    service_order_id=order.id, part_id=part_id, quantity=quantity
                ))
            sess.flush()
            return order.id

        order_id = self._execute(_do, commit=True)
        return self.get(order_id)

    def update_order(self, order_id: int,
                     data: Dict[str, Any]) -> Dict[str, Any]:
        """更新服务单（只更新传入的字段）。

        Raises:
            NotFoundError: 服务单不存在。
            ValidationError: 车辆或员工不存在、字段格式无效。
        """
        order = self.update_by_id(ServiceOrder, order_id, **self._normalize(data))
        if order is None:
            raise self._not_found()
        return self.get(order_id)

    def delete_order(self, order_id: int) -> None:
        """删除服务单及其零件关联（同一事务）。

        Raises:
            NotFoundError: 服务单不存在。
            ValidationError: 已开具发票（零件关联保持不变）。
        """
        def _do(sess):
            sess.query(ServiceOrderPart).filter(
                ServiceOrderPart.service_order_id == order_id
            ).delete(synchronize_session=False)
            count = sess.query(ServiceOrder).filter(
                ServiceOrder.id == order_id
            ).delete(synchronize_session=False)
            if count == 0:
                raise self._not_found()

        self._execute(_do, commit=True, deleting=True)

    def attach_part(self, order_id: int, part_id: Optional[int],
                    quantity: Optional[int]) -> List[Dict[str, Any]]:
        """向服务单添加零件，已存在则更新数量（按 服务单+零件 冲突更新）。

        Returns:
            服务单当前的零件明细。

        Raises:
            ValidationError: 缺少参数、数量无效或零件不存在。
            NotFoundError: 服务单不存在。
        """
        if part_id is None or quantity is None:
            raise ValidationError("零件ID和数量为必填项")
        if quantity <= 0:
            raise ValidationError("零件数量必须大于0")

        def _do(sess):
            if sess.get(ServiceOrder, order_id) is None:
                raise self._not_found()
            if sess.get(InventoryPart, part_id) is None:
                raise ValidationError("零件不存在")

            insert = pg_insert if sess.get_bind().dialect.name == "postgresql" else sqlite_insert
            stmt = insert(ServiceOrderPart).values(
                service_order_id=order_id, part_id=part_id, quantity=quantity
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["service_order_id", "part_id"],
                set_={"quantity": stmt.excluded.quantity},
            )
            sess.execute(stmt)
            sess.flush()
            return self._list_parts(sess, order_id)

        return self._execute(_do, commit=True)

    def detach_part(self, order_id: int, part_id: int) -> None:
        """从服务单移除零件。

        Raises:
            NotFoundError: 服务单中没有该零件。
        """
        def _do(sess):
            count = sess.query(ServiceOrderPart).filter(
                ServiceOrderPart.service_order_id == order_id,
                ServiceOrderPart.part_id == part_id,
            ).delete(synchronize_session=False)
            if count == 0:
                raise NotFoundError("服务单中没有该零件")

        self._execute(_do, commit=True)


class InvoiceRepository(BaseCRUD):
    """发票 仓库。

    付款状态只由 business.reconciler 写入，这里的创建与更新不接受外部状态。
    """

    entity_label = "发票"
    reference_missing_message = "服务单不存在"
    delete_blocked_message = "该发票已有付款记录，无法删除"

    FIELDS = ("service_order_id", "issue_date", "total_due")

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        fields = pick_fields(data, InvoiceRepository.FIELDS)
        if fields.get("issue_date") is not None:
            fields["issue_date"] = _parse_date(fields["issue_date"], "issue_date")
        if fields.get("total_due") is not None:
            fields["total_due"] = to_decimal(fields["total_due"], "total_due")
            if fields["total_due"] < 0:
                raise ValidationError("发票金额不能为负")
        return fields

    @staticmethod
    def _query_detailed(sess: Session):
        return sess.query(Invoice).options(
            joinedload(Invoice.service_order)
            .joinedload(ServiceOrder.vehicle)
            .joinedload(Vehicle.customer),
            selectinload(Invoice.payments),
        )

    def list_all(self) -> List[Dict[str, Any]]:
        """获取全部发票（按开票日期倒序）。"""
        def _query(sess):
            invoices = self._query_detailed(sess).order_by(
                Invoice.issue_date.desc(), Invoice.id.desc()
            ).all()
            return [invoice_to_dict(i) for i in invoices]

        return self._execute(_query)

    def list_open(self) -> List[Dict[str, Any]]:
        """获取未付款（Aberto）的发票（按开票日期升序）。"""
        def _query(sess):
            invoices = self._query_detailed(sess).filter(
                Invoice.payment_status == PaymentStatus.OPEN.value
            ).order_by(Invoice.issue_date.asc(), Invoice.id.asc()).all()
            return [invoice_to_dict(i) for i in invoices]

        return self._execute(_query)

    def get(self, invoice_id: int) -> Dict[str, Any]:
        """按ID获取发票，附带付款记录（按付款日期倒序）。

        Raises:
            NotFoundError: 发票不存在。
        """
        def _query(sess):
            invoice = self._query_detailed(sess).filter(
                Invoice.id == invoice_id
            ).first()
            if invoice is None:
                raise self._not_found()
            data = invoice_to_dict(invoice)
            payments = sorted(
                invoice.payments,
                key=lambda p: (p.payment_date, p.id), reverse=True
            )
            data["payments"] = [payment_to_dict(p) for p in payments]
            return data

        return self._execute(_query)

    def lock(self, invoice_id: int, session: Session) -> Optional[Invoice]:
        """在给定事务中读取并锁定发票行（PostgreSQL 下为 SELECT ... FOR UPDATE）。"""
        return session.query(Invoice).filter(
            Invoice.id == invoice_id
        ).with_for_update().first()

    def list_ids(self) -> List[int]:
        """获取全部发票ID。"""
        def _query(sess):
            return [row.id for row in sess.query(Invoice.id).order_by(Invoice.id).all()]

        return self._execute(_query)

    def create_invoice(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """创建发票，状态固定为 Aberto。

        Args:
            data: ``service_order_id``、``total_due`` 必填，``issue_date`` 默认当天。

        Raises:
            ValidationError: 缺少字段、金额无效或服务单不存在。
        """
        self._require(data, ["service_order_id", "total_due"])
        fields = self._normalize(data)
        if fields.get("issue_date") is None:
            fields["issue_date"] = date.today()
        fields["payment_status"] = PaymentStatus.OPEN.value

        def _do(sess):
            if sess.get(ServiceOrder, fields["service_order_id"]) is None:
                raise ValidationError(self.reference_missing_message)
            invoice = Invoice(**fields)
            sess.add(invoice)
            sess.flush()
            return invoice.id

        invoice_id = self._execute(_do, commit=True)
        return self.get(invoice_id)

    def update_invoice(self, invoice_id: int,
                       data: Dict[str, Any]) -> Dict[str, Any]:
        """更新发票字段（付款状态除外）。

        Raises:
            NotFoundError: 发票不存在。
            ValidationError: 服务单不存在或金额无效。
        """
        invoice = self.update_by_id(Invoice, invoice_id, **self._normalize(data))
        if invoice is None:
            raise self._not_found()
        return self.get(invoice_id)

    def delete_invoice(self, invoice_id: int) -> None:
        """删除发票。

        Raises:
            NotFoundError: 发票不存在。
            ValidationError: 已有付款记录。
        """
        if not self.delete_by_id(Invoice, invoice_id):
            raise self._not_found()


class PaymentRepository(BaseCRUD):
    """付款 仓库。

    只负责付款记录本身的读写；入账额度校验与发票状态重算
    由 business.billing.BillingService 在事务中组合完成。
    """

    entity_label = "付款记录"
    reference_missing_message = "发票不存在"
    check_messages = {"amount_paid": "付款金额必须大于0"}

    FIELDS = ("invoice_id", "payment_date", "amount_paid", "method")

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    @staticmethod
    def normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        """整理可写字段（日期解析、金额转换并校验为正）。"""
        fields = pick_fields(data, PaymentRepository.FIELDS)
        if fields.get("payment_date") is not None:
            fields["payment_date"] = _parse_date(fields["payment_date"], "payment_date")
        if fields.get("amount_paid") is not None:
            fields["amount_paid"] = to_decimal(fields["amount_paid"], "amount_paid")
            if fields["amount_paid"] <= 0:
                raise ValidationError("付款金额必须大于0")
        return fields

    def prepare_new(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """校验新付款的必填字段并整理，``payment_date`` 默认当天。

        Raises:
            ValidationError: 缺少字段或金额无效。
        """
        self._require(data, ["invoice_id", "amount_paid", "method"])
        fields = self.normalize(data)
        if fields.get("payment_date") is None:
            fields["payment_date"] = date.today()
        return fields

    @staticmethod
    def _query_detailed(sess: Session):
        return sess.query(Payment).options(
            joinedload(Payment.invoice)
            .joinedload(Invoice.service_order)
            .joinedload(ServiceOrder.vehicle)
            .joinedload(Vehicle.customer),
        )

    def list_all(self) -> List[Dict[str, Any]]:
        """获取全部付款记录（按付款日期倒序）。"""
        def _query(sess):
            payments = self._query_detailed(sess).order_by(
                Payment.payment_date.desc(), Payment.id.desc()
            ).all()
            return [payment_detail_to_dict(p) for p in payments]

        return self._execute(_query)

    def get(self, payment_id: int) -> Dict[str, Any]:
        """按ID获取付款记录。

        Raises:
            NotFoundError: 付款记录不存在。
        """
        def _query(sess):
            payment = self._query_detailed(sess).filter(
                Payment.id == payment_id
            ).first()
            if payment is None:
                raise self._not_found()
            return payment_detail_to_dict(payment)

        return self._execute(_query)

    def list_by_invoice(self, invoice_id: int) -> List[Dict[str, Any]]:
        """获取某张发票的付款记录（按付款日期倒序）。"""
        def _query(sess):
            payments = sess.query(Payment).filter(
                Payment.invoice_id == invoice_id
            ).order_by(Payment.payment_date.desc(), Payment.id.desc()).all()
            return [payment_to_dict(p) for p in payments]

        return self._execute(_query)

    def sum_for_invoice(self, invoice_id: int, session: Session) -> Decimal:
        """计算发票当前的付款合计（没有付款时为 0）。"""
        amounts = session.query(Payment.amount_paid).filter(
            Payment.invoice_id == invoice_id
        ).all()
        return sum((to_decimal(row.amount_paid, "amount_paid") for row in amounts),
                   Decimal("0.00"))

    def add(self, fields: Dict[str, Any], session: Session) -> Payment:
        """在给定事务中插入付款记录。"""
        payment = Payment(**fields)
        session.add(payment)
        session.flush()
        return payment
