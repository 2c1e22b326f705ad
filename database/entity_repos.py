"""实体仓库：基础实体的数据访问层。

管理汽修门店的基础实体（顾客、车辆、库存零件、员工）。

每个仓库继承 BaseCRUD 获得通用能力，并添加领域特定的查询方法。
对外的便捷方法返回字典（金额为 float，日期为 ISO 字符串），
找不到记录时抛出 NotFoundError，约束冲突抛出 ValidationError。
"""
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session, joinedload

from .base_crud import BaseCRUD, pick_fields, to_decimal, to_float, to_iso
from .connection import DatabaseConnection
from .errors import ValidationError
from .models import Customer, Vehicle, InventoryPart, Employee


def customer_to_dict(c: Customer) -> Dict[str, Any]:
    return {
        "id": c.id,
        "name": c.name,
        "address": c.address,
        "phone": c.phone,
        "email": c.email,
        "created_at": to_iso(c.created_at),
    }


def vehicle_to_dict(v: Vehicle) -> Dict[str, Any]:
    return {
        "id": v.id,
        "customer_id": v.customer_id,
        "customer_name": v.customer.name if v.customer else None,
        "model": v.model,
        "year": v.year,
        "plate": v.plate,
        "chassis_number": v.chassis_number,
        "service_history": v.service_history,
        "created_at": to_iso(v.created_at),
    }


def part_to_dict(p: InventoryPart) -> Dict[str, Any]:
    return {
        "id": p.id,
        "name": p.name,
        "description": p.description,
        "quantity": p.quantity,
        "cost_price": to_float(p.cost_price),
        "sale_price": to_float(p.sale_price),
        "minimum_level": p.minimum_level,
        "created_at": to_iso(p.created_at),
    }


class CustomerRepository(BaseCRUD):
    """顾客 仓库。"""

    entity_label = "顾客"
    unique_messages = {"email": "邮箱已被登记"}
    delete_blocked_message = "该顾客名下仍有车辆，无法删除"

    FIELDS = ("name", "address", "phone", "email")

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def list_all(self) -> List[Dict[str, Any]]:
        """获取全部顾客（按姓名升序）。"""
        customers = self.get_all(Customer, order_by=[Customer.name.asc()])
        return [customer_to_dict(c) for c in customers]

    def get(self, customer_id: int) -> Dict[str, Any]:
        """按ID获取顾客。

        Raises:
            NotFoundError: 顾客不存在。
        """
        customer = self.get_by_id(Customer, customer_id)
        if customer is None:
            raise self._not_found()
        return customer_to_dict(customer)

    def get_by_email(self, email: str,
                     session: Optional[Session] = None) -> Optional[Customer]:
        """按邮箱查找顾客。"""
        def _query(sess):
            return sess.query(Customer).filter(Customer.email == email).first()

        return self._execute(_query, session=session)

    def create_customer(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """创建顾客。

        Args:
            data: 顾客字段，``name`` 必填。

        Raises:
            ValidationError: 缺少姓名或邮箱重复。
        """
        self._require(data, ["name"])
        customer = self.create(Customer, **pick_fields(data, self.FIELDS))
        return customer_to_dict(customer)

    def update_customer(self, customer_id: int,
                        data: Dict[str, Any]) -> Dict[str, Any]:
        """更新顾客（只更新传入的字段）。

        Raises:
            NotFoundError: 顾客不存在。
            ValidationError: 邮箱重复等约束冲突。
        """
        customer = self.update_by_id(
            Customer, customer_id, **pick_fields(data, self.FIELDS)
        )
        if customer is None:
            raise self._not_found()
        return customer_to_dict(customer)

    def delete_customer(self, customer_id: int) -> None:
        """删除顾客。

        Raises:
            NotFoundError: 顾客不存在。
            ValidationError: 名下仍有车辆。
        """
        if not self.delete_by_id(Customer, customer_id):
            raise self._not_found()

    def list_vehicles(self, customer_id: int) -> List[Dict[str, Any]]:
        """获取顾客名下的车辆。"""
        def _query(sess):
            vehicles = sess.query(Vehicle).options(
                joinedload(Vehicle.customer)
            ).filter(
                Vehicle.customer_id == customer_id
            ).order_by(Vehicle.model.asc()).all()
            return [vehicle_to_dict(v) for v in vehicles]

        return self._execute(_query)


class VehicleRepository(BaseCRUD):
    """车辆 仓库。

    车辆必须属于一个已存在的顾客，返回结果附带车主姓名。
    """

    entity_label = "车辆"
    unique_messages = {
        "plate": "车牌号已被登记",
        "chassis_number": "车架号已被登记",
    }
    reference_missing_message = "顾客不存在"
    delete_blocked_message = "该车辆仍有服务单，无法删除"

    FIELDS = ("customer_id", "model", "year", "plate",
              "chassis_number", "service_history")

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def _load(self, sess: Session, vehicle_id: int) -> Optional[Vehicle]:
        return sess.query(Vehicle).options(
            joinedload(Vehicle.customer)
        ).filter(Vehicle.id == vehicle_id).first()

    def list_all(self) -> List[Dict[str, Any]]:
        """获取全部车辆（按车型升序，附带车主姓名）。"""
        def _query(sess):
            vehicles = sess.query(Vehicle).options(
                joinedload(Vehicle.customer)
            ).order_by(Vehicle.model.asc()).all()
            return [vehicle_to_dict(v) for v in vehicles]

        return self._execute(_query)

    def get(self, vehicle_id: int) -> Dict[str, Any]:
        """按ID获取车辆。

        Raises:
            NotFoundError: 车辆不存在。
        """
        def _query(sess):
            vehicle = self._load(sess, vehicle_id)
            if vehicle is None:
                raise self._not_found()
            return vehicle_to_dict(vehicle)

        return self._execute(_query)

    def create_vehicle(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """创建车辆。

        Args:
            data: 车辆字段，``customer_id``、``model``、``plate``、
                ``chassis_number`` 必填。

        Raises:
            ValidationError: 缺少字段、顾客不存在、车牌或车架号重复。
        """
        self._require(data, ["customer_id", "model", "plate", "chassis_number"])

        def _do(sess):
            if sess.get(Customer, data["customer_id"]) is None:
                raise ValidationError(self.reference_missing_message)
            vehicle = Vehicle(**pick_fields(data, self.FIELDS))
            sess.add(vehicle)
            sess.flush()
            return vehicle.id

        vehicle_id = self._execute(_do, commit=True)
        return self.get(vehicle_id)

    def update_vehicle(self, vehicle_id: int,
                       data: Dict[str, Any]) -> Dict[str, Any]:
        """更新车辆（只更新传入的字段）。

        Raises:
            NotFoundError: 车辆不存在。
            ValidationError: 顾客不存在、车牌或车架号重复。
        """
        vehicle = self.update_by_id(
            Vehicle, vehicle_id, **pick_fields(data, self.FIELDS)
        )
        if vehicle is None:
            raise self._not_found()
        return self.get(vehicle_id)

    def delete_vehicle(self, vehicle_id: int) -> None:
        """删除车辆。

        Raises:
            NotFoundError: 车辆不存在。
            ValidationError: 仍有服务单。
        """
        if not self.delete_by_id(Vehicle, vehicle_id):
            raise self._not_found()


class InventoryRepository(BaseCRUD):
    """库存零件 仓库。

    除常规增删改查外，提供低库存查询和库存增减操作。
    """

    entity_label = "零件"
    unique_messages = {"name": "零件名称已被登记"}
    delete_blocked_message = "该零件已被服务单使用，无法删除"
    check_messages = {"quantity": "库存数量不能为负"}

    FIELDS = ("name", "description", "quantity", "cost_price",
              "sale_price", "minimum_level")

    OPERATION_ADD = "adicionar"
    OPERATION_REMOVE = "remover"

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        fields = pick_fields(data, InventoryRepository.FIELDS)
        for key in ("cost_price", "sale_price"):
            if fields.get(key) is not None:
                fields[key] = to_decimal(fields[key], key)
        return fields

    def list_all(self) -> List[Dict[str, Any]]:
        """获取全部零件（按名称升序）。"""
        parts = self.get_all(InventoryPart, order_by=[InventoryPart.name.asc()])
        return [part_to_dict(p) for p in parts]

    def get(self, part_id: int) -> Dict[str, Any]:
        """按ID获取零件。

        Raises:
            NotFoundError: 零件不存在。
        """
        part = self.get_by_id(InventoryPart, part_id)
        if part is None:
            raise self._not_found()
        return part_to_dict(part)

    def get_by_name(self, name: str,
                    session: Optional[Session] = None) -> Optional[InventoryPart]:
        """按名称查找零件。"""
        def _query(sess):
            return sess.query(InventoryPart).filter(
                InventoryPart.name == name
            ).first()

        return self._execute(_query, session=session)

    def create_part(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """创建零件。

        Args:
            data: 零件字段，``name``、``cost_price``、``sale_price`` 必填；
                ``quantity`` 与 ``minimum_level`` 默认 0。

        Raises:
            ValidationError: 缺少字段或名称重复。
        """
        self._require(data, ["name", "cost_price", "sale_price"])
        fields = self._normalize(data)
        fields["quantity"] = fields.get("quantity") or 0
        fields["minimum_level"] = fields.get("minimum_level") or 0
        part = self.create(InventoryPart, **fields)
        return part_to_dict(part)

    def update_part(self, part_id: int,
                    data: Dict[str, Any]) -> Dict[str, Any]:
        """更新零件（只更新传入的字段）。

        Raises:
            NotFoundError: 零件不存在。
            ValidationError: 名称重复或数量为负。
        """
        part = self.update_by_id(InventoryPart, part_id, **self._normalize(data))
        if part is None:
            raise self._not_found()
        return part_to_dict(part)

    def delete_part(self, part_id: int) -> None:
        """删除零件。

        Raises:
            NotFoundError: 零件不存在。
            ValidationError: 已被服务单使用。
        """
        if not self.delete_by_id(InventoryPart, part_id):
            raise self._not_found()

    def get_low_stock(self) -> List[Dict[str, Any]]:
        """获取低库存零件（数量小于等于最低库存，按名称升序）。"""
        def _query(sess):
            parts = sess.query(InventoryPart).filter(
                InventoryPart.quantity <= InventoryPart.minimum_level
            ).order_by(InventoryPart.name.asc()).all()
            return [part_to_dict(p) for p in parts]

        return self._execute(_query)

    def adjust_quantity(self, part_id: int, quantity: Any,
                        operation: Optional[str]) -> Dict[str, Any]:
        """增加或减少零件库存。

        Args:
            part_id: 零件ID。
            quantity: 变动数量，必须为正整数。
            operation: ``adicionar``（入库）或 ``remover``（出库）。

        Returns:
            更新后的零件字典。

        Raises:
            ValidationError: 数量或操作无效，或出库后库存为负（库存不变）。
            NotFoundError: 零件不存在。
        """
        if not quantity or not operation:
            raise ValidationError("数量和操作类型为必填项")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("数量必须是正整数")
        if operation not in (self.OPERATION_ADD, self.OPERATION_REMOVE):
            raise ValidationError('操作类型必须是 "adicionar" 或 "remover"')

        def _do(sess):
            part = sess.query(InventoryPart).filter(
                InventoryPart.id == part_id
            ).with_for_update().first()
            if part is None:
                raise self._not_found()

            if operation == self.OPERATION_ADD:
                new_quantity = part.quantity + quantity
            else:
                new_quantity = part.quantity - quantity
                if new_quantity < 0:
                    raise ValidationError("库存数量不足")

            part.quantity = new_quantity
            sess.flush()
            return part_to_dict(part)

        return self._execute(_do, commit=True)


class EmployeeRepository(BaseCRUD):
    """员工 仓库。

    服务单可选地指派给员工（技师）。
    """

    entity_label = "员工"

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get_or_create(self, name: str, role: Optional[str] = None,
                      session: Optional[Session] = None) -> Employee:
        """获取或创建员工（按姓名匹配）。

        Args:
            name: 员工姓名。
            role: 岗位（仅新建时使用）。
            session: 外部会话（可选）。

        Returns:
            Employee 对象。
        """
        def _do(sess):
            employee = sess.query(Employee).filter(
                Employee.name == name
            ).first()
            if not employee:
                employee = Employee(name=name, role=role)
                sess.add(employee)
                sess.flush()
                sess.refresh(employee)
            return employee

        return self._execute(_do, session=session, commit=session is None)

    def get_active_staff(self,
                         session: Optional[Session] = None) -> List[Employee]:
        """获取所有在职员工（按姓名升序）。"""
        return self.get_all(
            Employee, filters={"is_active": True},
            order_by=[Employee.name.asc()], session=session
        )

