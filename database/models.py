"""SQLAlchemy ORM 模型定义。

本模块定义了汽修门店的所有数据库表的ORM模型，包括：
- 顾客、车辆、员工等基础实体
- 库存零件
- 服务单及其使用的零件（多对多，带数量）
- 发票与付款记录
- 登录用户与访问令牌
"""
import enum
from typing import List, Optional
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Date, DateTime, Time,
    DECIMAL, ForeignKey, CheckConstraint
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from datetime import datetime, date, time, timezone
from decimal import Decimal

# SQLAlchemy declarative base，所有模型都继承自此类
# 设置 __allow_unmapped__ = True 以兼容 SQLAlchemy 2.0 的类型注解要求
Base = declarative_base()

Base.__allow_unmapped__ = True


def utcnow() -> datetime:
    """当前 UTC 时间（不带时区，与 DateTime 列一致）"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class PaymentStatus(str, enum.Enum):
    """发票付款状态。

    取值沿用门店前端使用的葡语文案，直接存入 invoices.payment_status。
    """
    OPEN = "Aberto"
    PARTIALLY_PAID = "Parcialmente Pago"
    PAID = "Pago"


class Employee(Base):
    """员工表模型。

    服务单可以指派给某个员工（技师），也可以不指派。

    Attributes:
        id: 主键，自增整数。
        name: 员工姓名，必填。
        role: 岗位（如：mecânico、atendente），可选。
        phone: 联系电话，可选。
        is_active: 是否在职，默认True。
        created_at: 创建时间。
    """
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(100), nullable=False)
    role: Optional[str] = Column(String(50))
    phone: Optional[str] = Column(String(20))
    is_active: bool = Column(Boolean, default=True)
    created_at: datetime = Column(DateTime, default=utcnow)

    service_orders: List["ServiceOrder"] = relationship("ServiceOrder", back_populates="employee")


class Customer(Base):
    """顾客表模型。

    Attributes:
        id: 主键，自增整数。
        name: 顾客姓名，必填。
        address: 地址，可选。
        phone: 联系电话，可选。
        email: 邮箱，可选，唯一。
        created_at: 创建时间。

    Relationships:
        vehicles: 该顾客名下的车辆。存在车辆时不允许删除顾客。
    """
    __tablename__ = "customers"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(100), nullable=False)
    address: Optional[str] = Column(String(255))
    phone: Optional[str] = Column(String(20))
    email: Optional[str] = Column(String(120), unique=True)
    created_at: datetime = Column(DateTime, default=utcnow)

    vehicles: List["Vehicle"] = relationship("Vehicle", back_populates="customer")


class Vehicle(Base):
    """车辆表模型。

    Attributes:
        id: 主键，自增整数。
        customer_id: 车主ID，外键关联customers表，必填。
        model: 车型，必填。
        year: 年款，可选。
        plate: 车牌号，必填，唯一。
        chassis_number: 车架号，必填，唯一。
        service_history: 维修历史备注，可选。
        created_at: 创建时间。
    """
    __tablename__ = "vehicles"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    customer_id: int = Column(Integer, ForeignKey("customers.id"), nullable=False)
    model: str = Column(String(100), nullable=False)
    year: Optional[int] = Column(Integer)
    plate: str = Column(String(10), nullable=False, unique=True)
    chassis_number: str = Column(String(30), nullable=False, unique=True)
    service_history: Optional[str] = Column(Text)
    created_at: datetime = Column(DateTime, default=utcnow)

    customer: "Customer" = relationship("Customer", back_populates="vehicles")
    service_orders: List["ServiceOrder"] = relationship("ServiceOrder", back_populates="vehicle")


class InventoryPart(Base):
    """库存零件表模型。

    Attributes:
        id: 主键，自增整数。
        name: 零件名称，必填，唯一。
        description: 描述，可选。
        quantity: 库存数量，不能为负，默认0。
        cost_price: 成本价，DECIMAL(10,2)，必填。
        sale_price: 售价，DECIMAL(10,2)，必填。
        minimum_level: 最低库存，数量小于等于该值即视为低库存，默认0。
        created_at: 创建时间。
    """
    __tablename__ = "inventory_parts"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    name: str = Column(String(100), nullable=False, unique=True)
    description: Optional[str] = Column(Text)
    quantity: int = Column(Integer, nullable=False, default=0)
    cost_price: Decimal = Column(DECIMAL(10, 2), nullable=False)
    sale_price: Decimal = Column(DECIMAL(10, 2), nullable=False)
    minimum_level: int = Column(Integer, nullable=False, default=0)
    created_at: datetime = Column(DateTime, default=utcnow)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_inventory_parts_quantity"),
    )


class ServiceOrder(Base):
    """服务单表模型（核心业务表）。

    一次预约的维修作业，关联车辆、可选的员工、以及消耗的零件。

    Attributes:
        id: 主键，自增整数。
        vehicle_id: 车辆ID，外键，必填。
        employee_id: 员工ID，外键，可选。
        scheduled_date: 预约日期，必填。
        scheduled_time: 预约时间，必填。
        service_type: 服务类型（如：Troca de óleo），必填。
        status: 服务状态，默认"Agendado"。
        description: 描述，可选。
        total_value: 服务总价，DECIMAL(10,2)，默认0。
        created_at: 创建时间。

    Relationships:
        parts: 服务使用的零件关联（ServiceOrderPart）。
        invoices: 该服务开出的发票。存在发票时不允许删除服务单。
    """
    __tablename__ = "service_orders"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id: int = Column(Integer, ForeignKey("vehicles.id"), nullable=False)
    employee_id: Optional[int] = Column(Integer, ForeignKey("employees.id"))
    scheduled_date: date = Column(Date, nullable=False)
    scheduled_time: time = Column(Time, nullable=False)
    service_type: str = Column(String(100), nullable=False)
    status: str = Column(String(30), nullable=False, default="Agendado")
    description: Optional[str] = Column(Text)
    total_value: Decimal = Column(DECIMAL(10, 2), default=0)
    created_at: datetime = Column(DateTime, default=utcnow)

    vehicle: "Vehicle" = relationship("Vehicle", back_populates="service_orders")
    employee: Optional["Employee"] = relationship("Employee", back_populates="service_orders")
    parts: List["ServiceOrderPart"] = relationship("ServiceOrderPart", back_populates="service_order")
    invoices: List["Invoice"] = relationship("Invoice", back_populates="service_order")


class ServiceOrderPart(Base):
    """服务单-零件关联表（复合主键）。

    Attributes:
        service_order_id: 服务单ID。
        part_id: 零件ID。
        quantity: 使用数量。
    """
    __tablename__ = "service_order_parts"

    service_order_id: int = Column(Integer, ForeignKey("service_orders.id"), primary_key=True)
    part_id: int = Column(Integer, ForeignKey("inventory_parts.id"), primary_key=True)
    quantity: int = Column(Integer, nullable=False)

    service_order: "ServiceOrder" = relationship("ServiceOrder", back_populates="parts")
    part: "InventoryPart" = relationship("InventoryPart")


class Invoice(Base):
    """发票表模型。

    付款状态始终由应付总额与付款合计推导（见 business.reconciler），
    不接受客户端直接写入。

    Attributes:
        id: 主键，自增整数。
        service_order_id: 服务单ID，外键，必填。
        issue_date: 开票日期，默认当天。
        total_due: 应付总额，DECIMAL(10,2)，必填。
        payment_status: 付款状态，见 PaymentStatus。
        created_at: 创建时间。
    """
    __tablename__ = "invoices"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    service_order_id: int = Column(Integer, ForeignKey("service_orders.id"), nullable=False)
    issue_date: date = Column(Date, nullable=False, default=date.today)
    total_due: Decimal = Column(DECIMAL(10, 2), nullable=False)
    payment_status: str = Column(String(20), nullable=False, default=PaymentStatus.OPEN.value)
    created_at: datetime = Column(DateTime, default=utcnow)

    service_order: "ServiceOrder" = relationship("ServiceOrder", back_populates="invoices")
    payments: List["Payment"] = relationship("Payment", back_populates="invoice")


class Payment(Base):
    """付款记录表模型。

    Attributes:
        id: 主键，自增整数。
        invoice_id: 发票ID，外键，必填。
        payment_date: 付款日期，默认当天。
        amount_paid: 付款金额，DECIMAL(10,2)，必须为正。
        method: 付款方式（如：PIX、Dinheiro），必填。
        created_at: 创建时间。
    """
    __tablename__ = "payments"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id: int = Column(Integer, ForeignKey("invoices.id"), nullable=False)
    payment_date: date = Column(Date, nullable=False, default=date.today)
    amount_paid: Decimal = Column(DECIMAL(10, 2), nullable=False)
    method: str = Column(String(50), nullable=False)
    created_at: datetime = Column(DateTime, default=utcnow)

    invoice: "Invoice" = relationship("Invoice", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="ck_payments_amount_paid"),
    )


class AppUser(Base):
    """登录用户表模型。

    Attributes:
        id: 主键，UUID字符串。
        email: 登录邮箱，唯一。
        password_hash: 密码哈希（passlib pbkdf2_sha256 格式）。
        full_name: 全名。
        created_at: 注册时间。
    """
    __tablename__ = "app_users"

    id: str = Column(String(36), primary_key=True)
    email: str = Column(String(120), nullable=False, unique=True)
    password_hash: str = Column(String(255), nullable=False)
    full_name: Optional[str] = Column(String(150))
    created_at: datetime = Column(DateTime, default=utcnow)

    tokens: List["AuthToken"] = relationship("AuthToken", back_populates="user")


class AuthToken(Base):
    """访问令牌表模型。

    每次登录签发一对令牌：access_token 用于请求认证，
    refresh_token 用于换取新的令牌对。

    Attributes:
        id: 主键，自增整数。
        user_id: 用户ID，外键。
        access_token: 访问令牌，唯一。
        refresh_token: 刷新令牌，唯一。
        expires_at: 访问令牌过期时间。
        refresh_expires_at: 刷新令牌过期时间。
        created_at: 签发时间。
    """
    __tablename__ = "auth_tokens"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    user_id: str = Column(String(36), ForeignKey("app_users.id"), nullable=False)
    access_token: str = Column(String(64), nullable=False, unique=True)
    refresh_token: str = Column(String(64), nullable=False, unique=True)
    expires_at: datetime = Column(DateTime, nullable=False)
    refresh_expires_at: datetime = Column(DateTime, nullable=False)
    created_at: datetime = Column(DateTime, default=utcnow)

    user: "AppUser" = relationship("AppUser", back_populates="tokens")
