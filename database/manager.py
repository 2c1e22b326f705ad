"""数据库管理器：统一门面（Facade）。

DatabaseManager 是 database 模块的统一入口，组合了所有子仓库：

- 实体仓库：``customers``、``vehicles``、``inventory``、``employees``
- 业务记录仓库：``service_orders``、``invoices``、``payments``
- 系统数据仓库：``users``、``tokens``

仓库的公开方法返回字典/基本类型，可直接作为 HTTP 响应；
需要在同一事务中组合多步操作时，通过 ``run_transaction`` 和各方法的
``session`` 参数完成（见 business.billing）。

进程内只创建一个 DatabaseManager，启动时构造并注入到 Web 应用。
"""
from typing import Optional, Any
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .connection import DatabaseConnection
from .errors import InternalError
from .entity_repos import (
    CustomerRepository, VehicleRepository,
    InventoryRepository, EmployeeRepository
)
from .business_repos import (
    ServiceOrderRepository, InvoiceRepository, PaymentRepository
)
from .system_repos import UserRepository, AuthTokenRepository


class DatabaseManager:
    """数据库管理器：统一门面。

    组合了所有子仓库，提供统一的数据库访问接口。
    支持 SQLite 和 PostgreSQL 数据库引擎。

    Attributes:
        conn: 数据库连接管理器。
        customers: 顾客仓库。
        vehicles: 车辆仓库。
        inventory: 零件库存仓库。
        employees: 员工仓库。
        service_orders: 服务单仓库。
        invoices: 发票仓库。
        payments: 付款仓库。
        users: 登录用户仓库。
        tokens: 访问令牌仓库。

    Example::

        db = DatabaseManager("sqlite:///data/oficina.db")
        db.create_tables()

        customer = db.customers.create_customer({"name": "João Silva"})
        vehicles = db.customers.list_vehicles(customer["id"])
    """

    def __init__(self, database_url: Optional[str] = None) -> None:
        """初始化数据库管理器。

        Args:
            database_url: 数据库连接URL。如果为None则使用settings配置。
                        支持 ``sqlite:///`` 和 ``postgresql://`` 格式。
        """
        # 基础设施层
        self.conn = DatabaseConnection(database_url)

        # 实体仓库
        self.customers = CustomerRepository(self.conn)
        self.vehicles = VehicleRepository(self.conn)
        self.inventory = InventoryRepository(self.conn)
        self.employees = EmployeeRepository(self.conn)

        # 业务记录仓库
        self.service_orders = ServiceOrderRepository(self.conn)
        self.invoices = InvoiceRepository(self.conn)
        self.payments = PaymentRepository(self.conn)

        # 系统数据仓库
        self.users = UserRepository(self.conn)
        self.tokens = AuthTokenRepository(self.conn)

    # ================================================================
    # 基础设施方法
    # ================================================================

    def create_tables(self) -> None:
        """创建所有数据库表（幂等操作）。"""
        self.conn.create_tables()

    def get_session(self) -> Session:
        """获取数据库会话。"""
        return self.conn.get_session()

    @property
    def database_url(self) -> str:
        """数据库连接URL。"""
        return self.conn.database_url

    @property
    def engine(self):
        """SQLAlchemy 引擎对象。"""
        return self.conn.engine

    def execute_raw_sql(self, sql: str,
                        params: Optional[dict] = None) -> Any:
        """执行原始 SQL 语句。

        注意：应优先使用 ORM 方法，仅在必要时使用原始 SQL。

        Args:
            sql: SQL 语句字符串。
            params: SQL 参数字典（可选）。

        Returns:
            SQL 执行结果。
        """
        return self.conn.execute_raw_sql(sql, params)

    def ping(self) -> bool:
        """检查数据库是否可用。

        Raises:
            InternalError: 数据库无法访问。
        """
        try:
            self.execute_raw_sql("SELECT 1")
        except SQLAlchemyError as e:
            raise InternalError("数据库无法访问", detail=type(e).__name__) from e
        return True

    def close(self) -> None:
        """关闭数据库连接，释放所有资源。"""
        self.conn.close()
