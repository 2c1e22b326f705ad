"""REST 路由（按资源划分，路径沿用前端使用的葡萄牙语资源名）"""
from interface.web.routers import (
    auth, customers, inventory, invoices, payments, service_orders, vehicles
)

API_ROUTERS = [
    customers.router,
    vehicles.router,
    inventory.router,
    service_orders.router,
    invoices.router,
    payments.router,
]

__all__ = ["API_ROUTERS", "auth"]
