"""用户接口模块 - HTTP REST API

核心组件：
- create_app: 创建 FastAPI 应用（路由、CORS、异常处理、认证依赖）
- WebServer: 在独立线程中运行 uvicorn，由 app.py 管理启动与停止

架构设计：
    前端 ──→ 路由 ──→ 仓库 / BillingService ──→ 数据库
                         └──→ InvoiceStatusReconciler（付款变更后）

使用示例：
    ```python
    from database.manager import DatabaseManager
    from interface import create_app, WebServer

    db = DatabaseManager()
    server = WebServer(create_app(db), port=3000)
    await server.startup()
    ```
"""
from interface.web.app import create_app
from interface.web.server import WebServer

__all__ = ["create_app", "WebServer"]
