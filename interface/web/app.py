"""Web 应用工厂 - 汽修门店管理 REST API

路由：
- /api/clientes    → 顾客
- /api/veiculos    → 车辆
- /api/estoque     → 零件库存
- /api/servicos    → 服务单
- /api/faturas     → 发票
- /api/pagamentos  → 付款
- /api/auth        → 注册 / 登录 / 刷新令牌 / 退出
- /health          → 健康检查
- /                → API 信息

开启 ``REQUIRE_AUTH`` 时，除 /api/auth 外的 /api 路由都需要
``Authorization: Bearer <token>`` 请求头。
"""
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from business.billing import BillingService
from business.identity import DatabaseIdentityGateway, IdentityGateway
from config.settings import settings
from database.errors import RepairShopError
from database.manager import DatabaseManager
from database.models import utcnow
from interface.web.errors import register_exception_handlers
from interface.web.routers import API_ROUTERS, auth

API_VERSION = "1.0.0"

ENDPOINTS = {
    "clientes": "/api/clientes",
    "veiculos": "/api/veiculos",
    "estoque": "/api/estoque",
    "servicos": "/api/servicos",
    "faturas": "/api/faturas",
    "pagamentos": "/api/pagamentos",
    "auth": "/api/auth",
    "health": "/health",
}


def create_app(db: DatabaseManager,
               identity: Optional[IdentityGateway] = None,
               require_auth: Optional[bool] = None) -> FastAPI:
    """创建 FastAPI 应用。

    Args:
        db: 数据库管理器（进程内唯一，所有请求共享）。
        identity: 身份网关，默认使用基于数据库的实现。
        require_auth: 是否要求访问令牌，默认取 ``settings.require_auth``。

    Returns:
        配置好路由、CORS 与异常处理的 FastAPI 应用。
    """
    app = FastAPI(
        title="汽修门店管理系统",
        description="顾客、车辆、库存、服务单、发票与付款管理 API",
        version=API_VERSION,
    )

    app.state.db = db
    app.state.billing = BillingService(db)
    app.state.identity = identity or DatabaseIdentityGateway(db)
    app.state.require_auth = settings.require_auth if require_auth is None else require_auth
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    for router in API_ROUTERS:
        app.include_router(router)

    # ==================== 健康检查 ====================

    @app.get("/health")
    def health_check(request: Request):
        """健康检查"""
        uptime = time.monotonic() - request.app.state.started_at
        content = {
            "status": "OK",
            "timestamp": utcnow().isoformat() + "Z",
            "uptime": round(uptime, 3),
        }
        try:
            request.app.state.db.ping()
            content["database"] = "OK"
        except RepairShopError as e:
            logger.error(f"健康检查数据库不可用: {e.message}")
            content["status"] = "ERROR"
            content["database"] = "ERROR"
            return JSONResponse(status_code=503, content=content)
        return content

    @app.get("/")
    def index():
        """API 信息"""
        return {
            "message": "汽修门店管理系统 API",
            "version": API_VERSION,
            "endpoints": ENDPOINTS,
        }

    logger.debug(f"Web 应用已创建（认证: {'开启' if app.state.require_auth else '关闭'}）")
    return app
