"""路由依赖 - 从应用状态获取共享组件，并校验访问令牌"""
from fastapi import Request

from business.billing import BillingService
from business.identity import AuthenticatedUser, IdentityGateway
from database.errors import UnauthorizedError
from database.manager import DatabaseManager


def get_db(request: Request) -> DatabaseManager:
    return request.app.state.db


def get_billing(request: Request) -> BillingService:
    return request.app.state.billing


def get_identity(request: Request) -> IdentityGateway:
    return request.app.state.identity


def bearer_token(request: Request) -> str:
    """从 Authorization 请求头中取出 Bearer 令牌（没有则返回空字符串）"""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:].strip()
    return ""


def get_current_user(request: Request) -> AuthenticatedUser:
    """校验访问令牌，并把用户挂到 ``request.state.user``"""
    token = bearer_token(request)
    if not token:
        raise UnauthorizedError("未授权，请先登录")

    user = get_identity(request).verify(token)
    request.state.user = user
    return user


def require_user(request: Request) -> None:
    """受保护路由的依赖：开启认证时要求有效令牌"""
    if request.app.state.require_auth:
        get_current_user(request)
