"""认证路由 /api/auth（不需要令牌）"""
from fastapi import APIRouter, Depends, Request

from business.identity import AuthSession, IdentityGateway
from interface.web.deps import bearer_token, get_identity
from interface.web.schemas import LoginIn, RefreshIn, RegisterIn

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _session_response(message: str, session: AuthSession) -> dict:
    return {
        "message": message,
        "accessToken": session.access_token,
        "refreshToken": session.refresh_token,
        "expiresAt": session.expires_at.isoformat(),
        "user": session.user.to_dict(),
    }


@router.post("/register", status_code=201)
def register(body: RegisterIn, identity: IdentityGateway = Depends(get_identity)):
    user = identity.register(body.email, body.password, body.nome_completo)
    return {"message": "注册成功", "user": user.to_dict()}


@router.post("/login")
def login(body: LoginIn, identity: IdentityGateway = Depends(get_identity)):
    session = identity.login(body.email, body.password)
    return _session_response("登录成功", session)


@router.post("/refresh")
def refresh(body: RefreshIn, identity: IdentityGateway = Depends(get_identity)):
    session = identity.refresh(body.refresh_token)
    return _session_response("令牌已刷新", session)


@router.post("/logout")
def logout(request: Request, identity: IdentityGateway = Depends(get_identity)):
    token = bearer_token(request)
    if token:
        identity.logout(token)
    return {"message": "已退出登录"}
