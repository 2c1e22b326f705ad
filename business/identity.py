"""身份网关：注册、登录与令牌校验。

Web 层只通过 IdentityGateway 接口认证用户，不直接接触密码或令牌存储。
更换身份提供方（如外部认证服务）时，实现新的网关即可，路由代码不变。
"""
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from passlib.context import CryptContext

from config.settings import settings
from database.errors import UnauthorizedError, ValidationError
from database.manager import DatabaseManager
from database.models import AppUser, utcnow

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@dataclass
class AuthenticatedUser:
    """已认证用户"""
    id: str
    email: str
    full_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "email": self.email, "nome_completo": self.full_name}


@dataclass
class AuthSession:
    """一次登录签发的令牌对"""
    access_token: str
    refresh_token: str
    expires_at: datetime
    user: AuthenticatedUser


def _user_from_model(user: AppUser) -> AuthenticatedUser:
    return AuthenticatedUser(id=user.id, email=user.email, full_name=user.full_name)


def hash_password(password: str) -> str:
    """生成加盐的 PBKDF2-SHA256 密码哈希。"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """校验密码是否与哈希匹配，无法识别的哈希视为不匹配。"""
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        return False


class IdentityGateway(ABC):
    """身份网关抽象基类

    实现这个接口即可替换认证方式，而不需要修改路由代码
    """

    @abstractmethod
    def register(self, email: str, password: str,
                 full_name: Optional[str] = None) -> AuthenticatedUser:
        """
        注册用户

        Raises:
            ValidationError: 缺少字段、密码过短或邮箱已注册
        """

    @abstractmethod
    def login(self, email: str, password: str) -> AuthSession:
        """
        登录并签发令牌

        Raises:
            UnauthorizedError: 邮箱或密码错误
        """

    @abstractmethod
    def verify(self, access_token: str) -> AuthenticatedUser:
        """
        校验访问令牌

        Raises:
            UnauthorizedError: 令牌无效或已过期
        """

    @abstractmethod
    def refresh(self, refresh_token: str) -> AuthSession:
        """
        用刷新令牌换取新的令牌对

        Raises:
            UnauthorizedError: 刷新令牌无效或已过期
        """

    @abstractmethod
    def logout(self, access_token: str) -> None:
        """吊销访问令牌"""


class DatabaseIdentityGateway(IdentityGateway):
    """基于数据库的身份网关。

    用户密码以加盐 PBKDF2-SHA256 哈希保存，令牌为随机字符串，
    与过期时间一起保存在数据库中。

    Attributes:
        db: 数据库管理器。
        access_ttl: 访问令牌有效期。
        refresh_ttl: 刷新令牌有效期。
    """

    def __init__(self, db: DatabaseManager,
                 access_ttl: Optional[timedelta] = None,
                 refresh_ttl: Optional[timedelta] = None) -> None:
        self.db = db
        self.access_ttl = access_ttl or timedelta(hours=settings.access_token_ttl_hours)
        self.refresh_ttl = refresh_ttl or timedelta(days=settings.refresh_token_ttl_days)

    def register(self, email: str, password: str,
                 full_name: Optional[str] = None) -> AuthenticatedUser:
        if not email or not password or not full_name:
            raise ValidationError("邮箱、密码和姓名为必填项")
        if len(password) < settings.min_password_length:
            raise ValidationError(f"密码长度至少为 {settings.min_password_length} 位")
        if self.db.users.get_by_email(email) is not None:
            raise ValidationError("该邮箱已注册")

        user = self.db.users.create_user(email, hash_password(password), full_name)
        return _user_from_model(user)

    def _issue(self, user: AuthenticatedUser) -> AuthSession:
        now = utcnow()
        session = AuthSession(
            access_token=secrets.token_hex(32),
            refresh_token=secrets.token_hex(32),
            expires_at=now + self.access_ttl,
            user=user,
        )
        self.db.tokens.issue(
            user.id, session.access_token, session.refresh_token,
            session.expires_at, now + self.refresh_ttl
        )
        return session

    def login(self, email: str, password: str) -> AuthSession:
        if not email or not password:
            raise ValidationError("邮箱和密码为必填项")

        user = self.db.users.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"登录失败: {email}")
            raise UnauthorizedError("邮箱或密码错误")

        logger.info(f"用户登录: {user.email}")
        self.db.tokens.purge_expired()
        return self._issue(_user_from_model(user))

    def verify(self, access_token: str) -> AuthenticatedUser:
        if not access_token:
            raise UnauthorizedError("缺少访问令牌")

        token = self.db.tokens.get_by_access_token(access_token)
        if token is None:
            raise UnauthorizedError("无效的访问令牌")
        if token.expires_at < utcnow():
            raise UnauthorizedError("访问令牌已过期")
        return _user_from_model(token.user)

    def refresh(self, refresh_token: str) -> AuthSession:
        if not refresh_token:
            raise UnauthorizedError("缺少刷新令牌")

        token = self.db.tokens.get_by_refresh_token(refresh_token)
        if token is None or token.refresh_expires_at < utcnow():
            raise UnauthorizedError("刷新令牌无效或已过期")

        user = _user_from_model(token.user)
        self.db.tokens.revoke(token.id)
        return self._issue(user)

    def logout(self, access_token: str) -> None:
        token = self.db.tokens.get_by_access_token(access_token)
        if token is not None:
            self.db.tokens.revoke(token.id)
            logger.info(f"用户登出: {token.user.email}")
