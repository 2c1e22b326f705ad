"""系统数据仓库：系统级数据的数据访问层。

管理登录用户与已签发的访问令牌，供身份网关（business.identity）使用。
密码哈希与令牌生成不在这里处理，仓库只负责存取。
"""
import uuid
from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Session, joinedload
from loguru import logger

from .base_crud import BaseCRUD
from .connection import DatabaseConnection
from .models import AppUser, AuthToken, utcnow


class UserRepository(BaseCRUD):
    """登录用户 仓库。"""

    entity_label = "用户"
    unique_messages = {"email": "该邮箱已注册"}

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def get_by_email(self, email: str,
                     session: Optional[Session] = None) -> Optional[AppUser]:
        """按邮箱查询用户（邮箱不区分大小写，存储时已转为小写）。"""
        def _query(sess):
            return sess.query(AppUser).filter(
                AppUser.email == email.strip().lower()
            ).first()

        return self._execute(_query, session=session)

    def create_user(self, email: str, password_hash: str,
                    full_name: Optional[str] = None) -> AppUser:
        """创建用户。

        Raises:
            ValidationError: 邮箱已注册。
        """
        user = self.create(
            AppUser,
            id=str(uuid.uuid4()),
            email=email.strip().lower(),
            password_hash=password_hash,
            full_name=full_name,
        )
        logger.info(f"新用户注册: {user.email}")
        return user


class AuthTokenRepository(BaseCRUD):
    """访问令牌 仓库。

    令牌持久化在数据库中，多个进程共享同一份登录状态。
    """

    entity_label = "令牌"

    def __init__(self, conn: DatabaseConnection) -> None:
        super().__init__(conn)

    def issue(self, user_id: str, access_token: str, refresh_token: str,
              expires_at: datetime,
              refresh_expires_at: datetime) -> AuthToken:
        """保存新签发的令牌对。"""
        return self.create(
            AuthToken,
            user_id=user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    def get_by_access_token(self, access_token: str) -> Optional[AuthToken]:
        """按访问令牌查询（附带用户）。"""
        def _query(sess):
            return sess.query(AuthToken).options(
                joinedload(AuthToken.user)
            ).filter(AuthToken.access_token == access_token).first()

        return self._execute(_query)

    def get_by_refresh_token(self, refresh_token: str) -> Optional[AuthToken]:
        """按刷新令牌查询（附带用户）。"""
        def _query(sess):
            return sess.query(AuthToken).options(
                joinedload(AuthToken.user)
            ).filter(AuthToken.refresh_token == refresh_token).first()

        return self._execute(_query)

    def revoke(self, token_id: int) -> bool:
        """吊销令牌对。

        Returns:
            是否删除了记录。
        """
        return self.delete_by_id(AuthToken, token_id)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """删除刷新令牌已过期的记录。

        Returns:
            删除的记录数。
        """
        now = now or utcnow()

        def _do(sess):
            return sess.query(AuthToken).filter(
                AuthToken.refresh_expires_at < now
            ).delete(synchronize_session=False)

        count = self._execute(_do, commit=True)
        if count:
            logger.debug(f"清理过期令牌 {count} 条")
        return count
