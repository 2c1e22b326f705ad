"""领域错误与数据库约束错误分类。

上层（路由、服务）只认识这里定义的错误类型：

- ValidationError (400)：缺少必填字段、关联对象不存在、唯一性冲突、
  删除被子记录阻止、业务规则不满足（付款超额、库存为负等）
- UnauthorizedError (401)：令牌缺失、无效或过期
- NotFoundError (404)：按ID找不到记录
- InternalError (500)：数据库或运行时的意外错误

数据库驱动抛出的 IntegrityError 在数据访问边界通过
``classify_integrity_error`` 转换为抽象的约束类别，仓库再按类别映射为
面向用户的 ValidationError，不在控制层匹配错误字符串。
"""
import enum
import re
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError


class RepairShopError(Exception):
    """领域错误基类。

    Attributes:
        message: 简短的人类可读错误信息。
        detail: 附加说明（仅服务端错误使用，可选）。
        status_code: 对应的 HTTP 状态码。
    """
    status_code: int = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(RepairShopError):
    """请求数据或业务规则校验失败"""
    status_code = 400


class UnauthorizedError(RepairShopError):
    """认证失败"""
    status_code = 401


class NotFoundError(RepairShopError):
    """记录不存在"""
    status_code = 404


class InternalError(RepairShopError):
    """意外的数据库或运行时错误"""
    status_code = 500


class ConstraintKind(str, enum.Enum):
    """数据库约束违反类别"""
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"
    NOT_NULL = "not_null"
    CHECK = "check"
    UNKNOWN = "unknown"


@dataclass
class ConstraintViolation:
    """约束违反描述。

    Attributes:
        kind: 约束类别。
        column: 触发约束的列名（能识别时），如 ``email``。
        constraint: 约束名（PostgreSQL 提供时）。
    """
    kind: ConstraintKind
    column: Optional[str] = None
    constraint: Optional[str] = None


# PostgreSQL SQLSTATE -> 约束类别
_PG_SQLSTATE = {
    "23505": ConstraintKind.UNIQUE,
    "23503": ConstraintKind.FOREIGN_KEY,
    "23502": ConstraintKind.NOT_NULL,
    "23514": ConstraintKind.CHECK,
}

# SQLite 错误信息前缀 -> 约束类别
_SQLITE_PATTERNS = [
    (re.compile(r"UNIQUE constraint failed: (?:\w+)\.(\w+)"), ConstraintKind.UNIQUE),
    (re.compile(r"NOT NULL constraint failed: (?:\w+)\.(\w+)"), ConstraintKind.NOT_NULL),
    (re.compile(r"CHECK constraint failed: (\w+)"), ConstraintKind.CHECK),
    (re.compile(r"FOREIGN KEY constraint failed"), ConstraintKind.FOREIGN_KEY),
]


def classify_integrity_error(exc: IntegrityError) -> ConstraintViolation:
    """把驱动层的 IntegrityError 转换为抽象的约束违反描述。

    支持 SQLite（按错误信息识别）和 PostgreSQL（按 SQLSTATE 与诊断信息识别）。

    Args:
        exc: SQLAlchemy 包装后的 IntegrityError。

    Returns:
        ConstraintViolation，无法识别时 kind 为 UNKNOWN。
    """
    orig = getattr(exc, "orig", None)

    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _PG_SQLSTATE:
        diag = getattr(orig, "diag", None)
        column = getattr(diag, "column_name", None)
        constraint = getattr(diag, "constraint_name", None) or getattr(orig, "constraint_name", None)
        return ConstraintViolation(
            kind=_PG_SQLSTATE[sqlstate], column=column, constraint=constraint
        )

    text = str(orig if orig is not None else exc)
    for pattern, kind in _SQLITE_PATTERNS:
        match = pattern.search(text)
        if match:
            column = match.group(1) if match.groups() else None
            if kind == ConstraintKind.CHECK:
                return ConstraintViolation(kind=kind, constraint=column)
            return ConstraintViolation(kind=kind, column=column)

    return ConstraintViolation(kind=ConstraintKind.UNKNOWN)
