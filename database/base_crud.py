"""通用 CRUD 基类。

所有仓库继承 BaseCRUD 获得：
- 会话管理（可传入外部会话，或自动创建并提交）
- 通用的按ID查询/列表/创建/更新/删除
- 数据库约束错误到领域错误（ValidationError 等）的统一转换

子类通过类属性声明本实体的错误文案：
``entity_label``、``unique_messages``、``reference_missing_message``、
``delete_blocked_message``、``check_messages``。
"""
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .connection import DatabaseConnection
from .errors import (
    ConstraintKind, InternalError, NotFoundError, RepairShopError,
    ValidationError, classify_integrity_error,
)

T = TypeVar("T")


def to_float(value: Optional[Decimal]) -> Optional[float]:
    """金额转换为 JSON 友好的 float。"""
    return float(value) if value is not None else None


def to_iso(value: Optional[Any]) -> Optional[str]:
    """日期/时间转换为 ISO 字符串。"""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return value


def to_decimal(value: Any, field_name: str) -> Decimal:
    """把数值转换为两位小数的 Decimal。

    Raises:
        ValidationError: 无法转换为数字。
    """
    if isinstance(value, Decimal):
        return value.quantize(Decimal("0.01"))
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (ArithmeticError, ValueError, TypeError):
        raise ValidationError(f"{field_name} 必须是数字")


def pick_fields(data: Dict[str, Any], fields: Iterable[str]) -> Dict[str, Any]:
    """只保留允许写入的字段。"""
    return {k: v for k, v in data.items() if k in fields}


class BaseCRUD:
    """仓库基类，封装通用数据库操作。"""

    entity_label: str = "记录"
    unique_messages: Dict[str, str] = {}
    reference_missing_message: str = "关联的记录不存在"
    delete_blocked_message: str = "该记录仍被其他数据引用，无法删除"
    check_messages: Dict[str, str] = {}

    def __init__(self, conn: DatabaseConnection) -> None:
        self.conn = conn

    def _get_session(self) -> Session:
        return self.conn.get_session()

    # ================================================================
    # 会话与错误处理
    # ================================================================

    def _execute(self, work: Callable[[Session], T],
                 session: Optional[Session] = None,
                 commit: bool = False,
                 deleting: bool = False) -> T:
        """在会话中执行一段数据库操作。

        传入外部会话时直接执行，提交与错误处理由调用方负责；
        否则创建新会话，按需提交，并把数据库异常转换为领域错误。

        Args:
            work: 接收会话并返回结果的函数。
            session: 外部会话（可选）。
            commit: 执行成功后是否提交。
            deleting: 是否为删除操作（决定外键错误的文案）。

        Returns:
            work 的返回值。

        Raises:
            ValidationError: 违反数据库约束。
            InternalError: 其他数据库错误。
        """
        if session is not None:
            return work(session)

        with self._get_session() as sess:
            try:
                result = work(sess)
                if commit:
                    sess.commit()
                return result
            except IntegrityError as e:
                sess.rollback()
                raise self._translate_integrity_error(e, deleting) from e
            except RepairShopError:
                sess.rollback()
                raise
            except SQLAlchemyError as e:
                sess.rollback()
                logger.error(f"{self.entity_label}数据库操作失败: {e}")
                raise InternalError(
                    "数据库操作失败",
                    detail=str(getattr(e, "orig", None) or type(e).__name__)
                ) from e

    def run_transaction(self, work: Callable[[Session], T],
                        deleting: bool = False) -> T:
        """在单个新事务中执行多步操作，成功后提交。

        供 business 层组合多个仓库方法使用，错误转换规则与 ``_execute`` 相同。
        """
        return self._execute(work, commit=True, deleting=deleting)

    def _translate_integrity_error(self, exc: IntegrityError,
                                   deleting: bool = False) -> ValidationError:
        """按约束类别生成面向用户的 ValidationError。"""
        violation = classify_integrity_error(exc)
        logger.debug(f"{self.entity_label}约束冲突: {violation}")

        if violation.kind == ConstraintKind.UNIQUE:
            for column, message in self.unique_messages.items():
                if column == violation.column or (
                    violation.constraint and column in violation.constraint
                ):
                    return ValidationError(message)
            return ValidationError(f"{self.entity_label}信息重复")

        if violation.kind == ConstraintKind.FOREIGN_KEY:
            if deleting:
                return ValidationError(self.delete_blocked_message)
            return ValidationError(self.reference_missing_message)

        if violation.kind == ConstraintKind.NOT_NULL:
            return ValidationError(f"缺少必填字段: {violation.column}")

        if violation.kind == ConstraintKind.CHECK:
            for name, message in self.check_messages.items():
                if violation.constraint and name in violation.constraint:
                    return ValidationError(message)
            return ValidationError("数据不满足约束条件")

        return ValidationError("数据完整性校验失败")

    # ================================================================
    # 校验辅助
    # ================================================================

    @staticmethod
    def _require(data: Dict[str, Any], fields: Iterable[str]) -> None:
        """检查必填字段。

        Raises:
            ValidationError: 列出所有缺失的字段。
        """
        missing = [
            f for f in fields
            if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())
        ]
        if missing:
            raise ValidationError(f"缺少必填字段: {', '.join(missing)}")

    def _not_found(self) -> NotFoundError:
        return NotFoundError(f"{self.entity_label}不存在")

    # ================================================================
    # 通用 CRUD
    # ================================================================

    def get_by_id(self, model_cls: Type[Any], record_id: Any,
                  session: Optional[Session] = None) -> Optional[Any]:
        """按主键查询，不存在返回 None。"""
        return self._execute(
            lambda sess: sess.get(model_cls, record_id), session=session
        )

    def get_all(self, model_cls: Type[Any],
                filters: Optional[Dict[str, Any]] = None,
                order_by: Optional[List[Any]] = None,
                session: Optional[Session] = None) -> List[Any]:
        """按等值条件查询列表。

        Args:
            model_cls: ORM 模型类。
            filters: ``{列名: 值}`` 等值过滤条件（可选）。
            order_by: 排序表达式列表（可选）。

        Returns:
            ORM 对象列表。
        """
        def _query(sess):
            query = sess.query(model_cls)
            if filters:
                query = query.filter_by(**filters)
            if order_by:
                query = query.order_by(*order_by)
            return query.all()

        return self._execute(_query, session=session)

    def create(self, model_cls: Type[Any], session: Optional[Session] = None,
               **fields: Any) -> Any:
        """插入一条记录并返回刷新后的对象。"""
        def _do(sess):
            obj = model_cls(**fields)
            sess.add(obj)
            sess.flush()
            sess.refresh(obj)
            return obj

        return self._execute(_do, session=session, commit=True)

    def update_by_id(self, model_cls: Type[Any], record_id: Any,
                     session: Optional[Session] = None,
                     **fields: Any) -> Optional[Any]:
        """按主键更新字段。

        Returns:
            更新后的对象；记录不存在返回 None。
        """
        def _do(sess):
            obj = sess.get(model_cls, record_id)
            if obj is None:
                return None
            for key, value in fields.items():
                setattr(obj, key, value)
            sess.flush()
            sess.refresh(obj)
            return obj

        return self._execute(_do, session=session, commit=True)

    def delete_by_id(self, model_cls: Type[Any], record_id: Any,
                     session: Optional[Session] = None) -> bool:
        """按主键删除。

        使用批量删除语句，被子记录引用时由数据库拒绝（不会级联置空）。

        Returns:
            是否删除了记录。
        """
        def _do(sess):
            count = sess.query(model_cls).filter(
                model_cls.id == record_id
            ).delete(synchronize_session=False)
            sess.flush()
            return count > 0

        return self._execute(_do, session=session, commit=True, deleting=True)
