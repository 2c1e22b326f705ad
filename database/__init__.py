"""数据访问层 - ORM 模型、仓库与统一门面 DatabaseManager"""
from database.manager import DatabaseManager

__all__ = ["DatabaseManager"]
