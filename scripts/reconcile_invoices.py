"""批量重算发票付款状态

付款变更后的状态重算失败只会记录日志，本脚本按当前付款记录
重新计算所有发票的状态，用于修复遗留的不一致。

使用方式：
    python scripts/reconcile_invoices.py
"""
import argparse
import sys
import os

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from business.reconciler import InvoiceStatusReconciler
from database.manager import DatabaseManager
from loguru import logger


def reconcile_invoices(database_url=None) -> int:
    """重算全部发票，返回失败的发票数"""
    db = DatabaseManager(database_url)
    try:
        results = InvoiceStatusReconciler(db).reconcile_all()
    finally:
        db.close()

    failed = [invoice_id for invoice_id, status in results.items() if status is None]
    if failed:
        logger.error(f"以下发票重算失败: {failed}")
    return len(failed)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="批量重算发票付款状态")
    parser.add_argument("--db", default=None, help="数据库连接 URL（默认读取 DATABASE_URL）")
    args = parser.parse_args()
    sys.exit(1 if reconcile_invoices(args.db) else 0)
