#!/usr/bin/env python3
"""汽修门店管理系统 - Web 应用入口

启动 REST API 服务，提供顾客、车辆、零件库存、服务单、发票与付款管理。

使用方式：
    python app.py

    # 指定端口
    python app.py --port 3000

    # 指定数据库
    python app.py --db sqlite:///data/oficina.db

环境变量（在 .env 文件中配置，运行 python scripts/setup_env.py 生成）：
    DATABASE_URL      数据库连接地址
    WEB_HOST          监听地址（默认 0.0.0.0）
    WEB_PORT          Web 端口（默认 3000）
    FRONTEND_URL      允许跨域访问的前端地址
    REQUIRE_AUTH      /api 路由是否需要登录（默认 true）
    LOG_LEVEL         日志级别（默认 INFO）
"""
import argparse
import asyncio
import signal
import sys

from loguru import logger

from config.settings import settings


def setup_logging(level: str) -> None:
    """配置 loguru 输出格式与级别"""
    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
        level=level.upper(),
    )


async def _cleanup(web, db):
    """统一资源清理函数。

    确保 Web 服务器和数据库连接被正确关闭，释放端口和文件句柄。
    """
    logger.info("正在清理资源...")

    # 1. 停止 Web 服务器（释放端口）
    if web is not None:
        await web.shutdown()

    # 2. 关闭数据库连接（释放连接池）
    if db is not None:
        db.close()

    logger.info("服务已停止")


async def main():
    parser = argparse.ArgumentParser(description="汽修门店管理系统 Web 应用")
    parser.add_argument("--host", default=settings.web_host,
                        help=f"监听地址 (默认: {settings.web_host})")
    parser.add_argument("--port", type=int, default=settings.web_port,
                        help=f"监听端口 (默认: {settings.web_port})")
    parser.add_argument("--db", default=None,
                        help="数据库连接 URL（默认读取 DATABASE_URL）")
    parser.add_argument("--no-auth", action="store_true",
                        help="关闭 /api 路由的登录校验（仅限本地开发）")
    args = parser.parse_args()

    setup_logging(settings.log_level)

    # 用于 finally 清理的引用
    web = None
    db = None

    try:
        # 初始化数据库
        from database.manager import DatabaseManager
        db = DatabaseManager(args.db)
        db.create_tables()
        logger.info(f"数据库已连接: {db.database_url}")

        # 创建 Web 应用
        from interface.web.app import create_app
        from interface.web.server import WebServer

        app = create_app(db, require_auth=False if args.no_auth else None)
        web = WebServer(app, host=args.host, port=args.port)

        # 启动
        await web.startup()

        print()
        print("=" * 60)
        print(f"  汽修门店管理系统已启动!")
        print(f"  访问地址: http://localhost:{args.port}")
        print(f"  健康检查: http://localhost:{args.port}/health")
        print(f"  数据库: {db.database_url}")
        print(f"  登录校验: {'已开启' if app.state.require_auth else '已关闭'}")
        print("=" * 60)
        print("  按 Ctrl+C 停止服务")
        print()

        # 设置信号处理，使用 asyncio 的信号处理确保事件循环能正确响应
        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()
        _shutdown_requested = False

        def signal_handler(signum):
            """处理退出信号"""
            nonlocal _shutdown_requested
            if _shutdown_requested:
                # 第二次收到信号，强制退出
                logger.warning("再次收到退出信号，强制退出...")
                for task in asyncio.all_tasks(loop):
                    task.cancel()
                return
            _shutdown_requested = True
            logger.info(f"收到信号 {signum}，正在关闭服务...")
            shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler, sig)

        # 保持运行，直到收到退出信号
        await shutdown_event.wait()

    except asyncio.CancelledError:
        logger.info("任务被取消，正在清理...")
    except KeyboardInterrupt:
        logger.info("收到键盘中断信号")
    finally:
        await _cleanup(web, db)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        print("\n已停止。")
