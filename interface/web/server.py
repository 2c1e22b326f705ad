"""Web 服务器 - 在独立线程中运行 uvicorn

信号处理由 app.py 统一管理，这里只负责启动和停止服务器。

使用方式：
    ```python
    server = WebServer(create_app(db), port=3000)
    await server.startup()
    ...
    await server.shutdown()
    ```
"""
import asyncio
import threading
from typing import Optional

import uvicorn
from fastapi import FastAPI
from loguru import logger


class WebServer:
    """uvicorn 服务器封装

    Attributes:
        app: FastAPI 应用。
        host: 监听地址。
        port: 监听端口。
        running: 是否正在运行。
    """

    def __init__(self, app: FastAPI, host: str = "0.0.0.0", port: int = 3000):
        self.app = app
        self.host = host
        self.port = port
        self.running = False
        self._server_thread: Optional[threading.Thread] = None
        self._server: Optional[uvicorn.Server] = None  # uvicorn.Server 实例
        self._server_loop: Optional[asyncio.AbstractEventLoop] = None  # 服务器事件循环

    def _run_server(self) -> None:
        """在独立线程中运行 uvicorn 服务器"""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._server_loop = loop

        # 创建 uvicorn 配置，禁用 uvicorn 自身的信号处理
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
            loop="asyncio",
        )
        server = uvicorn.Server(config)
        server.install_signal_handlers = lambda: None
        self._server = server

        try:
            loop.run_until_complete(server.serve())
        except (OSError, RuntimeError) as e:
            logger.error(f"服务器运行出错: {e}")
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()

    async def startup(self) -> None:
        """启动 Web 服务器"""
        self.running = True
        self._server_thread = threading.Thread(target=self._run_server, daemon=True)
        self._server_thread.start()

        # 等待服务器启动
        max_wait = 5
        waited = 0.0
        while (self._server is None or not self._server.started) and waited < max_wait:
            await asyncio.sleep(0.1)
            waited += 0.1

        if self._server is not None and self._server.started:
            logger.info(f"Web 服务已启动: http://{self.host}:{self.port}")
        else:
            logger.warning(f"Web 服务在 {max_wait} 秒内未完成启动: http://{self.host}:{self.port}")

    async def shutdown(self) -> None:
        """停止 Web 服务器，确保端口被释放"""
        self.running = False
        if self._server is None:
            return

        logger.info("正在停止 Web 服务器...")
        self._server.should_exit = True

        # 等待服务器线程自然退出（最多 3 秒）
        if self._server_thread and self._server_thread.is_alive():
            self._server_thread.join(timeout=3.0)

        # 如果仍未退出，强制终止
        if self._server_thread and self._server_thread.is_alive():
            logger.warning("服务器未在 3 秒内优雅停止，强制退出...")
            self._server.force_exit = True
            self._server_thread.join(timeout=2.0)
            if self._server_thread.is_alive():
                logger.warning("服务器线程未能停止，将随主进程退出")

        self._server = None
        self._server_loop = None
        self._server_thread = None
        logger.info("Web 服务已停止")
