"""Web 层错误处理 - 领域错误到 HTTP 响应的转换"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from database.errors import RepairShopError


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return "; ".join(parts)


def register_exception_handlers(app: FastAPI) -> None:
    """注册统一的异常处理器

    所有错误响应的格式为 ``{"error": 信息}``，服务端错误可附带 ``details``。
    """

    @app.exception_handler(RepairShopError)
    async def handle_domain_error(request: Request, exc: RepairShopError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} 失败: {exc.message} {exc.detail or ''}")
        else:
            logger.debug(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")

        content = {"error": exc.message}
        if exc.detail:
            content["details"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"error": "请求数据格式无效", "details": _describe_validation_error(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} 出现未处理的异常: {exc}")
        return JSONResponse(status_code=500, content={"error": "服务器内部错误"})
