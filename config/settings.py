"""全局配置管理

所有用户可配置项均通过 .env 文件设置，运行时自动加载到此处。

使用方式：
    1. 运行 python scripts/setup_env.py 生成 .env 文件
    2. 或手动创建 .env 文件（参考 .env.example）
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用配置 - 所有字段均可通过 .env 或环境变量覆盖"""

    # ========== 数据库 ==========
    database_url: str = "sqlite:///data/oficina.db"

    # ========== Web 服务配置 ==========
    web_host: str = "0.0.0.0"
    web_port: int = 3000
    frontend_url: str = "*"  # CORS 允许的来源

    # ========== 认证 ==========
    require_auth: bool = True
    access_token_ttl_hours: int = 24
    refresh_token_ttl_days: int = 30
    min_password_length: int = 6

    # ========== 日志 ==========
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# 全局配置实例
settings = Settings()
