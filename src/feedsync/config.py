"""客户端配置管理."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """客户端配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # 服务端配置
    server_url: str = "http://localhost:7766"
    request_timeout_seconds: float = 30.0

    # 列表分页
    page_size: int = 10

    # 认证凭据
    token_key: str = "nexa_token"
    credential_db_url: str = "sqlite+aiosqlite:///./feedsync.db"
    invalidation_window_seconds: float = 2.0

    # 后台刷新（0 表示关闭）
    refresh_interval_minutes: int = 0

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """获取客户端配置（带缓存）."""
    return Settings()
