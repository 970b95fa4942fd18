"""
应用配置 - 服务自身的运行参数（网关凭据见 core/settings.py）
"""
from typing import Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """进程级配置，启动时从环境变量 / .env 读取一次"""

    PROJECT_NAME: str = Field(default="Payment Gateway Integration")
    VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="development")

    # uvicorn 监听地址
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # 日志：LOG_LEVEL 为空时按 DEBUG 推导；LOG_JSON 为空时非 DEBUG 输出 JSON
    LOG_LEVEL: str = Field(default="")
    LOG_JSON: Optional[bool] = Field(default=None)

    # 前端回跳页所在域名；JSON 数组或逗号分隔
    CORS_ORIGINS: Union[str, list[str]] = Field(default=["http://localhost:3000"])

    # 请求体日志（已脱敏），可被 X-Log-Body 头覆盖
    LOG_REQUEST_BODY_ENABLE_BY_DEFAULT: bool = Field(default=True)
    LOG_REQUEST_BODY_MAX_BYTES: int = Field(default=2048)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                # 交给 pydantic 按 JSON 解析 list[str]
                import json
                return json.loads(s)
            return [item.strip() for item in s.split(",") if item.strip()]
        return v

    @property
    def log_level(self) -> str:
        return (self.LOG_LEVEL or ("DEBUG" if self.DEBUG else "INFO")).upper()

    @property
    def log_json(self) -> bool:
        return (not self.DEBUG) if self.LOG_JSON is None else self.LOG_JSON


settings = Settings()
