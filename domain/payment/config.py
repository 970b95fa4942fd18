"""
网关配置值对象

启动时构建一次（见 `core.settings.PaymentSettings.gateway_config`），按引用传给各组件；
本模块及其下游都不读取进程环境变量。
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from domain.common.exceptions import ConfigurationError


class GatewayEnvironment(str, Enum):
    SANDBOX = "sandbox"
    PRODUCTION = "production"


GATEWAY_BASE_URLS = {
    GatewayEnvironment.SANDBOX: "https://api-preprod.phonepe.com/apis/pg-sandbox",
    GatewayEnvironment.PRODUCTION: "https://api.phonepe.com/apis/hermes",
}

# 参与签名的路径，必须与请求 URL 逐字节一致
PAY_PATH = "/pg/v1/pay"
STATUS_PATH_PREFIX = "/pg/v1/status"

REDIRECT_PATH = "/payment-status"
CALLBACK_PATH = "/api/webhook"


class GatewayConfig(BaseModel):
    """不可变的商户凭据与部署地址"""

    model_config = ConfigDict(frozen=True)

    merchant_id: str = ""
    salt_key: SecretStr = SecretStr("")
    salt_index: int = Field(default=1, ge=0)
    environment: GatewayEnvironment = GatewayEnvironment.SANDBOX
    host_url: str = "http://localhost:8000"

    @field_validator("merchant_id", "host_url", mode="before")
    @classmethod
    def _strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("salt_key", mode="before")
    @classmethod
    def _strip_secret(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("environment", mode="before")
    @classmethod
    def _normalize_environment(cls, v):
        # 只有显式的 "production" 才切换到生产环境，其余一律沙箱
        if isinstance(v, str):
            return GatewayEnvironment.PRODUCTION if v.strip().lower() == "production" else GatewayEnvironment.SANDBOX
        return v

    @property
    def base_url(self) -> str:
        return GATEWAY_BASE_URLS[self.environment]

    @property
    def redirect_url(self) -> str:
        return self.host_url.rstrip("/") + REDIRECT_PATH

    @property
    def callback_url(self) -> str:
        return self.host_url.rstrip("/") + CALLBACK_PATH

    def require_credentials(self) -> None:
        """商户号或盐值密钥缺失时立即失败"""
        missing = []
        if not self.merchant_id:
            missing.append("merchant_id")
        if not self.salt_key.get_secret_value():
            missing.append("salt_key")
        if missing:
            raise ConfigurationError(
                "Payment gateway credentials are not configured",
                missing=missing,
            )
