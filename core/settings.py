"""
Payment-related settings using pydantic-settings v2 with nested env keys.

This is the only place the process environment is read for the gateway;
`gateway_config()` turns it into the immutable `GatewayConfig` handed to the
components at startup.

    PHONEPE__MERCHANT_ID, PHONEPE__SALT_KEY, PHONEPE__SALT_INDEX,
    PHONEPE__ENVIRONMENT (sandbox|production), PHONEPE__HOST_URL,
    TIMEOUTS__READ, POLLING__INTERVAL_SECONDS, ...
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.payment.config import GatewayConfig


class PaymentTimeouts(BaseModel):
    connect: float = 2.0
    read: float = 8.0
    write: float = 8.0
    total: float = 8.0


class PollingSettings(BaseModel):
    interval_seconds: float = 2.0
    max_attempts: int = 15


class PhonePeSettings(BaseModel):
    merchant_id: Optional[str] = None
    salt_key: Optional[SecretStr] = None
    salt_index: int = 1
    environment: str = "sandbox"
    host_url: str = "http://localhost:8000"


class PaymentSettings(BaseSettings):
    default_provider: str = Field(default="phonepe", validation_alias="PAYMENT__DEFAULT_PROVIDER")
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    polling: PollingSettings = Field(default_factory=PollingSettings)

    phonepe: PhonePeSettings = Field(default_factory=PhonePeSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    def gateway_config(self) -> GatewayConfig:
        pp = self.phonepe
        return GatewayConfig(
            merchant_id=pp.merchant_id or "",
            salt_key=pp.salt_key or SecretStr(""),
            salt_index=pp.salt_index,
            environment=pp.environment,
            host_url=pp.host_url,
        )


payment_settings = PaymentSettings()
