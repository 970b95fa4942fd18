"""
响应体定义

支付接口直接返回各自的响应模型（InitiateResponse / StatusResponse / WebhookAck），
失败一律走 `ErrorResponse`：`{success: false, error, code, error_type, ...}`。
"""
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer

from shared.codes import BusinessCode


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: int
    error_type: str = "BusinessError"
    details: Optional[dict] = None
    field: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("timestamp")
    def serialize_timestamp(self, ts: datetime) -> str:
        """UTC ISO8601，以 Z 结尾"""
        ts = ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)
        return ts.isoformat().replace("+00:00", "Z")


class ServiceResponse(BaseModel):
    """非支付接口（健康检查等）的通用信封"""
    code: int = BusinessCode.SUCCESS
    message: str = "OK"
    data: Any = None


def success_response(data: Any = None, message: str = "OK") -> ServiceResponse:
    return ServiceResponse(message=message, data=data)


def error_response(
    code: int,
    message: str,
    error_type: str = "BusinessError",
    details: Optional[dict] = None,
    field: Optional[str] = None,
    request_id: Optional[str] = None,
) -> ErrorResponse:
    return ErrorResponse(
        error=message,
        code=code,
        error_type=error_type,
        details=details,
        field=field,
        request_id=request_id,
    )
