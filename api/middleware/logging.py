"""
访问日志中间件

每个请求一条 request_started 与一条完成事件（按状态码分级），附带耗时。
请求体仅在开启时记录，并且先脱敏：
- 密钥类字段输出 ***
- 手机号只保留后 4 位
- webhook 的 base64 `response` 报文只记录长度（内容在验签前不可信）
"""
import json
import time
from typing import Any, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.config import settings
from core.logging_config import get_logger


logger = get_logger(__name__)

SKIP_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})

SECRET_FIELDS = frozenset({"salt_key", "saltkey", "secret", "password", "token"})
MOBILE_FIELDS = frozenset({"mobilenumber", "mobile_number", "phone"})
OPAQUE_FIELDS = frozenset({"response"})

_TRUTHY = {"true", "1", "yes"}
_FALSY = {"false", "0", "no"}


def mask_mobile(value: str) -> str:
    return "*" * max(len(value) - 4, 0) + value[-4:]


def sanitize(data: Any) -> Any:
    """递归脱敏 JSON 结构（键名大小写不敏感）"""
    if isinstance(data, list):
        return [sanitize(item) for item in data]
    if not isinstance(data, dict):
        return data
    cleaned = {}
    for key, value in data.items():
        name = str(key).lower()
        if name in SECRET_FIELDS:
            cleaned[key] = "***"
        elif name in MOBILE_FIELDS and isinstance(value, str):
            cleaned[key] = mask_mobile(value)
        elif name in OPAQUE_FIELDS and isinstance(value, str):
            cleaned[key] = f"<{len(value)} chars>"
        else:
            cleaned[key] = sanitize(value)
    return cleaned


class LoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.body_log_default = settings.LOG_REQUEST_BODY_ENABLE_BY_DEFAULT and settings.DEBUG
        self.body_log_max_bytes = settings.LOG_REQUEST_BODY_MAX_BYTES

    async def dispatch(self, request: Request, call_next):
        if request.url.path in SKIP_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        fields: dict[str, Any] = {"query_params": dict(request.query_params)}
        body = await self._body_for_log(request)
        if body is not None:
            fields["body"] = body
        logger.info("request_started", user_agent=request.headers.get("User-Agent"), **fields)

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=round(time.perf_counter() - started, 4),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise

        duration = time.perf_counter() - started
        status_code = response.status_code
        if status_code >= 500:
            log, event = logger.error, "request_server_error"
        elif status_code >= 400:
            log, event = logger.warning, "request_client_error"
        else:
            log, event = logger.info, "request_completed"
        log(event, status_code=status_code, duration=round(duration, 4))
        response.headers["X-Process-Time"] = f"{duration:.3f}"
        return response

    def _wants_body(self, request: Request) -> bool:
        if request.method not in ("POST", "PUT", "PATCH"):
            return False
        # X-Log-Body 按请求覆盖默认值
        override = (request.headers.get("X-Log-Body") or "").lower()
        if override in _TRUTHY:
            return True
        if override in _FALSY:
            return False
        return self.body_log_default

    async def _body_for_log(self, request: Request) -> Optional[Any]:
        if not self._wants_body(request):
            return None
        raw = await request.body()
        if not raw:
            return None
        if "application/json" not in request.headers.get("content-type", "").lower():
            return {"bytes": len(raw)}
        snippet = raw[: self.body_log_max_bytes]
        try:
            return sanitize(json.loads(snippet))
        except ValueError:
            return {"bytes": len(raw), "truncated": len(raw) > len(snippet)}
