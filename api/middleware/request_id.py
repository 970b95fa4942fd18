"""
请求追踪中间件

为每个请求确定 request_id（透传合法的 X-Request-ID，否则生成），
并把 request_id / client_ip / transaction_id 绑定到 structlog 上下文，
这样网关调用、状态合并等下游日志都能按请求或交易号串联。
"""
import re
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware


HEADER_NAME = "X-Request-ID"

# 外部传入的追踪ID会进入日志与响应头，只接受有限字符集
_SAFE_REQUEST_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(incoming: str | None) -> str:
    if incoming and _SAFE_REQUEST_ID.match(incoming):
        return incoming
    return uuid.uuid4().hex


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("X-Real-IP") or (request.client.host if request.client else "unknown")


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get(HEADER_NAME))
        request.state.request_id = request_id

        context = {
            "request_id": request_id,
            "client_ip": client_ip(request),
            "method": request.method,
            "path": request.url.path,
        }
        transaction_id = request.query_params.get("transactionId")
        if transaction_id:
            context["transaction_id"] = transaction_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)
        response = await call_next(request)
        response.headers[HEADER_NAME] = request_id
        return response
