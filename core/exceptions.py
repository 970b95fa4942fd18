"""
全局异常处理器

支付分类错误（PaymentError 子类）由 `PaymentResult.unwrap()` 抛出到这里，
按业务码映射为 HTTP 状态码；错误体中不会出现网关密钥。
"""
import traceback
import uuid

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status as http_status
from starlette.exceptions import HTTPException

from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode
from .response import ErrorResponse, error_response


CODE_TO_HTTP_STATUS = {
    BusinessCode.PARAM_VALIDATION_ERROR: http_status.HTTP_422_UNPROCESSABLE_ENTITY,
    BusinessCode.METHOD_NOT_ALLOWED: http_status.HTTP_405_METHOD_NOT_ALLOWED,
    BusinessCode.NOT_FOUND: http_status.HTTP_404_NOT_FOUND,
    BusinessCode.UNAUTHORIZED: http_status.HTTP_401_UNAUTHORIZED,
    BusinessCode.FORBIDDEN: http_status.HTTP_403_FORBIDDEN,
    BusinessCode.SYSTEM_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    BusinessCode.SERVICE_UNAVAILABLE: http_status.HTTP_503_SERVICE_UNAVAILABLE,

    PaymentCode.VALIDATION_ERROR: http_status.HTTP_400_BAD_REQUEST,
    PaymentCode.CONFIGURATION_ERROR: http_status.HTTP_500_INTERNAL_SERVER_ERROR,
    PaymentCode.PROVIDER_ERROR: http_status.HTTP_502_BAD_GATEWAY,
    PaymentCode.NETWORK_ERROR: http_status.HTTP_503_SERVICE_UNAVAILABLE,
    PaymentCode.TIMEOUT: http_status.HTTP_504_GATEWAY_TIMEOUT,
    PaymentCode.SIGNATURE_ERROR: http_status.HTTP_403_FORBIDDEN,
}

# HTTPException 状态码 -> 业务码
HTTP_STATUS_TO_CODE = {
    http_status.HTTP_401_UNAUTHORIZED: BusinessCode.UNAUTHORIZED,
    http_status.HTTP_403_FORBIDDEN: BusinessCode.FORBIDDEN,
    http_status.HTTP_404_NOT_FOUND: BusinessCode.NOT_FOUND,
    http_status.HTTP_405_METHOD_NOT_ALLOWED: BusinessCode.METHOD_NOT_ALLOWED,
    http_status.HTTP_503_SERVICE_UNAVAILABLE: BusinessCode.SERVICE_UNAVAILABLE,
}


def business_code_to_http_status(code: int) -> int:
    """未登记的业务码按 400 处理"""
    return CODE_TO_HTTP_STATUS.get(code, http_status.HTTP_400_BAD_REQUEST)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())


def _render(status_code: int, body: ErrorResponse, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def register_exception_handlers(app: FastAPI):
    logger = get_logger(__name__)

    @app.exception_handler(BusinessException)
    async def business_exception_handler(request: Request, exc: BusinessException):
        request_id = _request_id(request)
        status_code = business_code_to_http_status(exc.code)
        # 5xx 与验签失败需要告警，其余属于调用方输入问题
        log = logger.error if status_code >= 500 or status_code == http_status.HTTP_403_FORBIDDEN else logger.info
        log(
            "business_exception",
            code=int(exc.code),
            error_type=exc.error_type,
            status_code=status_code,
            error=exc.message,
        )
        return _render(
            status_code,
            error_response(
                code=exc.code,
                message=exc.message,
                error_type=exc.error_type,
                details=exc.details,
                field=exc.field,
                request_id=request_id,
            ),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        # loc 第一段是 body/query
        field = ".".join(str(loc) for loc in first.get("loc", [])[1:])
        return _render(
            http_status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_response(
                code=BusinessCode.PARAM_VALIDATION_ERROR,
                message=f"Validation failed: {first.get('msg', 'unknown')}",
                error_type="ValidationError",
                details={"errors": jsonable_encoder(errors)},
                field=field or None,
                request_id=_request_id(request),
            ),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _render(
            exc.status_code,
            error_response(
                code=HTTP_STATUS_TO_CODE.get(exc.status_code, BusinessCode.SYSTEM_ERROR),
                message=str(exc.detail),
                error_type="HTTPError",
                request_id=_request_id(request),
            ),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled_exception", error=str(exc), exc_info=True)
        # 仅 DEBUG 下回传堆栈
        details = {"exception": str(exc), "traceback": traceback.format_exc()} if app.debug else None
        return _render(
            http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_response(
                code=BusinessCode.SYSTEM_ERROR,
                message="Internal Server Error",
                error_type="SystemError",
                details=details,
                request_id=_request_id(request),
            ),
        )
