"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class ErrorKind(str, Enum):
    """所有支付操作共用的失败分类"""

    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    NETWORK = "network"
    GATEWAY = "gateway"
    SIGNATURE_MISMATCH = "signature_mismatch"


class PaymentError(BusinessException):
    """支付错误基类，子类固定 `kind`"""

    kind: ErrorKind


class ValidationError(PaymentError):
    """调用方输入缺失或格式错误，对外表现为 4xx"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, details: dict | None = None):
        super().__init__(
            code=PaymentCode.VALIDATION_ERROR,
            message=message,
            error_type="ValidationError",
            details=details,
            field=field,
        )


class ConfigurationError(PaymentError):
    """网关凭据缺失；凭据为空时不得继续调用网关"""

    kind = ErrorKind.CONFIGURATION

    def __init__(self, message: str, *, missing: list[str] | None = None):
        super().__init__(
            code=PaymentCode.CONFIGURATION_ERROR,
            message=message,
            error_type="ConfigurationError",
            details={"missing": missing} if missing else None,
        )
