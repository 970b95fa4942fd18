"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import ErrorKind, PaymentError
from shared.codes.payment_codes import PaymentCode


class GatewayError(PaymentError):
    """Gateway was reachable but reported a failure."""

    kind = ErrorKind.GATEWAY

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="GatewayError",
            details=full_details,
        )


class NetworkError(PaymentError):
    """Gateway unreachable or timed out. Safe to retry for polling only."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str, *, provider: str, timeout: bool = False, details: Optional[dict] = None):
        full_details = {"provider": provider, "timeout": timeout}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.TIMEOUT if timeout else PaymentCode.NETWORK_ERROR,
            message=message,
            error_type="NetworkError",
            details=full_details,
        )


class SignatureMismatchError(PaymentError):
    """Inbound notification failed authentication; its body must not be trusted."""

    kind = ErrorKind.SIGNATURE_MISMATCH

    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        full_details = {"provider": provider}
        if details:
            full_details.update(details)
        super().__init__(
            code=PaymentCode.SIGNATURE_ERROR,
            message=message,
            error_type="SignatureMismatchError",
            details=full_details,
        )
