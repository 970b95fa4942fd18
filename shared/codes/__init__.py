"""
Business codes shared by every layer.

`BusinessCode` covers framework-level failures (request schema, routing,
unhandled errors); payment failures carry `shared.codes.payment_codes.PaymentCode`.
Both are rendered in the `code` field of an error body.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    SUCCESS = 0

    # Request errors (1xxxx)
    PARAM_VALIDATION_ERROR = 10003
    METHOD_NOT_ALLOWED = 10005

    # Routing / access (2xxxx, 3xxxx)
    NOT_FOUND = 20006
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # Server side (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
