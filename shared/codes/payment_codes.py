"""
Payment specific codes and gateway response vocabulary.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Caller/configuration errors (6xxxx)
    VALIDATION_ERROR = 60000
    CONFIGURATION_ERROR = 60001

    # Provider/Network errors
    PROVIDER_ERROR = 60100
    NETWORK_ERROR = 60101
    TIMEOUT = 60102
    SIGNATURE_ERROR = 60103


# PhonePe `code` values that carry meaning for the local 3-state outcome.
# Every other code (PAYMENT_ERROR, PAYMENT_DECLINED, TIMED_OUT, ...) maps to FAILED on poll.
PHONEPE_PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
PHONEPE_PAYMENT_PENDING = "PAYMENT_PENDING"

GENERIC_STATUS_FAILURE_MESSAGE = "Unable to determine payment status"
GENERIC_INITIATE_FAILURE_MESSAGE = "Payment Failed"
