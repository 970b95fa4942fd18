"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from application.dtos.payments import InitiatedPayment, WebhookNotification
from domain.payment.entity import PaymentOutcome, PaymentRequest


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for third-party payment providers.

    Implementations raise the payment taxonomy (`PaymentError` subclasses);
    the application service turns those into explicit results.
    """

    provider: str

    async def initiate_payment(self, req: PaymentRequest) -> InitiatedPayment: ...

    async def check_status(self, transaction_id: str) -> PaymentOutcome: ...

    def authenticate_webhook(self, headers: dict[str, Any], body: bytes) -> str: ...

    def decode_webhook(self, blob: str) -> WebhookNotification: ...
