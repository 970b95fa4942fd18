"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.types import condecimal

from domain.common.exceptions import ErrorKind, PaymentError
from domain.payment.entity import PaymentStatus


T = TypeVar("T")


class InitiatePayment(BaseModel):
    """Collaborator input for `POST /api/initiate`."""

    amount: condecimal(gt=0)  # type: ignore[valid-type]
    user_id: str = Field(alias="userId", min_length=1)
    mobile_number: str = Field(alias="mobileNumber", min_length=1)

    model_config = ConfigDict(populate_by_name=True)


class InitiatedPayment(BaseModel):
    redirect_url: str
    transaction_id: str


class InitiateResponse(BaseModel):
    success: bool = True
    url: str
    transactionId: str


class StatusResponse(BaseModel):
    status: Literal["SUCCESS", "PENDING", "FAILED"]
    data: Optional[dict[str, Any]] = None
    message: Optional[str] = None


class WebhookAck(BaseModel):
    status: str = "OK"


class WebhookNotification(BaseModel):
    """Decoded, signature-verified webhook payload."""

    success: bool = False
    code: Optional[str] = None
    message: Optional[str] = None
    transaction_id: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WebhookNotification":
        data = payload.get("data") if isinstance(payload.get("data"), dict) else {}
        txn = payload.get("merchantTransactionId") or data.get("merchantTransactionId")
        return cls(
            success=payload.get("success") is True,
            code=payload.get("code"),
            message=payload.get("message"),
            transaction_id=str(txn) if txn else None,
            data=data,
        )


@dataclass(frozen=True)
class PaymentResult(Generic[T]):
    """
    Explicit outcome of an application operation: a value or a typed error.

    Callers branch on `kind` (or `ok`); `unwrap()` re-raises the carried error
    for adapters that delegate rendering to the global exception handlers.
    """

    value: Optional[T] = None
    error: Optional[PaymentError] = None

    @classmethod
    def success(cls, value: T) -> "PaymentResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: PaymentError) -> "PaymentResult[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def status_response(status: PaymentStatus, *, message: Optional[str] = None, data: Optional[dict] = None) -> StatusResponse:
    if status is PaymentStatus.FAILED:
        return StatusResponse(status=status.value, message=message)
    return StatusResponse(status=status.value, data=data or None, message=message)


__all__ = [
    "InitiatePayment",
    "InitiatedPayment",
    "InitiateResponse",
    "StatusResponse",
    "WebhookAck",
    "WebhookNotification",
    "PaymentResult",
    "status_response",
]
