"""
PhonePe PG v1 adapter (salt-key checksum flow).

- initiate: POST {base}/pg/v1/pay, body {"request": base64(json)}, X-VERIFY over payload + path
- status:   GET  {base}/pg/v1/status/{merchantId}/{transactionId}, X-VERIFY over path
- webhook:  X-VERIFY over the base64 `response` blob only

The salt key is read from `GatewayConfig` at call time and never logged.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Optional

import httpx

from application.dtos.payments import InitiatedPayment, WebhookNotification
from core.logging_config import get_logger
from domain.common.exceptions import ValidationError
from domain.payment.checksum import ChecksumSigner, status_path
from domain.payment.config import PAY_PATH, GatewayConfig
from domain.payment.entity import PaymentOutcome, PaymentRequest, PaymentStatus
from domain.payment.transaction_id import TransactionIdGenerator
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import GatewayError, SignatureMismatchError
from shared.codes.payment_codes import (
    GENERIC_INITIATE_FAILURE_MESSAGE,
    GENERIC_STATUS_FAILURE_MESSAGE,
    PHONEPE_PAYMENT_PENDING,
    PHONEPE_PAYMENT_SUCCESS,
)


logger = get_logger(__name__)

VERIFY_HEADER = "X-VERIFY"
MERCHANT_HEADER = "X-MERCHANT-ID"

_FORBIDDEN_ID_CHARS = set("/?#% \t\r\n")


def encode_payload(payload: dict[str, Any]) -> str:
    raw = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def _parse_json(content: bytes) -> Optional[dict[str, Any]]:
    try:
        body = json.loads(content)
    except (ValueError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def _dig(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _header(headers: dict[str, Any], name: str) -> Optional[str]:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def map_status_response(transaction_id: str, status_code: int, content: bytes) -> PaymentOutcome:
    """
    Total mapping of a status-API answer onto the local 3-state outcome.

    Priority: success+PAYMENT_SUCCESS -> SUCCESS; PAYMENT_PENDING -> PENDING;
    everything else (non-2xx, unknown code, unparseable body) -> FAILED.
    """
    body = _parse_json(content)
    if body is None:
        return PaymentOutcome(
            transaction_id=transaction_id,
            status=PaymentStatus.FAILED,
            message=GENERIC_STATUS_FAILURE_MESSAGE,
            data={"http_status": status_code},
        )
    code = body.get("code")
    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    message = body.get("message")
    if body.get("success") is True and code == PHONEPE_PAYMENT_SUCCESS:
        status = PaymentStatus.SUCCESS
    elif code == PHONEPE_PAYMENT_PENDING:
        status = PaymentStatus.PENDING
    else:
        status = PaymentStatus.FAILED
        message = message or GENERIC_STATUS_FAILURE_MESSAGE
    return PaymentOutcome(transaction_id=transaction_id, status=status, message=message, data=data)


class PhonePeClient(BasePaymentClient):
    provider = "phonepe"

    def __init__(
        self,
        config: GatewayConfig,
        *,
        timeouts: Optional[dict[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        id_generator: Optional[TransactionIdGenerator] = None,
    ) -> None:
        super().__init__(timeouts=timeouts, transport=transport)
        self.config = config
        self._ids = id_generator or TransactionIdGenerator()

    def _signer(self) -> ChecksumSigner:
        self.config.require_credentials()
        return ChecksumSigner(self.config.salt_key.get_secret_value(), self.config.salt_index)

    def build_payload(self, req: PaymentRequest, transaction_id: str) -> dict[str, Any]:
        return {
            "merchantId": self.config.merchant_id,
            "merchantTransactionId": transaction_id,
            "merchantUserId": req.payer_user_id,
            "amount": req.amount_minor,
            "redirectUrl": self.config.redirect_url,
            "redirectMode": "POST",
            "callbackUrl": self.config.callback_url,
            "mobileNumber": req.payer_mobile_number,
            "paymentInstrument": {"type": "PAY_PAGE"},
        }

    async def initiate_payment(self, req: PaymentRequest) -> InitiatedPayment:  # type: ignore[override]
        signer = self._signer()
        # Generated only after validation and the credentials check.
        transaction_id = self._ids.next()
        encoded = encode_payload(self.build_payload(req, transaction_id))
        url = self.config.base_url + PAY_PATH
        headers = {
            "Content-Type": "application/json",
            VERIFY_HEADER: signer.sign_pay(encoded),
            MERCHANT_HEADER: self.config.merchant_id,
        }
        self._log("phonepe_pay_request", transaction_id=transaction_id, amount_minor=req.amount_minor, url=url)
        response = await self._send("POST", url, json={"request": encoded}, headers=headers)

        body = _parse_json(response.content)
        if body is None:
            raise GatewayError(
                f"Gateway returned a non-JSON response ({response.status_code})",
                provider=self.provider,
                details={"status_code": response.status_code, "transaction_id": transaction_id},
            )
        if not response.is_success or body.get("success") is not True:
            logger.warning(
                "phonepe_pay_rejected",
                transaction_id=transaction_id,
                status_code=response.status_code,
                provider_code=body.get("code"),
            )
            raise GatewayError(
                body.get("message") or GENERIC_INITIATE_FAILURE_MESSAGE,
                provider=self.provider,
                provider_code=body.get("code"),
                details={"status_code": response.status_code, "transaction_id": transaction_id},
            )
        redirect_url = _dig(body, "data", "instrumentResponse", "redirectInfo", "url")
        if not redirect_url:
            raise GatewayError(
                "Gateway response is missing the redirect URL",
                provider=self.provider,
                provider_code=body.get("code"),
                details={"transaction_id": transaction_id},
            )
        self._log("phonepe_pay_accepted", transaction_id=transaction_id)
        return InitiatedPayment(redirect_url=str(redirect_url), transaction_id=transaction_id)

    async def check_status(self, transaction_id: str) -> PaymentOutcome:  # type: ignore[override]
        transaction_id = (transaction_id or "").strip()
        if not transaction_id:
            raise ValidationError("transactionId is required", field="transactionId")
        if _FORBIDDEN_ID_CHARS.intersection(transaction_id):
            raise ValidationError("transactionId contains invalid characters", field="transactionId")
        signer = self._signer()
        path = status_path(self.config.merchant_id, transaction_id)
        headers = {
            "Content-Type": "application/json",
            VERIFY_HEADER: signer.sign(signer.status_signing_string(path)),
            MERCHANT_HEADER: self.config.merchant_id,
        }
        response = await self._send("GET", self.config.base_url + path, headers=headers)
        outcome = map_status_response(transaction_id, response.status_code, response.content)
        self._log(
            "phonepe_status_response",
            transaction_id=transaction_id,
            status_code=response.status_code,
            status=outcome.status.value,
        )
        return outcome

    def authenticate_webhook(self, headers: dict[str, Any], body: bytes) -> str:  # type: ignore[override]
        """Return the verified base64 blob; the blob itself is not decoded here."""
        checksum = _header(headers, VERIFY_HEADER)
        envelope = _parse_json(body or b"")
        blob = envelope.get("response") if envelope else None
        if not checksum or not isinstance(blob, str) or not blob:
            raise ValidationError("Invalid Webhook Payload", details={"has_checksum": bool(checksum)})
        signer = self._signer()
        if not signer.verify_webhook(blob, checksum):
            logger.warning("webhook_signature_mismatch", provider=self.provider)
            raise SignatureMismatchError("Checksum verification failed", provider=self.provider)
        return blob

    def decode_webhook(self, blob: str) -> WebhookNotification:  # type: ignore[override]
        try:
            payload = json.loads(base64.b64decode(blob, validate=True).decode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise GatewayError("Webhook payload could not be decoded", provider=self.provider) from exc
        if not isinstance(payload, dict):
            raise GatewayError("Webhook payload is not an object", provider=self.provider)
        return WebhookNotification.from_payload(payload)
