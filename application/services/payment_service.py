"""
Application service orchestrating payment use-cases.

This class depends only on the application PaymentGateway port, the domain
state repository and DTOs. Gateway implementations are provided by
infrastructure and must be injected from the composition root (API), keeping
dependencies one-way.

Every operation returns a `PaymentResult`; taxonomy errors raised by the
gateway never escape as exceptions.
"""
from __future__ import annotations

from typing import Any, Optional

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from application.dtos.payments import (
    InitiatePayment,
    InitiatedPayment,
    PaymentResult,
    WebhookNotification,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import ErrorKind, PaymentError, ValidationError
from domain.payment.entity import PaymentOutcome, PaymentRequest, PaymentStatus
from domain.payment.repository import TransactionStateRepository
from shared.codes.payment_codes import PHONEPE_PAYMENT_SUCCESS


logger = get_logger(__name__)


def _keep_polling(result: PaymentResult[PaymentOutcome]) -> bool:
    if result.ok:
        return not result.value.is_terminal
    # Polling is retry-safe; only transport failures are worth another try.
    return result.kind is ErrorKind.NETWORK


class PaymentService:
    def __init__(
        self,
        gateway: PaymentGateway,
        repository: TransactionStateRepository,
        *,
        poll_interval: float = 2.0,
        poll_max_attempts: int = 15,
    ) -> None:
        self.gateway = gateway
        self.repository = repository
        self.poll_interval = poll_interval
        self.poll_max_attempts = poll_max_attempts

    async def initiate_payment(self, req: InitiatePayment) -> PaymentResult[InitiatedPayment]:
        logger.info(
            "payment_initiate_request",
            provider=self.gateway.provider,
            user_id=req.user_id,
            amount=str(req.amount),
        )
        try:
            request = PaymentRequest(
                amount=req.amount,
                payer_user_id=req.user_id,
                payer_mobile_number=req.mobile_number,
            )
            initiated = await self.gateway.initiate_payment(request)
        except PaymentError as exc:
            self._log_failure("payment_initiate_failed", exc)
            return PaymentResult.failure(exc)
        await self.repository.apply(PaymentOutcome.pending(initiated.transaction_id))
        logger.info(
            "payment_initiate_response",
            provider=self.gateway.provider,
            transaction_id=initiated.transaction_id,
        )
        return PaymentResult.success(initiated)

    async def check_status(self, transaction_id: Optional[str]) -> PaymentResult[PaymentOutcome]:
        """
        Poll the gateway once.

        Transactions this process initiated or saw confirmed by a verified
        webhook get the merged (monotonic) state; any other id gets the raw
        observation and is not recorded.
        """
        if not (transaction_id or "").strip():
            return PaymentResult.failure(ValidationError("transactionId is required", field="transactionId"))
        try:
            observed = await self.gateway.check_status(transaction_id)
        except PaymentError as exc:
            self._log_failure("payment_status_failed", exc, transaction_id=transaction_id)
            return PaymentResult.failure(exc)
        merged = await self.repository.apply_if_tracked(observed)
        tracked = merged is not None
        merged = merged or observed
        logger.info(
            "payment_status_polled",
            provider=self.gateway.provider,
            transaction_id=merged.transaction_id,
            observed=observed.status.value,
            status=merged.status.value,
            tracked=tracked,
        )
        return PaymentResult.success(merged)

    async def wait_for_terminal(
        self,
        transaction_id: str,
        *,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> PaymentResult[PaymentOutcome]:
        """
        Re-poll until SUCCESS/FAILED or attempts run out.

        Returns the last result, which may still be PENDING or a NetworkError.
        Abandoning the wait has no effect on gateway-side state.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts or self.poll_max_attempts),
            wait=wait_fixed(self.poll_interval if interval is None else interval),
            retry=retry_if_result(_keep_polling),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        return await retrying(self.check_status, transaction_id)

    async def handle_webhook(self, headers: dict[str, Any], body: bytes) -> PaymentResult[Optional[PaymentOutcome]]:
        """
        Authenticate then process a gateway push.

        Failures before and during signature verification are returned as
        errors. Anything after verification is logged and reported as success
        so the gateway is always acknowledged.
        """
        try:
            blob = self.gateway.authenticate_webhook(headers, body)
        except PaymentError as exc:
            self._log_failure("payment_webhook_rejected", exc)
            return PaymentResult.failure(exc)

        try:
            notification = self.gateway.decode_webhook(blob)
            outcome = await self._apply_notification(notification)
        except PaymentError as exc:
            self._log_failure("payment_webhook_processing_failed", exc)
            return PaymentResult.success(None)
        except Exception as exc:
            logger.error("payment_webhook_processing_failed", error=str(exc), exc_info=True)
            return PaymentResult.success(None)
        return PaymentResult.success(outcome)

    async def _apply_notification(self, notification: WebhookNotification) -> Optional[PaymentOutcome]:
        # Webhooks only move state toward SUCCESS; they never assert FAILED.
        if notification.code != PHONEPE_PAYMENT_SUCCESS:
            logger.info(
                "payment_webhook_informational",
                transaction_id=notification.transaction_id,
                code=notification.code,
            )
            return None
        if not notification.transaction_id:
            logger.warning("payment_webhook_missing_transaction_id", code=notification.code)
            return None
        merged = await self.repository.apply(
            PaymentOutcome(
                transaction_id=notification.transaction_id,
                status=PaymentStatus.SUCCESS,
                message=notification.message,
                data=notification.data,
            )
        )
        # TODO: hand confirmed payments to a ledger writer once one exists; only the in-memory view is updated today.
        logger.info(
            "payment_confirmed_by_webhook",
            transaction_id=notification.transaction_id,
            status=merged.status.value,
        )
        return merged

    def _log_failure(self, event: str, exc: PaymentError, **kwargs: Any) -> None:
        log = logger.error if exc.kind in (ErrorKind.CONFIGURATION, ErrorKind.SIGNATURE_MISMATCH) else logger.warning
        log(
            event,
            provider=self.gateway.provider,
            kind=exc.kind.value,
            error=exc.message,
            error_type=exc.error_type,
            **kwargs,
        )

    async def aclose(self) -> None:
        # Best-effort close underlying resources
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
