"""
Shared plumbing for gateway adapters: one pooled httpx client, timeouts,
transport-error translation and provider-tagged logging.

Every outbound call is a single attempt. Re-polling a status is the only
retry-safe operation and that policy lives in `PaymentService.wait_for_terminal`.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from core.logging_config import get_logger
from application.dtos.payments import InitiatedPayment, WebhookNotification
from application.ports.payment_gateway import PaymentGateway
from domain.payment.entity import PaymentOutcome, PaymentRequest
from infrastructure.external.payments.exceptions import NetworkError


logger = get_logger(__name__)

DEFAULT_TIMEOUTS = {"connect": 2.0, "read": 8.0, "write": 8.0, "total": 8.0}


class BasePaymentClient(PaymentGateway):
    provider: str = "base"

    def __init__(
        self,
        *,
        timeouts: Optional[dict[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeouts_cfg = {**DEFAULT_TIMEOUTS, **(timeouts or {})}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        cfg = self._timeouts_cfg
        return httpx.Timeout(cfg["total"], connect=cfg["connect"], read=cfg["read"], write=cfg["write"])

    @property
    def http(self) -> httpx.AsyncClient:
        # Created lazily so constructing an adapter never opens sockets.
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeouts, transport=self._transport)
        return self._client

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Transport failures become `NetworkError`; HTTP error statuses are returned as-is."""
        try:
            return await self.http.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("gateway_request_timeout", provider=self.provider, method=method, url=url)
            raise NetworkError("Payment gateway timed out", provider=self.provider, timeout=True) from exc
        except httpx.TransportError as exc:
            logger.warning("gateway_request_failed", provider=self.provider, method=method, url=url, error=str(exc))
            raise NetworkError("Payment gateway unreachable", provider=self.provider) from exc

    async def initiate_payment(self, req: PaymentRequest) -> InitiatedPayment:  # type: ignore[override]
        raise NotImplementedError

    async def check_status(self, transaction_id: str) -> PaymentOutcome:  # type: ignore[override]
        raise NotImplementedError

    def authenticate_webhook(self, headers: dict[str, Any], body: bytes) -> str:  # type: ignore[override]
        raise NotImplementedError

    def decode_webhook(self, blob: str) -> WebhookNotification:  # type: ignore[override]
        raise NotImplementedError

    def _log(self, event: str, **kwargs: Any) -> None:
        logger.info(event, provider=self.provider, **kwargs)
