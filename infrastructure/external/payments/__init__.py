"""
Factory for payment gateway clients.
"""
from __future__ import annotations

from typing import Optional

import httpx

from application.ports.payment_gateway import PaymentGateway
from domain.payment.config import GatewayConfig


def get_payment_gateway(
    config: GatewayConfig,
    provider: str = "phonepe",
    *,
    timeouts: Optional[dict[str, float]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PaymentGateway:
    name = provider.lower()
    if name in {"phonepe", "phonepe_v1"}:
        from .phonepe_client import PhonePeClient
        return PhonePeClient(config, timeouts=timeouts, transport=transport)
    raise ValueError(f"Unsupported payment provider: {name}")
