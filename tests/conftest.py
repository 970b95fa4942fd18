"""Pytest bootstrap configuration.

Seed the environment before application modules read settings, and provide
a gateway configuration plus stubbed HTTP transports for the PhonePe client.
"""
import os

os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("PHONEPE__MERCHANT_ID", "")
os.environ.setdefault("PHONEPE__SALT_KEY", "")

import base64
import json

import httpx
import pytest

from domain.payment.checksum import ChecksumSigner
from domain.payment.config import GatewayConfig
from infrastructure.external.payments.phonepe_client import PhonePeClient


MERCHANT_ID = "MERCHANTUAT"
SALT_KEY = "099eb0cd-02cf-4e2a-8aca-3e6c6aff0399"
SALT_INDEX = 1
HOST_URL = "https://shop.example.com"
REDIRECT_URL = "https://mercury-uat.phonepe.com/transact/simulator?token=abc"


@pytest.fixture
def gateway_config() -> GatewayConfig:
    return GatewayConfig(
        merchant_id=MERCHANT_ID,
        salt_key=SALT_KEY,
        salt_index=SALT_INDEX,
        environment="sandbox",
        host_url=HOST_URL,
    )


@pytest.fixture
def signer() -> ChecksumSigner:
    return ChecksumSigner(SALT_KEY, SALT_INDEX)


class GatewayStub:
    """Records outbound requests and answers through `responder`."""

    def __init__(self, responder):
        self.responder = responder
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def make_client(gateway_config):
    def _make(responder, config: GatewayConfig | None = None, **kwargs):
        stub = GatewayStub(responder)
        client = PhonePeClient(config or gateway_config, transport=stub.transport, **kwargs)
        return client, stub

    return _make


@pytest.fixture
def encode_notification():
    def _encode(payload: dict) -> str:
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    return _encode


@pytest.fixture
def pay_success_body() -> dict:
    return {
        "success": True,
        "code": "PAYMENT_INITIATED",
        "message": "Payment initiated",
        "data": {
            "merchantId": MERCHANT_ID,
            "instrumentResponse": {
                "type": "PAY_PAGE",
                "redirectInfo": {"url": REDIRECT_URL, "method": "GET"},
            },
        },
    }
