import json
import re

import httpx
import pytest
from fastapi.testclient import TestClient

from infrastructure.external.payments.phonepe_client import PhonePeClient
from main import create_app


PAYMENT_SUCCESS = {
    "success": True,
    "code": "PAYMENT_SUCCESS",
    "message": "Your payment is successful.",
    "data": {"merchantTransactionId": "TXN_1_1", "amount": 25000, "state": "COMPLETED"},
}


@pytest.fixture
def gateway_state(pay_success_body):
    return {
        "pay": (200, pay_success_body),
        "status": (200, {"success": True, "code": "PAYMENT_PENDING", "message": "Your payment is in pending state."}),
        "requests": [],
    }


@pytest.fixture
def gateway(gateway_config, gateway_state):
    def _answer(request: httpx.Request) -> httpx.Response:
        gateway_state["requests"].append(request)
        status_code, body = gateway_state["pay" if request.method == "POST" else "status"]
        return httpx.Response(status_code, json=body)

    return PhonePeClient(gateway_config, transport=httpx.MockTransport(_answer))


@pytest.fixture
def api(gateway_config, gateway):
    with TestClient(create_app(gateway_config, gateway=gateway)) as client:
        yield client


def _signed_webhook(signer, encode_notification, payload: dict) -> tuple[dict, str]:
    blob = encode_notification(payload)
    checksum = signer.sign(signer.webhook_signing_string(blob))
    return {"X-VERIFY": checksum, "Content-Type": "application/json"}, json.dumps({"response": blob})


def test_payment_routes_registered(api):
    paths = {route.path for route in api.app.routes}
    assert {"/api/initiate", "/api/status", "/api/webhook", "/health"} <= paths


def test_initiate_returns_redirect_and_transaction_id(api, pay_success_body):
    resp = api.post("/api/initiate", json={"amount": "250.00", "userId": "u1", "mobileNumber": "9999999999"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["url"] == pay_success_body["data"]["instrumentResponse"]["redirectInfo"]["url"]
    assert re.fullmatch(r"TXN_\d+_\d+", body["transactionId"])


@pytest.mark.parametrize(
    "payload",
    [
        {"amount": 0, "userId": "u1", "mobileNumber": "9999999999"},
        {"amount": "10", "mobileNumber": "9999999999"},
        {"amount": "10", "userId": "u1"},
    ],
)
def test_initiate_rejects_invalid_body(api, payload):
    resp = api.post("/api/initiate", json=payload)
    assert resp.status_code == 422
    assert resp.json()["success"] is False


def test_initiate_rejects_amount_below_one_paisa(api, gateway_state):
    resp = api.post("/api/initiate", json={"amount": "0.004", "userId": "u1", "mobileNumber": "9999999999"})
    assert resp.status_code == 400
    assert resp.json()["field"] == "amount"
    assert gateway_state["requests"] == []


def test_initiate_gateway_rejection_is_bad_gateway(api, gateway_state):
    gateway_state["pay"] = (200, {"success": False, "code": "BAD_REQUEST", "message": "Payment Failed"})
    resp = api.post("/api/initiate", json={"amount": "10", "userId": "u1", "mobileNumber": "9999999999"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "Payment Failed"


def test_status_requires_transaction_id(api):
    resp = api.get("/api/status")
    assert resp.status_code == 400
    assert resp.json()["field"] == "transactionId"


def test_status_pending_then_success(api, gateway_state):
    resp = api.get("/api/status", params={"transactionId": "TXN_1_1"})
    assert resp.status_code == 200
    assert resp.json()["status"] == "PENDING"

    gateway_state["status"] = (200, PAYMENT_SUCCESS)
    resp = api.get("/api/status", params={"transactionId": "TXN_1_1"})
    assert resp.json()["status"] == "SUCCESS"
    assert resp.json()["data"]["amount"] == 25000


def test_status_failure_exposes_message_only(api, gateway_state):
    gateway_state["status"] = (200, {"success": False, "code": "PAYMENT_ERROR", "message": "Payment Failed", "data": {"x": 1}})
    resp = api.get("/api/status", params={"transactionId": "TXN_1_1"})
    assert resp.status_code == 200
    assert resp.json() == {"status": "FAILED", "message": "Payment Failed"}


def test_valid_webhook_is_acknowledged(api, signer, encode_notification):
    headers, body = _signed_webhook(signer, encode_notification, PAYMENT_SUCCESS)
    resp = api.post("/api/webhook", content=body, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"status": "OK"}

    state = api.app.state.payment_service.repository._states["TXN_1_1"]
    assert state.status.value == "SUCCESS"


def test_webhook_success_survives_later_pending_poll(api, signer, encode_notification):
    headers, body = _signed_webhook(signer, encode_notification, PAYMENT_SUCCESS)
    api.post("/api/webhook", content=body, headers=headers)
    resp = api.get("/api/status", params={"transactionId": "TXN_1_1"})
    assert resp.json()["status"] == "SUCCESS"


def test_tampered_webhook_is_forbidden_and_never_decoded(api, gateway, signer, encode_notification, monkeypatch):
    decoded = []
    monkeypatch.setattr(gateway, "decode_webhook", lambda blob: decoded.append(blob))
    headers, _ = _signed_webhook(signer, encode_notification, PAYMENT_SUCCESS)
    tampered = json.dumps({"response": encode_notification({**PAYMENT_SUCCESS, "data": {"merchantTransactionId": "TXN_9_9"}})})

    resp = api.post("/api/webhook", content=tampered, headers=headers)

    assert resp.status_code == 403
    assert resp.json()["success"] is False
    assert decoded == []


def test_webhook_without_checksum_is_bad_request(api, encode_notification):
    body = json.dumps({"response": encode_notification(PAYMENT_SUCCESS)})
    resp = api.post("/api/webhook", content=body, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid Webhook Payload"


def test_verified_but_undecodable_webhook_is_acknowledged(api, signer):
    blob = "bm90IGpzb24="  # base64 of "not json"
    headers = {"X-VERIFY": signer.sign(signer.webhook_signing_string(blob))}
    resp = api.post("/api/webhook", content=json.dumps({"response": blob}), headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"status": "OK"}


def test_missing_credentials_is_server_error(gateway_config):
    from domain.payment.config import GatewayConfig

    config = GatewayConfig(host_url=gateway_config.host_url)
    with TestClient(create_app(config, gateway=PhonePeClient(config))) as client:
        resp = client.post("/api/initiate", json={"amount": "10", "userId": "u1", "mobileNumber": "9999999999"})
    assert resp.status_code == 500
    assert resp.json()["details"] == {"missing": ["merchant_id", "salt_key"]}


def test_salt_key_never_in_responses(api, gateway_config, signer, encode_notification):
    secret = gateway_config.salt_key.get_secret_value()
    headers, _ = _signed_webhook(signer, encode_notification, PAYMENT_SUCCESS)
    responses = [
        api.post("/api/webhook", content=json.dumps({"response": "eA=="}), headers=headers),
        api.get("/api/status"),
        api.post("/api/initiate", json={"amount": "-1"}),
    ]
    for resp in responses:
        assert secret not in resp.text


def test_health(api):
    resp = api.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"] == {"status": "healthy"}


def test_request_id_is_echoed(api):
    resp = api.get("/api/status", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.json()["request_id"] == "req-123"


def test_unsafe_request_id_is_replaced(api):
    resp = api.get("/health", headers={"X-Request-ID": "bad id with spaces"})
    assert resp.headers["X-Request-ID"] != "bad id with spaces"
    assert len(resp.headers["X-Request-ID"]) == 32


def test_polling_unknown_ids_does_not_grow_state(api, gateway_state):
    gateway_state["status"] = (200, {"success": False, "code": "PAYMENT_ERROR", "message": "Payment Failed"})
    repository = api.app.state.payment_service.repository
    before = len(repository)
    for i in range(50):
        resp = api.get("/api/status", params={"transactionId": f"RANDOM_{i}"})
        assert resp.json()["status"] == "FAILED"
    assert len(repository) == before


def test_polling_initiated_id_is_tracked(api, gateway_state):
    txn = api.post("/api/initiate", json={"amount": "10", "userId": "u1", "mobileNumber": "9999999999"}).json()["transactionId"]
    gateway_state["status"] = (200, PAYMENT_SUCCESS)
    assert api.get("/api/status", params={"transactionId": txn}).json()["status"] == "SUCCESS"

    # A later FAILED answer cannot undo the recorded SUCCESS.
    gateway_state["status"] = (200, {"success": False, "code": "PAYMENT_ERROR", "message": "Payment Failed"})
    assert api.get("/api/status", params={"transactionId": txn}).json()["status"] == "SUCCESS"
    assert len(api.app.state.payment_service.repository) == 1
