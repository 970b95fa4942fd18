from decimal import Decimal

import pytest

from application.dtos.payments import InitiatePayment, InitiatedPayment, WebhookNotification
from application.ports.payment_gateway import PaymentGateway
from application.services.payment_service import PaymentService
from domain.common.exceptions import ErrorKind, ValidationError
from domain.payment.entity import PaymentOutcome, PaymentRequest, PaymentStatus
from infrastructure.external.payments.exceptions import GatewayError, NetworkError, SignatureMismatchError
from infrastructure.repositories.transaction_state_repository import InMemoryTransactionStateRepository


class StubGateway(PaymentGateway):
    provider = "stub"

    def __init__(self, statuses=None, notification=None, authentic=True):
        self.statuses = list(statuses or [])
        self.notification = notification
        self.authentic = authentic
        self.status_calls = 0
        self.decoded = []

    async def initiate_payment(self, req: PaymentRequest) -> InitiatedPayment:  # type: ignore[override]
        return InitiatedPayment(redirect_url="https://pay.example/redirect", transaction_id="TXN_1_1")

    async def check_status(self, transaction_id: str) -> PaymentOutcome:  # type: ignore[override]
        self.status_calls += 1
        item = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(item, Exception):
            raise item
        return PaymentOutcome(transaction_id=transaction_id, status=item)

    def authenticate_webhook(self, headers: dict, body: bytes) -> str:  # type: ignore[override]
        if not self.authentic:
            raise SignatureMismatchError("Checksum verification failed", provider=self.provider)
        return "blob"

    def decode_webhook(self, blob: str) -> WebhookNotification:  # type: ignore[override]
        self.decoded.append(blob)
        if isinstance(self.notification, Exception):
            raise self.notification
        return self.notification


def _service(gateway: StubGateway) -> PaymentService:
    return PaymentService(gateway=gateway, repository=InMemoryTransactionStateRepository(), poll_interval=0)


def _success_notification(txn: str = "TXN_1_1") -> WebhookNotification:
    return WebhookNotification(success=True, code="PAYMENT_SUCCESS", transaction_id=txn)


@pytest.mark.asyncio
async def test_initiate_records_pending_state():
    svc = _service(StubGateway())
    result = await svc.initiate_payment(InitiatePayment(amount=Decimal("250.00"), userId="u1", mobileNumber="9999999999"))
    assert result.ok
    assert result.value.transaction_id == "TXN_1_1"
    state = await svc.repository.get("TXN_1_1")
    assert state.status is PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_initiate_returns_failure_for_gateway_error():
    class FailingGateway(StubGateway):
        async def initiate_payment(self, req):  # type: ignore[override]
            raise GatewayError("Payment Failed", provider=self.provider)

    svc = _service(FailingGateway())
    result = await svc.initiate_payment(InitiatePayment(amount=Decimal("1"), userId="u1", mobileNumber="9999999999"))
    assert not result.ok
    assert result.kind is ErrorKind.GATEWAY
    assert len(svc.repository) == 0
    with pytest.raises(GatewayError):
        result.unwrap()


@pytest.mark.asyncio
async def test_check_status_without_id_makes_no_call():
    gateway = StubGateway([PaymentStatus.SUCCESS])
    svc = _service(gateway)
    result = await svc.check_status("")
    assert result.kind is ErrorKind.VALIDATION
    assert isinstance(result.error, ValidationError)
    assert gateway.status_calls == 0


@pytest.mark.asyncio
async def test_check_status_does_not_record_unknown_transactions():
    gateway = StubGateway([PaymentStatus.FAILED])
    svc = _service(gateway)
    for i in range(20):
        result = await svc.check_status(f"RANDOM_{i}")
        assert result.value.status is PaymentStatus.FAILED
    assert len(svc.repository) == 0


@pytest.mark.asyncio
async def test_check_status_merges_initiated_transaction():
    gateway = StubGateway([PaymentStatus.SUCCESS, PaymentStatus.FAILED])
    svc = _service(gateway)
    await svc.initiate_payment(InitiatePayment(amount=Decimal("1"), userId="u1", mobileNumber="9999999999"))
    assert (await svc.check_status("TXN_1_1")).value.status is PaymentStatus.SUCCESS
    assert (await svc.check_status("TXN_1_1")).value.status is PaymentStatus.SUCCESS
    assert len(svc.repository) == 1


@pytest.mark.asyncio
async def test_webhook_success_is_not_regressed_by_pending_poll():
    gateway = StubGateway([PaymentStatus.PENDING], notification=_success_notification())
    svc = _service(gateway)

    webhook = await svc.handle_webhook({}, b"{}")
    assert webhook.ok
    assert webhook.value.status is PaymentStatus.SUCCESS

    polled = await svc.check_status("TXN_1_1")
    assert polled.value.status is PaymentStatus.SUCCESS


@pytest.mark.asyncio
async def test_failed_poll_is_not_overridden_by_webhook():
    gateway = StubGateway([PaymentStatus.FAILED], notification=_success_notification())
    svc = _service(gateway)
    await svc.initiate_payment(InitiatePayment(amount=Decimal("1"), userId="u1", mobileNumber="9999999999"))
    await svc.check_status("TXN_1_1")
    result = await svc.handle_webhook({}, b"{}")
    assert result.value.status is PaymentStatus.FAILED


@pytest.mark.asyncio
async def test_tampered_webhook_is_never_decoded():
    gateway = StubGateway(notification=_success_notification(), authentic=False)
    svc = _service(gateway)
    result = await svc.handle_webhook({}, b"{}")
    assert result.kind is ErrorKind.SIGNATURE_MISMATCH
    assert gateway.decoded == []
    assert len(svc.repository) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "notification",
    [
        WebhookNotification(success=False, code="PAYMENT_ERROR", transaction_id="TXN_1_1"),
        WebhookNotification(success=True, code="PAYMENT_SUCCESS"),
        GatewayError("Webhook payload could not be decoded", provider="stub"),
        RuntimeError("boom"),
    ],
)
async def test_verified_webhook_is_acknowledged_without_state_change(notification):
    svc = _service(StubGateway(notification=notification))
    result = await svc.handle_webhook({}, b"{}")
    assert result.ok
    assert result.value is None
    assert len(svc.repository) == 0


@pytest.mark.asyncio
async def test_wait_for_terminal_stops_at_first_terminal_state():
    gateway = StubGateway([PaymentStatus.PENDING, PaymentStatus.PENDING, PaymentStatus.SUCCESS])
    svc = _service(gateway)
    result = await svc.wait_for_terminal("TXN_1_1")
    assert result.value.status is PaymentStatus.SUCCESS
    assert gateway.status_calls == 3


@pytest.mark.asyncio
async def test_wait_for_terminal_gives_up_after_max_attempts():
    gateway = StubGateway([PaymentStatus.PENDING])
    svc = _service(gateway)
    result = await svc.wait_for_terminal("TXN_1_1", max_attempts=4)
    assert result.value.status is PaymentStatus.PENDING
    assert gateway.status_calls == 4


@pytest.mark.asyncio
async def test_wait_for_terminal_retries_network_errors_only():
    gateway = StubGateway([NetworkError("Payment gateway timed out", provider="stub", timeout=True), PaymentStatus.FAILED])
    svc = _service(gateway)
    result = await svc.wait_for_terminal("TXN_1_1", interval=0)
    assert result.value.status is PaymentStatus.FAILED
    assert gateway.status_calls == 2

    gateway = StubGateway([GatewayError("bad", provider="stub")])
    svc = _service(gateway)
    result = await svc.wait_for_terminal("TXN_1_1")
    assert result.kind is ErrorKind.GATEWAY
    assert gateway.status_calls == 1
