import json

import pytest

from settlement_webhook.services.ledger import InMemoryLedger
from settlement_webhook.services.webhook_service import PaymentWebhookService
from settlement_webhook.utils.enums import SettlementOutcome
from settlement_webhook.utils.exceptions import (
    LedgerUnavailable,
    MethodNotAllowed,
    ServerMisconfigured,
    SignatureInvalid,
    ValidationError,
)

from conftest import TEST_SECRET, RecordingAuditSink


class ExplodingAuditSink:
    def record(self, event) -> None:
        raise RuntimeError("audit backend down")


@pytest.fixture
def ledger():
    return InMemoryLedger()


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def service(ledger, audit_sink):
    return PaymentWebhookService(secret=TEST_SECRET, ledger=ledger, audit_sink=audit_sink)


def encode(payload) -> bytes:
    return json.dumps(payload).encode()


@pytest.mark.asyncio
async def test_completed_notification_is_settled(service, ledger, audit_sink, make_notification):
    outcome = await service.handle("POST", encode(make_notification(transactionId="txn_svc_1")))
    assert outcome == SettlementOutcome.SETTLED
    record = await ledger.get("txn_svc_1")
    assert record.raw_state == "COMPLETED"
    assert record.amount == "150.00"
    assert record.recorded_at.tzinfo is not None
    assert len(audit_sink.events) == 1
    assert audit_sink.events[0].event == "payment.settled"


@pytest.mark.asyncio
async def test_second_delivery_is_duplicate(service, ledger, make_notification):
    body = encode(make_notification())
    assert await service.handle("POST", body) == SettlementOutcome.SETTLED
    assert await service.handle("POST", body) == SettlementOutcome.DUPLICATE
    assert len(ledger) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("state", ["PENDING", "FAILED", "completed", ""])
async def test_non_completed_states_are_only_acknowledged(service, ledger, audit_sink, make_notification, state):
    outcome = await service.handle("POST", encode(make_notification(state=state)))
    assert outcome == SettlementOutcome.ACKNOWLEDGED
    assert len(ledger) == 0
    assert audit_sink.events == []


@pytest.mark.asyncio
async def test_method_is_checked_first(make_notification):
    service = PaymentWebhookService(secret=None, ledger=InMemoryLedger(), audit_sink=RecordingAuditSink())
    with pytest.raises(MethodNotAllowed):
        await service.handle("GET", b"")


@pytest.mark.asyncio
async def test_missing_secret_is_checked_before_payload(ledger, audit_sink):
    service = PaymentWebhookService(secret=None, ledger=ledger, audit_sink=audit_sink)
    with pytest.raises(ServerMisconfigured):
        await service.handle("POST", b"{not json")
    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_payload_is_validated_before_signature(service):
    with pytest.raises(ValidationError):
        await service.handle("POST", encode({"transactionId": "txn_1"}))


@pytest.mark.asyncio
async def test_bad_signature_never_reaches_ledger(service, ledger, make_notification):
    with pytest.raises(SignatureInvalid):
        await service.handle("POST", encode(make_notification(secret="wrong")))
    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_audit_failure_does_not_undo_settlement(ledger, make_notification):
    service = PaymentWebhookService(secret=TEST_SECRET, ledger=ledger, audit_sink=ExplodingAuditSink())
    outcome = await service.handle("POST", encode(make_notification(transactionId="txn_audit_1")))
    assert outcome == SettlementOutcome.SETTLED
    assert await ledger.get("txn_audit_1") is not None


class LookupFailingLedger(InMemoryLedger):
    async def get(self, transaction_id: str):
        raise LedgerUnavailable("replica down")


@pytest.mark.asyncio
async def test_duplicate_stays_acknowledged_when_lookup_fails(audit_sink, make_notification):
    ledger = LookupFailingLedger()
    service = PaymentWebhookService(secret=TEST_SECRET, ledger=ledger, audit_sink=audit_sink)
    body = encode(make_notification(transactionId="txn_lookup_down"))
    assert await service.handle("POST", body) == SettlementOutcome.SETTLED
    assert await service.handle("POST", body) == SettlementOutcome.DUPLICATE
    assert len(ledger) == 1
    assert len(audit_sink.events) == 1
