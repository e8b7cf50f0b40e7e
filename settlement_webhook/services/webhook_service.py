import logging
from typing import Any

from settlement_webhook.dto.notification import PaymentNotification, decode_body, parse_notification
from settlement_webhook.dto.settlement import SettlementRecord
from settlement_webhook.services.audit import AuditEvent, AuditSink
from settlement_webhook.services.ledger import Ledger
from settlement_webhook.utils.canonical import canonical_string
from settlement_webhook.utils.enums import SettlementOutcome
from settlement_webhook.utils.exceptions import (
    LedgerUnavailable,
    MethodNotAllowed,
    ServerMisconfigured,
    SignatureInvalid,
)
from settlement_webhook.utils.idempotency import payload_hash
from settlement_webhook.utils.signature import verify_signature
from settlement_webhook.utils.time import utcnow

logger = logging.getLogger(__name__)


class PaymentWebhookService:
    """
    Processes one provider notification per call.

    Stages run in order and stop at the first failure: method check, secret
    check, payload validation, signature verification, then settlement for
    ``COMPLETED`` notifications. Any number of deliveries of the same
    notification leave exactly one settlement record behind.
    """

    def __init__(self, *, secret: str | None, ledger: Ledger, audit_sink: AuditSink):
        self.secret = secret
        self.ledger = ledger
        self.audit_sink = audit_sink

    async def handle(self, method: str, raw_body: bytes) -> SettlementOutcome:
        if method.upper() != "POST":
            raise MethodNotAllowed(f"method {method} is not accepted")

        # Never fall back to skipping verification when the secret is absent.
        if not self.secret:
            logger.error("Payment webhook secret is not configured; rejecting notification")
            raise ServerMisconfigured("payment webhook secret is not configured")

        fields = decode_body(raw_body)
        notification = parse_notification(fields)
        self.authenticate(fields, notification)

        if not notification.is_completed:
            logger.info(
                "Acknowledged non-settling notification. transaction_id=%s state=%s",
                notification.transaction_id,
                notification.state,
            )
            return SettlementOutcome.ACKNOWLEDGED

        return await self.settle(notification)

    def authenticate(self, fields: dict[str, Any], notification: PaymentNotification) -> None:
        # Sign over the fields as received so provider-added fields still verify.
        if not verify_signature(canonical_string(fields), self.secret, notification.signature):
            logger.warning("Rejected notification with invalid signature. transaction_id=%s", notification.transaction_id)
            raise SignatureInvalid(f"signature mismatch for transaction {notification.transaction_id}")

    async def settle(self, notification: PaymentNotification) -> SettlementOutcome:
        record = SettlementRecord(
            transaction_id=notification.transaction_id,
            merchant_order_id=notification.merchant_order_id,
            amount=notification.amount,
            currency=notification.currency,
            raw_state=notification.state,
            payer_msisdn=notification.payer_msisdn,
            payload_hash=payload_hash(notification),
            recorded_at=utcnow(),
        )

        # First delivery wins: insert once by unique transaction_id.
        result = await self.ledger.try_insert(notification.transaction_id, record)
        if not result.inserted:
            await self._log_duplicate(record)
            return SettlementOutcome.DUPLICATE

        self._emit_audit(record)
        return SettlementOutcome.SETTLED

    async def _log_duplicate(self, record: SettlementRecord) -> None:
        # The insert already settled this delivery as a no-op; the lookup only feeds the log.
        try:
            existing = await self.ledger.get(record.transaction_id)
        except LedgerUnavailable:
            logger.warning("Duplicate delivery ignored; stored record unavailable. transaction_id=%s", record.transaction_id)
            return
        if existing is not None and existing.payload_hash != record.payload_hash:
            logger.warning(
                "Received settlement with duplicate transaction_id but different payload. "
                "transaction_id=%s existing_payload_hash=%s new_payload_hash=%s",
                record.transaction_id,
                existing.payload_hash,
                record.payload_hash,
            )
        else:
            logger.info("Duplicate delivery ignored. transaction_id=%s", record.transaction_id)

    def _emit_audit(self, record: SettlementRecord) -> None:
        event = AuditEvent(
            transaction_id=record.transaction_id,
            merchant_order_id=record.merchant_order_id,
            amount=record.amount,
            currency=record.currency,
            recorded_at=record.recorded_at,
        )
        try:
            self.audit_sink.record(event)
        except Exception:  # noqa: BLE001
            # The settlement is already durable; a lost audit line must not undo it.
            logger.exception("Audit sink failed. transaction_id=%s", record.transaction_id)
