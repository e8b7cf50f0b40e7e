import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

audit_logger = logging.getLogger("settlement_webhook.audit")


@dataclass(frozen=True)
class AuditEvent:
    transaction_id: str
    merchant_order_id: str
    amount: str
    currency: str
    recorded_at: datetime
    event: str = field(default="payment.settled")


class AuditSink(Protocol):
    def record(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink:
    def record(self, event: AuditEvent) -> None:
        audit_logger.info(
            "[AUDIT] Payment Success: %s order=%s amount=%s %s",
            event.transaction_id,
            event.merchant_order_id,
            event.amount,
            event.currency,
        )
