from enum import StrEnum


class PaymentState(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SettlementOutcome(StrEnum):
    SETTLED = "SETTLED"
    DUPLICATE = "DUPLICATE"
    ACKNOWLEDGED = "ACKNOWLEDGED"
