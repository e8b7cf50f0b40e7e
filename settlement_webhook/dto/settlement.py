from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from settlement_webhook.utils.time import EAT


class SettlementRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True, populate_by_name=True)

    transaction_id: str = Field(serialization_alias="transactionId")
    merchant_order_id: str = Field(serialization_alias="merchantOrderId")
    amount: str
    currency: str
    raw_state: str = Field(serialization_alias="rawState")
    recorded_at: datetime = Field(serialization_alias="recordedAt")
    payer_msisdn: str | None = Field(default=None, serialization_alias="payerMsisdn")
    payload_hash: str = Field(exclude=True)

    @field_serializer("recorded_at", when_used="json")
    def serialize_eat(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            # SQLite hands back naive values; they are stored as UTC.
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(EAT)
