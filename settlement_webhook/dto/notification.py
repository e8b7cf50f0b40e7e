import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from settlement_webhook.utils.enums import PaymentState
from settlement_webhook.utils.exceptions import ValidationError


class PaymentNotification(BaseModel):
    """Payment-status notification as delivered by the mobile-money provider."""

    # Identifiers and amounts must arrive as JSON strings; no coercion.
    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    merchant_order_id: str = Field(alias="merchantOrderId")
    transaction_id: str = Field(alias="transactionId")
    state: str
    amount: str
    currency: str
    signature: str
    payer_msisdn: str | None = Field(default=None, alias="payerMsisdn")

    @property
    def is_completed(self) -> bool:
        return self.state == PaymentState.COMPLETED

    def wire_fields(self) -> dict[str, str | None]:
        return self.model_dump(by_alias=True)


class WebhookAck(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str


def decode_body(raw_body: bytes) -> Any:
    try:
        return json.loads(raw_body)
    except ValueError as exc:
        # Covers both malformed JSON and undecodable bytes.
        raise ValidationError("request body is not valid JSON") from exc


def parse_notification(data: Any) -> PaymentNotification:
    """
    Turn a decoded JSON value into a typed notification.

    Raises:
        ValidationError: if ``data`` is not an object or a required field is
            missing or not a string
    """
    if not isinstance(data, dict):
        raise ValidationError("notification body must be a JSON object")
    try:
        return PaymentNotification.model_validate(data)
    except PydanticValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise ValidationError(f"invalid notification fields: {', '.join(fields)}") from exc
