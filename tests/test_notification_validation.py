import pytest
from pydantic import ValidationError as PydanticValidationError

from settlement_webhook.dto.notification import decode_body, parse_notification
from settlement_webhook.utils.exceptions import ValidationError

REQUIRED_FIELDS = ["merchantOrderId", "transactionId", "state", "amount", "currency", "signature"]


@pytest.fixture
def body():
    return {
        "merchantOrderId": "order_1",
        "transactionId": "txn_1",
        "state": "COMPLETED",
        "amount": "25.00",
        "currency": "ETB",
        "signature": "ab" * 32,
    }


def test_valid_body_parses_to_typed_notification(body):
    notification = parse_notification({**body, "payerMsisdn": "251900000000"})
    assert notification.merchant_order_id == "order_1"
    assert notification.transaction_id == "txn_1"
    assert notification.amount == "25.00"
    assert notification.payer_msisdn == "251900000000"
    assert notification.is_completed


def test_payer_msisdn_is_optional(body):
    notification = parse_notification(body)
    assert notification.payer_msisdn is None
    assert parse_notification({**body, "payerMsisdn": None}).payer_msisdn is None


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_missing_required_field_is_rejected(body, field):
    del body[field]
    with pytest.raises(ValidationError):
        parse_notification(body)


@pytest.mark.parametrize("value", [25, 25.0, True, None, ["25"], {"value": "25"}])
def test_non_string_amount_is_rejected(body, value):
    with pytest.raises(ValidationError):
        parse_notification({**body, "amount": value})


def test_numeric_transaction_id_is_rejected(body):
    with pytest.raises(ValidationError):
        parse_notification({**body, "transactionId": 12345})


def test_non_string_payer_msisdn_is_rejected(body):
    with pytest.raises(ValidationError):
        parse_notification({**body, "payerMsisdn": 251900000000})


@pytest.mark.parametrize("data", [[], "text", 1, None])
def test_non_object_body_is_rejected(data):
    with pytest.raises(ValidationError):
        parse_notification(data)


def test_unknown_fields_are_ignored(body):
    notification = parse_notification({**body, "channel": "USSD", "extra": 1})
    assert notification.transaction_id == "txn_1"
    assert "channel" not in notification.wire_fields()


def test_non_completed_state_is_accepted(body):
    assert parse_notification({**body, "state": "PENDING"}).is_completed is False


def test_notification_is_immutable(body):
    notification = parse_notification(body)
    with pytest.raises(PydanticValidationError):
        notification.amount = "1.00"


def test_error_detail_names_fields_not_values(body):
    body["amount"] = 99
    with pytest.raises(ValidationError) as excinfo:
        parse_notification(body)
    assert "amount" in excinfo.value.detail
    assert "99" not in excinfo.value.detail
    assert excinfo.value.status_code == 422
    assert excinfo.value.message == "Invalid Payload"


@pytest.mark.parametrize("raw", [b"", b"{not json", b"\x80abc"])
def test_undecodable_body_is_rejected(raw):
    with pytest.raises(ValidationError):
        decode_body(raw)


def test_decode_body_returns_json_value():
    assert decode_body(b'{"a": "1"}') == {"a": "1"}


def test_python_field_names_are_not_accepted(body):
    body["merchant_order_id"] = body.pop("merchantOrderId")
    body["transaction_id"] = body.pop("transactionId")
    with pytest.raises(ValidationError):
        parse_notification(body)
