import hashlib

from settlement_webhook.utils.canonical import canonical_string
from settlement_webhook.dto.notification import PaymentNotification


def payload_hash(notification: PaymentNotification) -> str:
    # Same field set as the signature, so retried deliveries hash identically.
    serialized = canonical_string(notification.wire_fields())
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()
