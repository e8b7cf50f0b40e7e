"""
HMAC-SHA256 signing and verification for provider notifications.
"""

import hashlib
import hmac
import re
from collections.abc import Mapping
from typing import Any

from settlement_webhook.utils.canonical import canonical_string

HEX_SIGNATURE = re.compile(r"[0-9a-fA-F]*")


def compute_signature(canonical: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_fields(fields: Mapping[str, Any], secret: str) -> str:
    """Signature the provider would attach to ``fields``."""
    return compute_signature(canonical_string(fields), secret)


def verify_signature(canonical: str, secret: str, claimed_signature: str) -> bool:
    """
    Check a provider signature against the canonical string.

    Both signatures are compared as raw bytes. A claimed signature that is not
    valid hex, or decodes to a different length than the MAC, fails without a
    byte comparison.

    Args:
        canonical: Output of ``canonical_string`` for the received fields
        secret: Shared secret configured for the provider
        claimed_signature: Hex signature taken from the notification

    Returns:
        True if the signature matches, False otherwise (never raises)
    """
    expected = bytes.fromhex(compute_signature(canonical, secret))
    # bytes.fromhex skips whitespace; only bare hex digits are a valid signature.
    if not isinstance(claimed_signature, str) or not HEX_SIGNATURE.fullmatch(claimed_signature):
        return False
    try:
        claimed = bytes.fromhex(claimed_signature)
    except ValueError:
        return False

    if len(claimed) != len(expected):
        return False

    # Constant-time comparison to prevent timing attacks
    return hmac.compare_digest(expected, claimed)
