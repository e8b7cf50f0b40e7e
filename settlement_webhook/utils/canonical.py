"""
Canonical string used as the exact input to the notification signature.

The provider signs every field it sends except ``signature`` itself. Fields
whose value is missing, ``None`` or ``""`` are left out, the rest are sorted by
name and joined as ``key=value`` pairs separated by ``&``. Values are not
URL-encoded.
"""

import json
from collections.abc import Mapping
from typing import Any

SIGNATURE_FIELD = "signature"


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _as_text(value: Any) -> str:
    # Required fields are always strings; the other branches only see unknown extras.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        # The provider renders whole-number floats without a fractional part.
        return str(int(value))
    if isinstance(value, (dict, list)):
        # Nested values have no agreed string form; compact JSON keeps them deterministic.
        return json.dumps(value, separators=(",", ":"), sort_keys=True)
    return str(value)


def canonical_string(fields: Mapping[str, Any]) -> str:
    """
    Build the signing input for a notification.

    Args:
        fields: Notification fields as received. ``signature`` is ignored if present.

    Returns:
        Deterministic ``k1=v1&k2=v2`` string, independent of input key order.
    """
    # Python sorts str by code point, which matches byte order for UTF-8.
    keys = sorted(
        key for key, value in fields.items()
        if key != SIGNATURE_FIELD and not _is_empty(value)
    )
    return "&".join(f"{key}={_as_text(fields[key])}" for key in keys)
