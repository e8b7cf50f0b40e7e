from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

try:
    EAT = ZoneInfo("Africa/Addis_Ababa")
except ZoneInfoNotFoundError:
    # Fallback for environments without tzdata installed.
    EAT = timezone(timedelta(hours=3))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
