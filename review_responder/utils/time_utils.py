"""Timezone helpers. All datetimes are stored as naive UTC."""
from datetime import datetime, timezone
from typing import Optional
import re

_FRACTION_RE = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    """Current time as naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_isoformat(value: Optional[datetime]) -> Optional[str]:
    """Serialize a naive-UTC (or aware) datetime as ISO 8601 with a Z suffix"""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


def parse_rfc3339(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp as returned by Google APIs into naive UTC.

    Google sends up to nanosecond precision ("2024-05-01T10:00:00.123456789Z"),
    which datetime can't hold, so the fraction is cut to microseconds.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def from_unix_timestamp(value: Optional[int]) -> Optional[datetime]:
    """Convert epoch seconds (Stripe style) into naive UTC"""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc).replace(tzinfo=None)
