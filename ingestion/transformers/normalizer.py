"""
Shared coercion helpers used by every per-source normalizer.

Missing numeric fields become 0 so aggregate sums stay correct; missing
identifiers become None. Key-column identifiers use `key_part`, which
falls back to "" so a key projection is never partial.
"""

from typing import Any, Optional
from datetime import date, datetime, timezone
import hashlib
import logging

logger = logging.getLogger(__name__)


def to_float(value: Any, default: float = 0.0) -> float:
    """Safely parse float value ("12.5", 12, None, "")"""
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    """Safely parse int value"""
    if value is None or value == "":
        return default
    try:
        return int(float(value))  # Handle "10.0" strings
    except (ValueError, TypeError):
        return default


def to_str(value: Any) -> Optional[str]:
    """Identifier as string, or None when absent"""
    if value is None or value == "":
        return None
    return str(value)


def key_part(value: Any) -> str:
    return "" if value is None else str(value)


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO strings, "YYYY-MM-DD HH:MM:SS" or epoch seconds, returned in UTC"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            logger.debug(f"Unparseable datetime value: {value!r}")
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_day(value: Any) -> Optional[date]:
    """Day from "2024-01-31", "2024/01/31" or "2024-01-31 00:00:00" """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10].replace("/", "-")
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def hash_email(email: Optional[str]) -> Optional[str]:
    """SHA-256 of the lower-cased address; raw addresses are never stored"""
    if not email:
        return None
    return hashlib.sha256(email.lower().encode("utf-8")).hexdigest()


def cost_per_click(spend: float, clicks: int) -> Optional[float]:
    return spend / clicks if clicks > 0 else None


def cost_per_mille(spend: float, impressions: int) -> Optional[float]:
    return spend / impressions * 1000 if impressions > 0 else None
