"""
Synchronization window: an inclusive [since, until] range of UTC instants
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union
from zoneinfo import ZoneInfo
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def to_utc(value: Union[str, datetime]) -> datetime:
    """Parse an ISO string or datetime into an aware UTC datetime (naive means UTC)"""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def iso_z(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a trailing Z"""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SyncWindow(BaseModel):
    """
    Concrete window applied to one synchronization attempt.

    Both endpoints are inclusive. Instances are immutable; only `until_utc`
    is ever persisted (as a cursor).
    """

    model_config = ConfigDict(frozen=True)

    since_utc: datetime
    until_utc: datetime

    @field_validator("since_utc", "until_utc", mode="before")
    @classmethod
    def coerce_utc(cls, v):
        if isinstance(v, (str, datetime)):
            return to_utc(v)
        return v

    @model_validator(mode="after")
    def check_order(self):
        if self.since_utc > self.until_utc:
            raise ValueError(
                f"since ({iso_z(self.since_utc)}) is after until ({iso_z(self.until_utc)})"
            )
        return self

    @property
    def since_iso(self) -> str:
        return iso_z(self.since_utc)

    @property
    def until_iso(self) -> str:
        return iso_z(self.until_utc)

    @property
    def since_date(self) -> date:
        return self.since_utc.date()

    @property
    def until_date(self) -> date:
        return self.until_utc.date()

    def contains(self, moment: datetime) -> bool:
        moment = to_utc(moment)
        return self.since_utc <= moment <= self.until_utc

    def display(self, tz: str = "Europe/Paris") -> Dict[str, str]:
        """Both endpoints rendered in a local timezone for operators"""
        zone = ZoneInfo(tz)
        return {
            "sinceLocal": self.since_utc.astimezone(zone).isoformat(timespec="seconds"),
            "untilLocal": self.until_utc.astimezone(zone).isoformat(timespec="seconds"),
        }

    def to_dict(self, tz: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"sinceUtc": self.since_iso, "untilUtc": self.until_iso}
        if tz:
            body["display"] = self.display(tz)
        return body
