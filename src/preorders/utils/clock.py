"""Time helpers: aware-UTC normalisation and stall-local wall clock."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

DAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(moment: datetime | None) -> datetime | None:
    """Return ``moment`` as an aware UTC datetime. Naive values are taken to be UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def to_local(moment: datetime, timezone: str | None) -> datetime:
    """Convert ``moment`` to the wall clock of ``timezone`` (UTC when unset)."""
    return as_utc(moment).astimezone(ZoneInfo(timezone or "UTC"))


def day_name(local_moment: datetime) -> str:
    return DAY_NAMES[local_moment.weekday()]


def service_date(moment: datetime, timezone: str | None) -> str:
    """Calendar day (YYYY-MM-DD) of ``moment`` as seen by a stall in ``timezone``."""
    return to_local(moment, timezone).date().isoformat()
