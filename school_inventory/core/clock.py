from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from .config import settings


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def to_iso(moment: datetime) -> str:
    """Serialise ``moment`` the way every ``created_at`` column stores it."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.isoformat(timespec="seconds") + "Z"


def utcnow_iso() -> str:
    return to_iso(utcnow())


def minutes_ago_iso(minutes: int, now: datetime | None = None) -> str:
    return to_iso((now or utcnow()) - timedelta(minutes=minutes))


def today(tz: str | None = None) -> date:
    """Calendar date at the school, used for return dates and overdue checks."""
    zone = ZoneInfo(tz or settings.TZ) if (tz or settings.TZ) else timezone.utc
    return datetime.now(tz=zone).date()


def parse_iso(ts: str | None) -> datetime | None:
    """Parse a stored timestamp. Naive values are treated as UTC."""
    if not ts:
        return None
    dt = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_date(value: object, field: str) -> str:
    """Return ``value`` as ``YYYY-MM-DD`` or raise ``ValueError``.

    Accepts ``date``/``datetime`` objects and ISO strings, including full
    timestamps whose date part is kept.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raw = str(value or "").strip()
    if not raw:
        raise ValueError(f"{field} is required")
    try:
        return date.fromisoformat(raw[:10]).isoformat()
    except ValueError:
        raise ValueError(f"{field} must be an ISO date (YYYY-MM-DD)") from None
