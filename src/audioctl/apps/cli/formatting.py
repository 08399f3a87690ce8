"""Human-readable rendering of session timestamps."""
from __future__ import annotations

from datetime import datetime, timezone

__all__ = ["format_relative", "format_expiry", "plural"]


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count != 1 else ''}"


def format_relative(moment: datetime | None, *, now: datetime | None = None) -> str:
    if moment is None:
        return "-"
    delta = (now or _now()) - moment
    minutes = int(delta.total_seconds() // 60)
    hours = int(delta.total_seconds() // 3600)
    days = int(delta.total_seconds() // 86400)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{plural(minutes, 'minute')} ago"
    if hours < 24:
        return f"{plural(hours, 'hour')} ago"
    if days < 7:
        return f"{plural(days, 'day')} ago"
    return moment.date().isoformat()


def format_expiry(moment: datetime | None, *, now: datetime | None = None) -> str:
    if moment is None:
        return "-"
    seconds = (moment - (now or _now())).total_seconds()
    if seconds < 0:
        return "Expired"
    hours = int(seconds // 3600)
    if hours < 24:
        return plural(hours, "hour")
    return plural(int(seconds // 86400), "day")
