from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from app.settings import get_app_timezone


def local_now(now_utc: datetime | None = None) -> datetime:
    current = now_utc or datetime.now(timezone.utc)
    return current.astimezone(get_app_timezone())


def local_today(now_utc: datetime | None = None) -> date:
    return local_now(now_utc).date()


def local_today_str(now_utc: datetime | None = None) -> str:
    return local_today(now_utc).isoformat()


def local_day_start_utc(day: date) -> datetime:
    """UTC instant at which ``day`` begins in the newsroom timezone."""
    local_start = datetime.combine(day, time.min, tzinfo=get_app_timezone())
    return local_start.astimezone(timezone.utc)


def local_day_end_utc(day: date) -> datetime:
    return local_day_start_utc(day + timedelta(days=1))


def parse_iso_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def normalize_query_date(value: str | None) -> str | None:
    """Zero-pad loose ``Y-M-D`` query values; anything else passes through."""
    if not value:
        return value
    parts = value.strip()[:10].split("-")
    if len(parts) == 3 and all(part.isdigit() for part in parts):
        year, month, day = (int(part) for part in parts)
        if year and month and day:
            return f"{year:04d}-{month:02d}-{day:02d}"
    return value
