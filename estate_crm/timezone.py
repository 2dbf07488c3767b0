"""Office timezone helpers.

Timestamps are stored in UTC; the office works in a single local timezone
(Asia/Dubai by default). These helpers convert in both directions and format
values for display.
"""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from dateutil import parser as dtparse

OFFICE_TIMEZONE = "Asia/Dubai"

DateLike = Union[datetime, date, str]


def parse_timestamp(value: DateLike) -> datetime:
    """Parse an ISO-8601 string (or pass a datetime through); naive values are UTC."""

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    else:
        parsed = dtparse.isoparse(str(value).strip())
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_local(value: DateLike, tz: str = OFFICE_TIMEZONE) -> datetime:
    return parse_timestamp(value).astimezone(ZoneInfo(tz))


def to_utc(value: DateLike, time_of_day: Optional[str] = None, tz: str = OFFICE_TIMEZONE) -> datetime:
    """Interpret ``value`` as office-local wall time and return it in UTC.

    ``time_of_day`` ("HH:MM") replaces the clock part when given.
    """

    if isinstance(value, datetime):
        local = value if value.tzinfo is None else value.astimezone(ZoneInfo(tz)).replace(tzinfo=None)
    elif isinstance(value, date):
        local = datetime.combine(value, time())
    else:
        local = dtparse.isoparse(str(value).strip())
        if local.tzinfo is not None:
            local = local.astimezone(ZoneInfo(tz)).replace(tzinfo=None)

    if time_of_day:
        hours, minutes = _split_time(time_of_day)
        local = local.replace(hour=hours, minute=minutes, second=0, microsecond=0)

    return local.replace(tzinfo=ZoneInfo(tz)).astimezone(timezone.utc)


def combine_local(date_str: str, time_str: str, tz: str = OFFICE_TIMEZONE) -> datetime:
    """Combine separate office-local date and time inputs into a UTC datetime."""

    return to_utc(date_str, time_str, tz=tz)


def format_local(value: DateLike, fmt: str = "%d %b %Y, %H:%M", tz: str = OFFICE_TIMEZONE) -> str:
    return to_local(value, tz).strftime(fmt)


def local_time_string(value: DateLike, tz: str = OFFICE_TIMEZONE) -> str:
    return to_local(value, tz).strftime("%H:%M")


def local_date_string(value: DateLike, tz: str = OFFICE_TIMEZONE) -> str:
    return to_local(value, tz).strftime("%Y-%m-%d")


def now_local(tz: str = OFFICE_TIMEZONE) -> datetime:
    return datetime.now(ZoneInfo(tz))


def _split_time(value: str) -> tuple[int, int]:
    try:
        hours, minutes = (int(part) for part in value.strip().split(":")[:2])
    except ValueError as exc:
        raise ValueError(f"Expected a time in HH:MM format, got '{value}'") from exc
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: '{value}'")
    return hours, minutes


__all__ = [
    "OFFICE_TIMEZONE",
    "combine_local",
    "format_local",
    "local_date_string",
    "local_time_string",
    "now_local",
    "parse_timestamp",
    "to_local",
    "to_utc",
]
