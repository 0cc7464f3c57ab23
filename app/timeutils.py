from __future__ import annotations

import calendar
import datetime
from typing import List, Tuple, Union

DateLike = Union[datetime.date, datetime.datetime, str]
WEEKDAY_TOKENS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def parse_time(label: Union[str, datetime.time]) -> datetime.time:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) time-of-day label."""
    if isinstance(label, datetime.time):
        return label
    if not isinstance(label, str):
        raise TypeError(f"Time of day must be an HH:MM string, not {type(label).__name__}.")
    parts = label.strip().split(":")
    if len(parts) not in (2, 3) or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid time of day '{label}'; expected HH:MM.")
    hour, minute = int(parts[0]), int(parts[1])
    second = int(parts[2]) if len(parts) == 3 else 0
    return datetime.time(hour, minute, second)


def parse_date(value: DateLike) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    return datetime.date.fromisoformat(str(value).strip()[:10])


def minutes_of_day(label: Union[str, datetime.time]) -> int:
    value = parse_time(label)
    return value.hour * 60 + value.minute


def format_minutes(minutes: int) -> str:
    minutes = max(0, int(minutes))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def shift_duration_hours(start_time: str, end_time: str, break_minutes: int = 0) -> float:
    """Hours between two same-day times, less ``break_minutes``.

    Midnight crossings are not supported: an ``end_time`` before
    ``start_time`` yields a negative duration.
    """
    start = combine_instant(datetime.date.min, start_time)
    end = combine_instant(datetime.date.min, end_time)
    seconds = (end - start).total_seconds() - int(break_minutes or 0) * 60
    return seconds / 3600


def combine_instant(date_value: DateLike, time_value: Union[str, datetime.time]) -> datetime.datetime:
    return datetime.datetime.combine(parse_date(date_value), parse_time(time_value))


def week_start(date_value: DateLike) -> datetime.date:
    """Return the Monday for the provided date."""
    value = parse_date(date_value)
    return value - datetime.timedelta(days=value.weekday())


def week_dates(date_value: DateLike) -> List[datetime.date]:
    start = week_start(date_value)
    return [start + datetime.timedelta(days=offset) for offset in range(7)]


def month_dates(date_value: DateLike) -> List[datetime.date]:
    value = parse_date(date_value)
    _, days = calendar.monthrange(value.year, value.month)
    return [datetime.date(value.year, value.month, day) for day in range(1, days + 1)]


def period_dates(date_value: DateLike, period: str) -> List[datetime.date]:
    if period == "week":
        return week_dates(date_value)
    if period == "month":
        return month_dates(date_value)
    return [parse_date(date_value)]


def period_range(date_value: DateLike, period: str) -> Tuple[datetime.date, datetime.date]:
    dates = period_dates(date_value, period)
    return dates[0], dates[-1]


def add_months(date_value: datetime.date, months: int) -> datetime.date:
    month_index = date_value.month - 1 + months
    year = date_value.year + month_index // 12
    month = month_index % 12 + 1
    _, days = calendar.monthrange(year, month)
    return datetime.date(year, month, min(date_value.day, days))


def step_date(date_value: DateLike, period: str, direction: str) -> datetime.date:
    """Move one ``period`` backwards ("prev") or forwards ("next")."""
    if direction not in ("prev", "next"):
        raise ValueError(f"Unknown navigation direction '{direction}'.")
    value = parse_date(date_value)
    sign = 1 if direction == "next" else -1
    if period == "month":
        return add_months(value, sign)
    if period == "week":
        return value + datetime.timedelta(days=7 * sign)
    return value + datetime.timedelta(days=sign)


def format_duration(hours: float) -> str:
    whole = int(hours)
    minutes = int(round((hours - whole) * 60))
    if minutes == 60:
        whole, minutes = whole + 1, 0
    if minutes == 0:
        return f"{whole}h"
    return f"{whole}h {minutes}m"


def time_status(date_value: DateLike, start_time: str, end_time: str, now: datetime.datetime) -> str:
    start = combine_instant(date_value, start_time)
    end = combine_instant(date_value, end_time)
    if now > end:
        return "past"
    if start <= now <= end:
        return "current"
    return "future"
