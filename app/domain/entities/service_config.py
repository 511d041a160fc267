from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DEFAULT_OPEN_DAYS = WEEKDAY_NAMES[:5]
DEFAULT_OPEN_TIME = "09:00"
DEFAULT_CLOSE_TIME = "17:00"
DEFAULT_DURATION_MINUTES = 60
MIN_DURATION_MINUTES = 15

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
_DAY_ALIASES = {name[:3]: name for name in WEEKDAY_NAMES}


def parse_time_of_day(value: str | None) -> tuple[int, int] | None:
    """Parse a 24h ``HH:MM`` string. Returns (hour, minute) or None if malformed."""
    if not value:
        return None
    match = _TIME_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def normalize_weekday(name: str) -> str:
    key = name.strip().lower()
    if key in WEEKDAY_NAMES:
        return key
    if key[:3] in _DAY_ALIASES and (len(key) == 3 or _DAY_ALIASES[key[:3]].startswith(key)):
        return _DAY_ALIASES[key[:3]]
    raise ValueError(f"Unknown weekday: {name!r}")


@dataclass(frozen=True)
class ServiceConfig:
    open_days: tuple[str, ...] = DEFAULT_OPEN_DAYS
    open_time: str = DEFAULT_OPEN_TIME
    close_time: str = DEFAULT_CLOSE_TIME
    duration_minutes: int = DEFAULT_DURATION_MINUTES
    daily_capacity: int | None = None  # None means "as many as fit"

    @classmethod
    def normalize(
        cls,
        open_days: Iterable[str] | None = None,
        open_time: str | None = None,
        close_time: str | None = None,
        duration_minutes: int | None = None,
        daily_capacity: int | None = None,
    ) -> "ServiceConfig":
        """
        Build a config from loosely-typed seller input.
        Days are deduplicated and ordered Monday first, malformed times fall back
        to 09:00/17:00 and a close time not after the open time is pushed one
        slot past it when that stays on the same day.
        """
        days = {normalize_weekday(d) for d in (open_days or []) if d and d.strip()}
        ordered_days = tuple(d for d in WEEKDAY_NAMES if d in days) or DEFAULT_OPEN_DAYS

        duration = max(MIN_DURATION_MINUTES, int(duration_minutes or DEFAULT_DURATION_MINUTES))

        open_parts = parse_time_of_day(open_time) or parse_time_of_day(DEFAULT_OPEN_TIME)
        close_parts = parse_time_of_day(close_time) or parse_time_of_day(DEFAULT_CLOSE_TIME)
        open_minutes = open_parts[0] * 60 + open_parts[1]
        close_minutes = close_parts[0] * 60 + close_parts[1]
        if close_minutes <= open_minutes and open_minutes + duration < 24 * 60:
            close_minutes = open_minutes + duration

        capacity = None if daily_capacity is None else max(1, int(daily_capacity))

        return cls(
            open_days=ordered_days,
            open_time=_format_minutes(open_minutes),
            close_time=_format_minutes(close_minutes),
            duration_minutes=duration,
            daily_capacity=capacity,
        )

    def is_open_on(self, weekday: str) -> bool:
        return weekday in self.open_days


def _format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"
