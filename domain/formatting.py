import math
from datetime import datetime, timezone
from typing import Optional

SCORE_MULTIPLIER = 10000.0

# (max decimal digits, divisor, unit)
SCORE_UNITS = (
    (5, 1.0, ""),
    (8, 1e4, "K"),
    (11, 1e7, "M"),
    (13, 1e10, "B"),
)

SECONDS_PER_HOUR = 3600.0
HOURS_PER_DAY = 24.0
HOURS_PER_WEEK = 168.0
HOURS_PER_MONTH = 672.0
HOURS_PER_YEAR = 8760.0


def format_score(raw: int | float) -> str:
    """
    Render a stored score for display.

    Stored scores are scaled by SCORE_MULTIPLIER. Small values print as
    integers rounded away from zero, larger ones roll over into K/M/B and
    anything past the last unit is shown as infinity.
    """
    base = float(raw) / SCORE_MULTIPLIER
    if base == 0:
        return "0"

    sign = "-" if base < 0 else ""
    magnitude = abs(base)
    digits = math.ceil(math.log10(magnitude))

    for max_digits, divisor, unit in SCORE_UNITS:
        if digits < max_digits:
            if not unit:
                return f"{sign}{int(math.ceil(magnitude))}"
            return f"{sign}{magnitude / divisor:3.1f}{unit}"
    return f"{sign}∞"


def _pluralize(value: float, unit: str) -> str:
    if round(value) != 1:
        return unit + "s"
    return unit


def _as_aware(when: datetime) -> datetime:
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when


def relative_date(when: datetime, now: Optional[datetime] = None) -> str:
    """Human readable distance between `when` and now, eg: "3 hours ago"."""
    now = _as_aware(now or datetime.now(timezone.utc))
    delta = (now - _as_aware(when)).total_seconds()

    suffix = "ago"
    if delta < 0:
        suffix = "in the future"

    seconds = abs(delta)
    if seconds < 30:
        return "now"

    minutes = seconds / 60
    hours = seconds / SECONDS_PER_HOUR
    if hours < 1:
        if minutes < 1:
            value, unit = math.fmod(seconds, 60), "second"
        else:
            value, unit = math.fmod(minutes, 60), "minute"
    elif hours < HOURS_PER_DAY:
        value, unit = math.fmod(hours, HOURS_PER_DAY), "hour"
    elif hours < HOURS_PER_WEEK:
        value, unit = hours / HOURS_PER_DAY, "day"
    elif hours < HOURS_PER_MONTH:
        value, unit = hours / HOURS_PER_WEEK, "week"
    elif hours < HOURS_PER_YEAR:
        value, unit = hours / HOURS_PER_MONTH, "month"
    else:
        value, unit = hours / HOURS_PER_YEAR, "year"

    return f"{value:.0f} {_pluralize(value, unit)} {suffix}"


def format_date(when: datetime) -> str:
    """ISO 8601 timestamp with milliseconds and numeric offset."""
    return _as_aware(when).isoformat(timespec="milliseconds")
