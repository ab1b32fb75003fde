"""Schedule arithmetic and small formatting helpers for reports."""

from __future__ import annotations

import calendar
import datetime as dt
import secrets
import string
import time

FREQUENCIES = ("daily", "weekly", "monthly")
DEFAULT_DAY_OF_WEEK = 1  # Monday, with 0 = Sunday
DEFAULT_DAY_OF_MONTH = 1

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
_ID_ALPHABET = string.ascii_lowercase + string.digits
_BASE36_DIGITS = string.digits + string.ascii_lowercase


def parse_time_of_day(value: str) -> dt.time:
    """Parse ``HH:MM`` or ``HH:MM:SS``.

    Raises:
        ValueError: if *value* is not a valid time of day.
    """
    parts = value.strip().split(":")
    if len(parts) == 2:
        return dt.time(int(parts[0]), int(parts[1]))
    if len(parts) == 3:
        return dt.time(int(parts[0]), int(parts[1]), int(parts[2]))
    raise ValueError(f"Invalid time of day: {value!r}")


def _with_day(year: int, month: int, day: int, at: dt.time) -> dt.datetime:
    last_day = calendar.monthrange(year, month)[1]
    return dt.datetime.combine(dt.date(year, month, min(day, last_day)), at)


def compute_next_run(
    frequency: str,
    time_of_day: str,
    frequency_config: dict | None = None,
    now: dt.datetime | None = None,
) -> dt.datetime:
    """Next run time for a schedule, as a naive UTC datetime.

    * ``daily``: tomorrow at *time_of_day*.
    * ``weekly``: the next ``day_of_week`` (0 = Sunday) strictly after today.
    * ``monthly``: ``day_of_month`` of this month, or of next month when that
      moment is not in the future. Days past the end of a month are clamped
      to its last day.

    Seconds in *time_of_day* are ignored.

    Raises:
        ValueError: for an unknown frequency or a malformed time.
    """
    config = frequency_config or {}
    now = now or dt.datetime.now(dt.UTC).replace(tzinfo=None)
    at = parse_time_of_day(time_of_day).replace(second=0)
    today_at = dt.datetime.combine(now.date(), at)

    if frequency == "daily":
        return today_at + dt.timedelta(days=1)

    if frequency == "weekly":
        day_of_week = config.get("day_of_week")
        day_of_week = DEFAULT_DAY_OF_WEEK if day_of_week in (None, "") else int(day_of_week)
        today_js = (now.weekday() + 1) % 7
        days_ahead = (day_of_week + 7 - today_js) % 7 or 7
        return today_at + dt.timedelta(days=days_ahead)

    if frequency == "monthly":
        day_of_month = int(config.get("day_of_month") or DEFAULT_DAY_OF_MONTH)
        candidate = _with_day(now.year, now.month, day_of_month, at)
        if candidate <= now:
            year, month = (now.year + 1, 1) if now.month == 12 else (now.year, now.month + 1)
            candidate = _with_day(year, month, day_of_month, at)
        return candidate

    raise ValueError(f"Unknown frequency: {frequency!r}")


def format_file_size(num_bytes: int | None) -> str:
    """``0 Bytes``, ``512 Bytes``, ``1.5 KB``, ``2 MB`` ..."""
    if not num_bytes or num_bytes <= 0:
        return "0 Bytes"
    exponent = 0
    size = float(num_bytes)
    while size >= 1024 and exponent < len(_SIZE_UNITS) - 1:
        size /= 1024
        exponent += 1
    scaled = f"{size:.2f}".rstrip("0").rstrip(".")
    return f"{scaled} {_SIZE_UNITS[exponent]}"


def _base36(number: int) -> str:
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits)) or "0"


def generate_public_id(prefix: str) -> str:
    """Readable unique id such as ``rep-lx2k9q1a-4fz0c1``."""
    stamp = _base36(int(time.time() * 1000))
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
    return f"{prefix}-{stamp}-{suffix}"
