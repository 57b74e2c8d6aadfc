from __future__ import annotations

from datetime import datetime, timezone

MS_PER_DAY = 24 * 60 * 60 * 1000

_NAIVE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f")


def parse_utc_time_ms(value: str) -> int:
    """Parse an exchange timestamp into milliseconds since the epoch.

    Accepts "2021-01-01 00:00:31", "2021-01-01 00:00:31.123" and ISO-8601
    strings such as "2019-09-28T15:35:02.000+00:00". A missing offset is
    treated as UTC.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty timestamp")

    parsed: datetime | None = None
    for fmt in _NAIVE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return to_time_ms(parsed)


def to_time_ms(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * MS_PER_DAY) + (delta.seconds * 1000) + (delta.microseconds // 1000)


def from_time_ms(time_ms: int) -> datetime:
    seconds, millis = divmod(time_ms, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=millis * 1000)


def format_utc_time_ms(time_ms: int) -> str:
    # 2019-08-01T00:00:00.000+00:00
    dt = from_time_ms(time_ms)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}+00:00"


def start_of_next_day(time_ms: int) -> int:
    return ((time_ms + MS_PER_DAY) // MS_PER_DAY) * MS_PER_DAY


def start_of_month(time_ms: int) -> int:
    dt = from_time_ms(time_ms)
    return to_time_ms(datetime(dt.year, dt.month, 1, tzinfo=timezone.utc))


def start_of_next_month(time_ms: int) -> int:
    dt = from_time_ms(time_ms)
    if dt.month == 12:
        return to_time_ms(datetime(dt.year + 1, 1, 1, tzinfo=timezone.utc))
    return to_time_ms(datetime(dt.year, dt.month + 1, 1, tzinfo=timezone.utc))


def days_to_time_ms(days: int) -> int:
    return days * MS_PER_DAY
