"""Centralised time handling.

Publish times arrive as integer seconds since epoch and stay that way
internally. Formatting to display strings happens only here.
"""

from datetime import datetime, timezone


def bucket_start(publish_time: int, interval_seconds: int) -> int:
    """Return the start of the fixed-width bucket containing *publish_time*.

    Uses floor division so negative times still land on interval boundaries.
    """
    if interval_seconds <= 0:
        raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
    return (publish_time // interval_seconds) * interval_seconds


def seconds_to_datetime(seconds: int | float) -> datetime:
    """Convert seconds since epoch to a UTC-aware datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def format_display_time(seconds: int | float, *, with_seconds: bool = True) -> str:
    """Format seconds since epoch as a UTC wall-clock label.

    ``HH:MM:SS`` for series rows, ``HH:MM`` for candles.
    """
    fmt = "%H:%M:%S" if with_seconds else "%H:%M"
    return seconds_to_datetime(seconds).strftime(fmt)


def interval_to_seconds(interval: str | int) -> int:
    """Convert a candle interval to seconds.

    Accepts a positive integer number of seconds or a period string:
    ``SECOND``, ``<n>SECOND``, ``<n>MINUTE``, ``HOUR``, ``<n>HOUR``.
    """
    if isinstance(interval, bool):
        raise ValueError(f"Unsupported interval: {interval!r}")
    if isinstance(interval, int):
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        return interval

    p = str(interval).strip().upper()

    if p.isdigit():
        return interval_to_seconds(int(p))
    if p == "SECOND":
        return 1
    if p == "MINUTE":
        return 60
    if p == "HOUR":
        return 60 * 60

    for suffix, unit in (("SECOND", 1), ("MINUTE", 60), ("HOUR", 3600)):
        if p.endswith(suffix):
            n = p.removesuffix(suffix)
            if n.isdigit() and int(n) > 0:
                return int(n) * unit

    raise ValueError(f"Unsupported interval: {interval!r}")
