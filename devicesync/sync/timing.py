"""Calendar arithmetic for the daily trigger and the connection timer."""

from __future__ import annotations

from datetime import datetime, timedelta

SECONDS_PER_DAY = 24 * 60 * 60


def next_local_midnight(now: datetime | None = None) -> datetime:
    """Return the first local midnight strictly after ``now``.

    Args:
        now: Reference time. Naive values are taken as local time; aware
            values are converted to the local zone. Defaults to now.
    """
    local_now = _to_local(now)
    tomorrow = (local_now + timedelta(days=1)).date()
    # Build from the date so DST shifts do not move the boundary off 00:00
    midnight = datetime(tomorrow.year, tomorrow.month, tomorrow.day)
    return midnight.astimezone() if local_now.tzinfo is not None else midnight


def seconds_until_next_midnight(now: datetime | None = None) -> float:
    """Delay from ``now`` until the next local midnight, in seconds.

    Always in (0, 86400 + DST shift]; a call made exactly at midnight
    waits a full day.
    """
    local_now = _to_local(now)
    delay = (next_local_midnight(local_now) - local_now).total_seconds()
    return max(delay, 0.001)


def format_duration(start: datetime, now: datetime | None = None) -> str:
    """Format elapsed time as ``"1d 2h 3m 4s"``.

    Negative spans (clock skew) are shown as zero.
    """
    end = now or (datetime.now(start.tzinfo) if start.tzinfo else datetime.now())
    total = max(0, int((end - start).total_seconds()))

    days, rest = divmod(total, SECONDS_PER_DAY)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{days}d {hours}h {minutes}m {seconds}s"


def _to_local(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now().astimezone()
    if now.tzinfo is None:
        return now
    return now.astimezone()
