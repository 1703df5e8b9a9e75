"""Decide whether an interval-scheduled job is due."""

from __future__ import annotations

MS_PER_MINUTE = 60_000


def should_run_interval(
    now_ms: int,
    last_run_ms: int | None,
    interval_minutes: int | None,
    default_interval_minutes: int | None = None,
) -> bool:
    """True when the job has never run, has no positive interval, or is due.

    Args:
        now_ms: current time.
        last_run_ms: previous run, if any.
        interval_minutes: configured interval; falls back to the default.
        default_interval_minutes: used when no interval is configured.
    """
    interval = interval_minutes if interval_minutes is not None else default_interval_minutes
    if not interval or interval <= 0:
        return True
    if last_run_ms is None:
        return True
    return now_ms - last_run_ms >= interval * MS_PER_MINUTE
