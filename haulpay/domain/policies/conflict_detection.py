"""Driver double-booking across loads."""

from __future__ import annotations

from dataclasses import dataclass

from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.value_objects.time_range import TimeRange, do_time_ranges_overlap


@dataclass(frozen=True)
class ScheduledLeg:
    """A leg paired with its resolved schedule (None when unparseable)."""

    leg: DispatchLeg
    time_range: TimeRange | None


def find_conflicting_leg(
    candidate_ranges: list[TimeRange | None],
    busy: list[ScheduledLeg],
    load_id: int,
) -> DispatchLeg | None:
    """Return the first open leg on another load that overlaps any candidate range.

    Args:
        candidate_ranges: schedules of the legs being assigned.
        busy: the driver's existing legs with their schedules.
        load_id: the load being assigned; its own legs never conflict.

    Returns:
        The conflicting leg, or None. Legs whose schedule cannot be resolved
        (on either side) are skipped.
    """
    ranges = [r for r in candidate_ranges if r is not None]
    for scheduled in busy:
        other = scheduled.leg
        if other.load_id == load_id or not other.is_open():
            continue
        if scheduled.time_range is None:
            continue
        for candidate in ranges:
            if do_time_ranges_overlap(candidate, scheduled.time_range):
                return other
    return None


def is_available(
    window: TimeRange,
    busy: list[ScheduledLeg],
    exclude_load_id: int | None = None,
) -> bool:
    """True when no open leg (outside the excluded load) overlaps the window.

    Unresolvable schedules never make a driver busy.
    """
    for scheduled in busy:
        if exclude_load_id is not None and scheduled.leg.load_id == exclude_load_id:
            continue
        if not scheduled.leg.is_open() or scheduled.time_range is None:
            continue
        if do_time_ranges_overlap(window, scheduled.time_range):
            return False
    return True
