"""Time-range value object and stop schedule parsing.

All instants are Unix epoch milliseconds. Stop schedule fields are stored
as separate date ("2024-03-01") and time ("08:00", or a full ISO datetime)
strings and may hold placeholders such as "TBD".
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from haulpay.domain.entities.dispatch_leg import DispatchLeg
    from haulpay.domain.entities.load import LoadStop


@dataclass(frozen=True)
class TimeRange:
    start: int
    end: int

    def overlaps(self, other: "TimeRange") -> bool:
        return do_time_ranges_overlap(self, other)

    def contains(self, instant: int) -> bool:
        """Half-open membership: start <= instant < end."""
        return self.start <= instant < self.end


def parse_iso_ms(value: str | None) -> int | None:
    """Parse an ISO-8601 datetime string into epoch ms.

    Offsets are honoured, naive values are read as UTC. Returns None for
    empty, placeholder or unparseable input.
    """
    if not value:
        return None
    text = value.strip()
    if not text or text.upper() == "TBD":
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def parse_stop_datetime(date: str | None, time: str | None) -> int | None:
    """Combine a stop's date and time fields into epoch ms.

    A time that already carries a date ("2024-03-01T08:00:00-05:00") is used
    as-is; otherwise "{date}T{time}" is parsed.
    """
    if not time:
        return None
    if "T" in time:
        return parse_iso_ms(time)
    if not date:
        return None
    return parse_iso_ms(f"{date.strip()}T{time.strip()}")


def do_time_ranges_overlap(a: TimeRange, b: TimeRange) -> bool:
    """Strict interval overlap. Touching endpoints do not overlap."""
    return a.start < b.end and a.end > b.start


def get_leg_time_range(
    leg: "DispatchLeg",
    stops: Iterable["LoadStop"],
) -> TimeRange | None:
    """Scheduled span of a leg: start stop's window begin to end stop's window end.

    Returns None when either stop is missing or its window cannot be parsed.
    """
    by_id = {s.id: s for s in stops}
    start_stop = by_id.get(leg.start_stop_id)
    end_stop = by_id.get(leg.end_stop_id)
    if start_stop is None or end_stop is None:
        return None
    start = parse_stop_datetime(start_stop.window_begin_date, start_stop.window_begin_time)
    end = parse_stop_datetime(end_stop.window_end_date, end_stop.window_end_time)
    if start is None or end is None:
        return None
    return TimeRange(start=start, end=end)


def now_ms() -> int:
    return int(datetime.now(tz=timezone.utc).timestamp() * 1000)
