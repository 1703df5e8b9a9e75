"""Mileage split strategies used when a load is split into two legs."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol


class MileageSplitStrategy(Protocol):
    def split(
        self, total_miles: Decimal, split_index: int, stop_count: int
    ) -> tuple[Decimal, Decimal]:
        """Return (leg A miles, leg B miles) for a split after ``split_index``."""
        ...


class ProportionalStopCountSplit:
    """Apportion miles by the share of stops up to and including the split stop.

    ``split_index`` is the 0-based position of the split stop in the
    sequence-ordered stop list. Leg A gets
    ``round(total * (split_index + 1) / stop_count)`` whole miles, leg B the
    remainder, so the two always add back up to the total.
    """

    def split(
        self, total_miles: Decimal, split_index: int, stop_count: int
    ) -> tuple[Decimal, Decimal]:
        if stop_count < 2:
            raise ValueError("A split needs at least two stops")
        if not 0 < split_index < stop_count - 1:
            raise ValueError("Split stop must be an intermediate stop")

        total = Decimal(total_miles)
        leg_a = (total * (split_index + 1) / stop_count).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        return leg_a, total - leg_a
