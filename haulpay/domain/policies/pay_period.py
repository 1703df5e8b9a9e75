"""Period boundaries, cutoffs and payable trigger dates.

Periods are half-open: ``start <= ts < end``. Day boundaries are computed
in the pay plan's timezone.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.load import LoadStop
from haulpay.domain.entities.payable import Payable
from haulpay.domain.entities.settlement import PayPlan
from haulpay.domain.value_objects.enums import (
    DayOfWeek,
    PayableTrigger,
    PayFrequency,
    StopType,
)
from haulpay.domain.value_objects.time_range import TimeRange

# Biweekly periods are aligned to this date so every plan agrees on parity.
BIWEEKLY_ANCHOR = date(2024, 1, 1)
MS_PER_DAY = 86_400_000


@dataclass(frozen=True)
class PayPeriod:
    start: int
    end: int
    period_number: int
    pay_date: int

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)


def _to_ms(d: date, tz: ZoneInfo, at: time = time(0, 0)) -> int:
    return int(datetime.combine(d, at, tzinfo=tz).timestamp() * 1000)


def _local_date(ms: int, tz: ZoneInfo) -> date:
    return datetime.fromtimestamp(ms / 1000, tz=tz).date()


def _add_months(d: date, months: int, day: int) -> date:
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


def _period_start(plan: PayPlan, ref: date) -> date:
    if plan.frequency == PayFrequency.WEEKLY:
        start_day = (plan.period_start_day_of_week or DayOfWeek.MONDAY).weekday
        return ref - timedelta(days=(ref.weekday() - start_day) % 7)

    if plan.frequency == PayFrequency.BIWEEKLY:
        start_day = (plan.period_start_day_of_week or DayOfWeek.MONDAY).weekday
        anchor = BIWEEKLY_ANCHOR + timedelta(days=(start_day - BIWEEKLY_ANCHOR.weekday()) % 7)
        periods = (ref - anchor).days // 14
        return anchor + timedelta(days=periods * 14)

    if plan.frequency == PayFrequency.SEMIMONTHLY:
        return ref.replace(day=1 if ref.day <= 15 else 16)

    start_dom = plan.period_start_day_of_month or 1
    this_month = _add_months(ref, 0, start_dom)
    if ref < this_month:
        return _add_months(ref, -1, start_dom)
    return this_month


def _next_period_start(plan: PayPlan, start: date) -> date:
    if plan.frequency == PayFrequency.WEEKLY:
        return start + timedelta(days=7)
    if plan.frequency == PayFrequency.BIWEEKLY:
        return start + timedelta(days=14)
    if plan.frequency == PayFrequency.SEMIMONTHLY:
        if start.day == 1:
            return start.replace(day=16)
        return _add_months(start, 1, 1)
    return _add_months(start, 1, plan.period_start_day_of_month or 1)


def _period_number(plan: PayPlan, start: date) -> int:
    """1-based index of the period within its calendar year."""
    if plan.frequency == PayFrequency.WEEKLY:
        return (start.timetuple().tm_yday - 1) // 7 + 1
    if plan.frequency == PayFrequency.BIWEEKLY:
        return (start.timetuple().tm_yday - 1) // 14 + 1
    if plan.frequency == PayFrequency.SEMIMONTHLY:
        return (start.month - 1) * 2 + (1 if start.day == 1 else 2)
    return start.month


def plan_timezone(plan: PayPlan, default_timezone: str) -> ZoneInfo:
    return ZoneInfo(plan.timezone or default_timezone)


def calculate_period(plan: PayPlan, reference_ms: int, default_timezone: str = "UTC") -> PayPeriod:
    """Compute the pay period of ``plan`` that contains ``reference_ms``.

    Args:
        plan: the pay plan (frequency and anchor day).
        reference_ms: any instant inside the wanted period.
        default_timezone: used when the plan has no timezone of its own.

    Returns:
        PayPeriod with half-open bounds, period number and pay date
        (period end plus the plan's payment lag).
    """
    tz = plan_timezone(plan, default_timezone)
    start_day = _period_start(plan, _local_date(reference_ms, tz))
    end_day = _next_period_start(plan, start_day)
    end_ms = _to_ms(end_day, tz)
    return PayPeriod(
        start=_to_ms(start_day, tz),
        end=end_ms,
        period_number=_period_number(plan, start_day),
        pay_date=_to_ms(end_day + timedelta(days=plan.payment_lag_days), tz),
    )


def cutoff_instant(plan: PayPlan, period_end_ms: int, default_timezone: str = "UTC") -> int:
    """Last included instant: the end of the cutoff minute on the period's last day.

    Raises:
        ValueError: if ``cutoff_time`` is not "HH:MM".
    """
    tz = plan_timezone(plan, default_timezone)
    hours, minutes = (int(part) for part in plan.cutoff_time.split(":"))
    last_day = _local_date(period_end_ms - 1, tz)
    return _to_ms(last_day, tz, time(hours, minutes)) + 59_999


def is_within_cutoff(timestamp: int, cutoff_ms: int) -> bool:
    return timestamp <= cutoff_ms


def payable_trigger_timestamp(
    payable: Payable,
    trigger: PayableTrigger,
    leg: DispatchLeg | None,
    load_stops: list[LoadStop],
) -> int | None:
    """Instant that decides which period a payable belongs to.

    APPROVAL_DATE uses the payable's own approval stamp. DELIVERY_DATE and
    COMPLETION_DATE walk: leg completion (COMPLETION only), the leg's end
    stop check-out, leg completion, then the load's last DELIVERY stop
    (check-out, window end, window begin). Standalone payables use their
    creation time. Load-based payables with no usable date return None and
    are never pulled into a period.
    """
    if trigger == PayableTrigger.APPROVAL_DATE:
        return payable.approved_at

    if payable.load_id is None:
        return payable.created_at

    if leg is not None:
        if trigger == PayableTrigger.COMPLETION_DATE and leg.completed_at:
            return leg.completed_at
        end_stop = next((s for s in load_stops if s.id == leg.end_stop_id), None)
        if end_stop is not None:
            checked_out = end_stop.checked_out_ms()
            if checked_out is not None:
                return checked_out
        if leg.completed_at:
            return leg.completed_at

    deliveries = sorted(
        (s for s in load_stops if s.stop_type == StopType.DELIVERY),
        key=lambda s: s.sequence_number,
        reverse=True,
    )
    if deliveries:
        last = deliveries[0]
        for candidate in (last.checked_out_ms(), last.window_end_ms(), last.window_begin_ms()):
            if candidate is not None:
                return candidate
    return None
