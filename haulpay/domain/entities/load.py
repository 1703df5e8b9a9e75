"""A customer shipment and its ordered stops."""

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.value_objects.enums import LoadStatus, StopType
from haulpay.domain.value_objects.time_range import parse_iso_ms, parse_stop_datetime


@dataclass
class LoadStop:
    id: int | None
    load_id: int
    sequence_number: int
    stop_type: StopType
    window_begin_date: str | None = None
    window_begin_time: str | None = None
    window_end_date: str | None = None
    window_end_time: str | None = None
    checked_in_at: str | None = None
    checked_out_at: str | None = None
    dwell_minutes: int | None = None
    city: str | None = None
    state: str | None = None

    def window_begin_ms(self) -> int | None:
        return parse_stop_datetime(self.window_begin_date, self.window_begin_time)

    def window_end_ms(self) -> int | None:
        return parse_stop_datetime(self.window_end_date, self.window_end_time)

    def checked_in_ms(self) -> int | None:
        return parse_iso_ms(self.checked_in_at)

    def checked_out_ms(self) -> int | None:
        return parse_iso_ms(self.checked_out_at)

    def label(self) -> str:
        place = ", ".join(p for p in (self.city, self.state) if p)
        return f"Stop {self.sequence_number}" + (f" ({place})" if place else "")


@dataclass
class Load:
    id: int | None
    org_id: str
    internal_id: str
    order_number: str | None = None
    status: LoadStatus = LoadStatus.OPEN
    effective_miles: Decimal = Decimal("0")
    is_hazmat: bool = False
    requires_tarp: bool = False
    invoice_total: Decimal | None = None
    primary_driver_id: int | None = None
    primary_carrier_partnership_id: int | None = None
    parsed_hcr: str | None = None
    parsed_trip_number: str | None = None
    is_held: bool = False
    held_reason: str | None = None
    held_at: int | None = None
    held_by: str | None = None
    created_at: int | None = None
    updated_at: int | None = None

    def is_canceled(self) -> bool:
        return self.status == LoadStatus.CANCELED

    def is_assigned(self) -> bool:
        return (
            self.primary_driver_id is not None
            or self.primary_carrier_partnership_id is not None
        )

    def reference(self) -> str:
        return self.order_number or self.internal_id
