"""One driver's or carrier's portion of a load."""

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.value_objects.enums import LegStatus, PayeeType

OPEN_LEG_STATUSES = (LegStatus.PENDING, LegStatus.ACTIVE)


@dataclass
class DispatchLeg:
    id: int | None
    load_id: int
    org_id: str
    sequence: int
    start_stop_id: int
    end_stop_id: int
    loaded_miles: Decimal = Decimal("0")
    empty_miles: Decimal = Decimal("0")
    status: LegStatus = LegStatus.PENDING
    driver_id: int | None = None
    carrier_partnership_id: int | None = None
    truck_id: int | None = None
    trailer_id: int | None = None
    completed_at: int | None = None
    created_at: int | None = None
    updated_at: int | None = None

    def is_open(self) -> bool:
        """PENDING and ACTIVE legs are the only ones assignment may touch."""
        return self.status in OPEN_LEG_STATUSES

    def payee_id(self, payee_type: PayeeType) -> int | None:
        if payee_type == PayeeType.DRIVER:
            return self.driver_id
        return self.carrier_partnership_id

    def assign_driver(self, driver_id: int, truck_id: int | None, trailer_id: int | None) -> None:
        self.driver_id = driver_id
        self.truck_id = truck_id
        self.trailer_id = trailer_id
        self.carrier_partnership_id = None

    def assign_carrier(self, partnership_id: int, trailer_id: int | None) -> None:
        self.carrier_partnership_id = partnership_id
        self.trailer_id = trailer_id
        self.driver_id = None
        self.truck_id = None

    def clear_resources(self) -> None:
        self.driver_id = None
        self.carrier_partnership_id = None
        self.truck_id = None
        self.trailer_id = None
