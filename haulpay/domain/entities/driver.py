"""Assignable resources: drivers, trucks and carrier partnerships."""

from dataclasses import dataclass

from haulpay.domain.value_objects.enums import EmploymentStatus, PartnershipStatus


@dataclass
class Driver:
    id: int | None
    org_id: str
    first_name: str
    last_name: str
    employment_status: EmploymentStatus = EmploymentStatus.ACTIVE
    is_deleted: bool = False
    current_truck_id: int | None = None
    pay_plan_id: int | None = None
    phone: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def is_assignable(self) -> bool:
        return self.employment_status == EmploymentStatus.ACTIVE and not self.is_deleted


@dataclass
class Truck:
    id: int | None
    org_id: str
    unit_id: str
    body_type: str | None = None
    last_latitude: float | None = None
    last_longitude: float | None = None
    last_location_updated_at: int | None = None


@dataclass
class CarrierPartnership:
    id: int | None
    org_id: str
    carrier_name: str
    mc_number: str | None = None
    status: PartnershipStatus = PartnershipStatus.ACTIVE
    pay_plan_id: int | None = None

    def is_active(self) -> bool:
        return self.status == PartnershipStatus.ACTIVE
