"""Route-based auto-assignment configuration."""

from dataclasses import dataclass

WILDCARD_TRIP = "*"


@dataclass
class RouteAssignment:
    """Maps an HCR (and optionally a trip number) to a driver or carrier."""

    id: int | None
    org_id: str
    hcr: str
    name: str
    trip_number: str | None = None
    driver_id: int | None = None
    carrier_partnership_id: int | None = None
    priority: int = 0
    is_active: bool = True
    notes: str | None = None

    def is_wildcard(self) -> bool:
        return self.trip_number is None or self.trip_number.strip() in ("", WILDCARD_TRIP)


@dataclass
class AutoAssignmentSettings:
    id: int | None
    org_id: str
    enabled: bool = False
    trigger_on_create: bool = True
    scheduled_enabled: bool = False
    schedule_interval_minutes: int | None = None
    last_scheduled_run_at: int | None = None
