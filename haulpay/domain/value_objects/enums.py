"""Domain enums."""

from enum import Enum


class LoadStatus(str, Enum):
    OPEN = "Open"
    ASSIGNED = "Assigned"
    COMPLETED = "Completed"
    CANCELED = "Canceled"


class StopType(str, Enum):
    PICKUP = "PICKUP"
    DELIVERY = "DELIVERY"


class LegStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class EmploymentStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    ON_LEAVE = "On Leave"
    TERMINATED = "Terminated"


class PartnershipStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class PayeeType(str, Enum):
    """Who receives the money. Also the type of a rate profile."""

    DRIVER = "DRIVER"
    CARRIER = "CARRIER"


class PayBasis(str, Enum):
    MILEAGE = "MILEAGE"
    HOURLY = "HOURLY"
    PERCENTAGE = "PERCENTAGE"
    FLAT = "FLAT"


class RuleCategory(str, Enum):
    BASE = "BASE"
    ACCESSORIAL = "ACCESSORIAL"
    DEDUCTION = "DEDUCTION"
    MANUAL_TEMPLATE = "MANUAL_TEMPLATE"


class TriggerEvent(str, Enum):
    MILE_LOADED = "MILE_LOADED"
    MILE_EMPTY = "MILE_EMPTY"
    TIME_DURATION = "TIME_DURATION"
    TIME_WAITING = "TIME_WAITING"
    COUNT_STOPS = "COUNT_STOPS"
    FLAT_LOAD = "FLAT_LOAD"
    FLAT_LEG = "FLAT_LEG"
    ATTR_HAZMAT = "ATTR_HAZMAT"
    ATTR_TARP = "ATTR_TARP"
    PCT_OF_LOAD = "PCT_OF_LOAD"


class SelectionStrategy(str, Enum):
    ALWAYS_ACTIVE = "ALWAYS_ACTIVE"
    DISTANCE_THRESHOLD = "DISTANCE_THRESHOLD"
    MANUAL_ONLY = "MANUAL_ONLY"


class SourceType(str, Enum):
    SYSTEM = "SYSTEM"
    MANUAL = "MANUAL"


class SettlementStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"
    VOID = "VOID"


class PayFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    SEMIMONTHLY = "SEMIMONTHLY"
    MONTHLY = "MONTHLY"


class PayableTrigger(str, Enum):
    DELIVERY_DATE = "DELIVERY_DATE"
    COMPLETION_DATE = "COMPLETION_DATE"
    APPROVAL_DATE = "APPROVAL_DATE"


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def weekday(self) -> int:
        """Python weekday number (Monday == 0)."""
        return list(DayOfWeek).index(self)


class AutoAssignAction(str, Enum):
    ASSIGNED_DRIVER = "ASSIGNED_DRIVER"
    ASSIGNED_CARRIER = "ASSIGNED_CARRIER"
    NO_MATCH = "NO_MATCH"
    ALREADY_ASSIGNED = "ALREADY_ASSIGNED"
    DRIVER_INACTIVE = "DRIVER_INACTIVE"
    CARRIER_INACTIVE = "CARRIER_INACTIVE"
    ERROR = "ERROR"
