"""Tagged result of assignment operations.

Assignment never raises for business-rule outcomes: callers match on the
concrete type (or its ``status`` tag) instead.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class AssignmentSuccess:
    leg_ids: tuple[int, ...] = ()
    message: str | None = None
    status: str = field(default="SUCCESS", init=False)


@dataclass(frozen=True)
class AssignmentConflict:
    conflicting_load_id: int
    conflicting_order_number: str | None
    message: str
    status: str = field(default="CONFLICT", init=False)


@dataclass(frozen=True)
class AssignmentError:
    message: str
    status: str = field(default="ERROR", init=False)


AssignmentResult = AssignmentSuccess | AssignmentConflict | AssignmentError
