"""Leg status state machine."""

from haulpay.domain.value_objects.enums import LegStatus

LEG_TRANSITIONS: dict[LegStatus, frozenset[LegStatus]] = {
    LegStatus.PENDING: frozenset({LegStatus.ACTIVE, LegStatus.CANCELED}),
    LegStatus.ACTIVE: frozenset({LegStatus.COMPLETED, LegStatus.CANCELED}),
    LegStatus.COMPLETED: frozenset(),
    LegStatus.CANCELED: frozenset(),
}


def can_transition_leg(current: LegStatus, target: LegStatus) -> bool:
    return target in LEG_TRANSITIONS[current]
