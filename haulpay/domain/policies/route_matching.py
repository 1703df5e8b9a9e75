"""Pick the route assignment for an HCR and trip number."""

from __future__ import annotations

from haulpay.domain.entities.route_assignment import RouteAssignment


def _norm(value: str | None) -> str:
    return (value or "").strip().upper()


def match_route_assignment(
    assignments: list[RouteAssignment],
    hcr: str | None,
    trip_number: str | None,
) -> RouteAssignment | None:
    """Find the best active assignment for a load's HCR and trip number.

    An exact trip match beats a wildcard (no trip, or "*") assignment for the
    same HCR. Ties go to the lowest priority value, then the lowest id.
    Comparison ignores case and surrounding whitespace.
    """
    if not _norm(hcr):
        return None

    same_hcr = [a for a in assignments if a.is_active and _norm(a.hcr) == _norm(hcr)]

    def best(items: list[RouteAssignment]) -> RouteAssignment | None:
        return min(items, key=lambda a: (a.priority, a.id or 0), default=None)

    if _norm(trip_number):
        exact = [
            a for a in same_hcr
            if not a.is_wildcard() and _norm(a.trip_number) == _norm(trip_number)
        ]
        if exact:
            return best(exact)
    return best([a for a in same_hcr if a.is_wildcard()])
