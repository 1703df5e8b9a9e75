"""Which rate profile pays a given leg."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from haulpay.domain.entities.rate_profile import ProfileAssignment, RateProfile
from haulpay.domain.value_objects.enums import PayeeType, SelectionStrategy


@dataclass(frozen=True)
class ProfileSelection:
    """Result of the profile selection policy."""

    profile: RateProfile
    assignment: ProfileAssignment | None  # None when the org default was used
    reason: str


def _is_eligible(assignment: ProfileAssignment, loaded_miles: Decimal) -> bool:
    if assignment.selection_strategy == SelectionStrategy.MANUAL_ONLY:
        return False
    if assignment.selection_strategy == SelectionStrategy.DISTANCE_THRESHOLD:
        if assignment.threshold_value is None:
            return False
        return loaded_miles > assignment.threshold_value
    return True


def select_profile(
    payee_type: PayeeType,
    loaded_miles: Decimal,
    assignments: list[ProfileAssignment],
    profiles: dict[int, RateProfile],
    org_default: RateProfile | None,
) -> ProfileSelection | None:
    """Resolve the effective rate profile for one payee on one leg.

    Explicit assignments beat the organization default. Among eligible
    assignments a matching DISTANCE_THRESHOLD assignment wins (the highest
    threshold is the most specific), then the payee's default assignment,
    then the lowest id. MANUAL_ONLY assignments are never picked here.

    Args:
        payee_type: DRIVER or CARRIER; profiles of the other type are ignored.
        loaded_miles: the leg's loaded miles.
        assignments: the payee's profile assignments.
        profiles: rate profiles by id (must cover every assignment).
        org_default: the organization's default profile for ``payee_type``.

    Returns:
        ProfileSelection, or None when nothing resolves.
    """
    candidates = []
    for assignment in assignments:
        profile = profiles.get(assignment.profile_id)
        if profile is None or not profile.is_active or profile.profile_type != payee_type:
            continue
        if _is_eligible(assignment, loaded_miles):
            candidates.append((assignment, profile))

    if candidates:
        def rank(item: tuple[ProfileAssignment, RateProfile]):
            a, _ = item
            is_threshold = a.selection_strategy == SelectionStrategy.DISTANCE_THRESHOLD
            threshold = a.threshold_value if is_threshold else Decimal("0")
            return (not is_threshold, -threshold, not a.is_default, a.id or 0)

        assignment, profile = min(candidates, key=rank)
        if assignment.selection_strategy == SelectionStrategy.DISTANCE_THRESHOLD:
            reason = (
                f"Distance profile {profile.name} "
                f"({loaded_miles} mi > {assignment.threshold_value} mi)"
            )
        elif assignment.is_default:
            reason = f"Default assignment: {profile.name}"
        else:
            reason = f"Assigned profile: {profile.name}"
        return ProfileSelection(profile=profile, assignment=assignment, reason=reason)

    if (
        org_default is not None
        and org_default.is_active
        and org_default.profile_type == payee_type
    ):
        return ProfileSelection(
            profile=org_default,
            assignment=None,
            reason=f"Organization default: {org_default.name}",
        )
    return None
