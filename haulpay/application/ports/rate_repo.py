"""Port interface for rate profiles, rules and profile assignments."""

from abc import ABC, abstractmethod

from haulpay.domain.entities.rate_profile import ProfileAssignment, RateProfile, RateRule
from haulpay.domain.value_objects.enums import PayeeType


class RateRepository(ABC):
    # Profiles

    @abstractmethod
    async def save_profile(self, profile: RateProfile) -> RateProfile:
        ...

    @abstractmethod
    async def get_profile(self, profile_id: int) -> RateProfile | None:
        ...

    @abstractmethod
    async def update_profile(self, profile: RateProfile) -> RateProfile:
        ...

    @abstractmethod
    async def get_profiles(
        self, org_id: str, profile_type: PayeeType | None = None
    ) -> list[RateProfile]:
        ...

    @abstractmethod
    async def get_org_default(self, org_id: str, profile_type: PayeeType) -> RateProfile | None:
        """The active organization default profile of a type, if any."""
        ...

    # Rules

    @abstractmethod
    async def save_rule(self, rule: RateRule) -> RateRule:
        ...

    @abstractmethod
    async def get_rule(self, rule_id: int) -> RateRule | None:
        ...

    @abstractmethod
    async def update_rule(self, rule: RateRule) -> RateRule:
        ...

    @abstractmethod
    async def get_rules(self, profile_id: int) -> list[RateRule]:
        ...

    @abstractmethod
    async def get_rules_by_ids(self, rule_ids: list[int]) -> list[RateRule]:
        ...

    # Assignments

    @abstractmethod
    async def save_assignment(self, assignment: ProfileAssignment) -> ProfileAssignment:
        ...

    @abstractmethod
    async def get_assignment(self, assignment_id: int) -> ProfileAssignment | None:
        ...

    @abstractmethod
    async def update_assignment(self, assignment: ProfileAssignment) -> ProfileAssignment:
        ...

    @abstractmethod
    async def delete_assignment(self, assignment_id: int) -> None:
        ...

    @abstractmethod
    async def get_assignments(
        self, payee_type: PayeeType, payee_id: int
    ) -> list[ProfileAssignment]:
        ...
