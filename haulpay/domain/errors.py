"""Domain exception hierarchy.

Assignment operations report business-rule outcomes as result objects;
everything else raises one of these.
"""


class HaulPayError(Exception):
    """Base class for all domain errors."""


class EntityNotFoundError(HaulPayError, LookupError):
    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class BusinessRuleError(HaulPayError, ValueError):
    """A write was rejected because it would break a business rule."""


class SettlementStateError(BusinessRuleError):
    """Illegal settlement transition, or an edit to a non-DRAFT settlement."""
