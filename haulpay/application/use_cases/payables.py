"""PayableLedgerUseCase — manual pay lines, locking and ledger queries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal

from haulpay.application.ports.audit_log_port import AuditLogPort
from haulpay.application.ports.load_repo import LoadRepository
from haulpay.application.ports.payable_repo import PayableRepository
from haulpay.application.ports.settlement_repo import SettlementRepository
from haulpay.domain.entities.payable import Payable
from haulpay.domain.errors import BusinessRuleError, EntityNotFoundError
from haulpay.domain.policies.settlement_workflow import ensure_editable
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import PayeeType, SourceType
from haulpay.domain.value_objects.money import to_decimal, to_money
from haulpay.domain.value_objects.time_range import now_ms

logger = logging.getLogger(__name__)


@dataclass
class UnassignedPayables:
    """A payee's payables not yet on any settlement."""

    available: list[Payable] = field(default_factory=list)
    held: list[Payable] = field(default_factory=list)

    @property
    def available_total(self) -> Decimal:
        return to_money(sum((p.total_amount for p in self.available), Decimal("0")))


class PayableLedgerUseCase:
    def __init__(
        self,
        payable_repo: PayableRepository,
        settlement_repo: SettlementRepository,
        load_repo: LoadRepository,
        audit: AuditLogPort,
        clock: Callable[[], int] = now_ms,
    ):
        self._payables = payable_repo
        self._settlements = settlement_repo
        self._loads = load_repo
        self._audit = audit
        self._clock = clock

    async def _get(self, payable_id: int) -> Payable:
        payable = await self._payables.get_by_id(payable_id)
        if payable is None:
            raise EntityNotFoundError("Payable", payable_id)
        return payable

    async def _ensure_owner_editable(self, payable: Payable) -> None:
        if payable.settlement_id is None:
            return
        settlement = await self._settlements.get_by_id(payable.settlement_id)
        if settlement is not None:
            ensure_editable(settlement.status)

    async def _log(self, payable: Payable, actor: Actor, action: str, description: str) -> None:
        await self._audit.log_action(
            org_id=payable.org_id,
            entity_type="payable",
            entity_id=str(payable.id),
            entity_name=payable.description,
            action=action,
            performed_by=actor.user_id,
            performed_by_name=actor.user_name,
            description=description,
            changes={"total_amount": str(payable.total_amount)},
        )

    async def add_manual(
        self,
        org_id: str,
        payee_type: PayeeType,
        payee_id: int,
        description: str,
        quantity: Decimal,
        rate: Decimal,
        actor: Actor,
        load_id: int | None = None,
        leg_id: int | None = None,
        settlement_id: int | None = None,
        is_rebillable: bool = False,
        rebill_customer_id: int | None = None,
        receipt_storage_key: str | None = None,
    ) -> Payable:
        """Create a MANUAL line. Manual lines are locked from the start."""
        if not description or not description.strip():
            raise BusinessRuleError("Description is required")
        if is_rebillable and rebill_customer_id is None:
            raise BusinessRuleError("Rebillable lines need a customer to rebill")
        if load_id is not None and await self._loads.get_by_id(load_id) is None:
            raise EntityNotFoundError("Load", load_id)
        if settlement_id is not None:
            settlement = await self._settlements.get_by_id(settlement_id)
            if settlement is None:
                raise EntityNotFoundError("Settlement", settlement_id)
            ensure_editable(settlement.status)

        now = self._clock()
        qty, unit = to_decimal(quantity), to_decimal(rate)
        payable = await self._payables.save(
            Payable(
                id=None,
                org_id=org_id,
                payee_type=payee_type,
                payee_id=payee_id,
                description=description.strip(),
                quantity=qty,
                rate=unit,
                total_amount=to_money(qty * unit),
                source_type=SourceType.MANUAL,
                load_id=load_id,
                leg_id=leg_id,
                is_locked=True,
                settlement_id=settlement_id,
                is_rebillable=is_rebillable,
                rebill_customer_id=rebill_customer_id,
                receipt_storage_key=receipt_storage_key,
                created_at=now,
                updated_at=now,
                created_by=actor.user_id,
            )
        )
        await self._log(payable, actor, "created", f"Added manual line '{payable.description}'")
        logger.info(
            "Manual payable %s for %s %s: %s",
            payable.id, payee_type.value, payee_id, payable.total_amount,
        )
        return payable

    async def update_manual(
        self,
        payable_id: int,
        actor: Actor,
        description: str | None = None,
        quantity: Decimal | None = None,
        rate: Decimal | None = None,
        receipt_storage_key: str | None = None,
    ) -> Payable:
        """Edit a MANUAL line; the total is recomputed from quantity and rate."""
        payable = await self._get(payable_id)
        if not payable.is_manual():
            raise BusinessRuleError("Only manual lines can be edited")
        await self._ensure_owner_editable(payable)

        if description is not None:
            payable.description = description.strip()
        if quantity is not None:
            payable.quantity = to_decimal(quantity)
        if rate is not None:
            payable.rate = to_decimal(rate)
        if receipt_storage_key is not None:
            payable.receipt_storage_key = receipt_storage_key
        payable.total_amount = to_money(to_decimal(payable.quantity) * to_decimal(payable.rate))
        payable.is_locked = True
        payable.updated_at = self._clock()
        payable = await self._payables.update(payable)
        await self._log(payable, actor, "updated", f"Updated manual line '{payable.description}'")
        return payable

    async def delete_manual(self, payable_id: int, actor: Actor) -> None:
        payable = await self._get(payable_id)
        if not payable.is_manual():
            raise BusinessRuleError("Only manual lines can be deleted")
        await self._ensure_owner_editable(payable)
        await self._payables.delete([payable.id])
        await self._log(payable, actor, "deleted", f"Deleted manual line '{payable.description}'")

    async def lock(self, payable_id: int, actor: Actor) -> Payable:
        payable = await self._get(payable_id)
        if payable.is_locked:
            return payable
        payable.is_locked = True
        payable.updated_at = self._clock()
        payable = await self._payables.update(payable)
        await self._log(payable, actor, "locked", f"Locked '{payable.description}'")
        return payable

    async def unlock(self, payable_id: int, actor: Actor) -> Payable:
        """Admin path: let the engine own a SYSTEM line again."""
        payable = await self._get(payable_id)
        await self._ensure_owner_editable(payable)
        if payable.is_manual():
            raise BusinessRuleError("Manual lines stay locked")
        if not payable.is_locked:
            return payable
        payable.is_locked = False
        payable.updated_at = self._clock()
        payable = await self._payables.update(payable)
        await self._log(payable, actor, "unlocked", f"Unlocked '{payable.description}'")
        logger.warning("Payable %s unlocked by %s", payable.id, actor.user_id)
        return payable

    async def list_for_load(self, load_id: int) -> list[Payable]:
        return await self._payables.get_by_load(load_id)

    async def list_unassigned(self, payee_type: PayeeType, payee_id: int) -> UnassignedPayables:
        """Split a payee's unassigned payables by whether their load is on hold."""
        result = UnassignedPayables()
        held_cache: dict[int, bool] = {}
        for payable in await self._payables.get_unassigned(payee_type, payee_id):
            if payable.load_id is not None:
                if payable.load_id not in held_cache:
                    load = await self._loads.get_by_id(payable.load_id)
                    held_cache[payable.load_id] = bool(load and load.is_held)
                if held_cache[payable.load_id]:
                    result.held.append(payable)
                    continue
            result.available.append(payable)
        return result
