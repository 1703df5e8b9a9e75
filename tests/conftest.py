"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from decimal import Decimal

import pytest

from haulpay.application.use_cases.auto_assignment import (
    AutoAssignLoadUseCase,
    AutoAssignPendingLoadsUseCase,
)
from haulpay.application.use_cases.calculate_pay import CalculatePayUseCase
from haulpay.application.use_cases.deactivation import DeactivateResourceUseCase
from haulpay.application.use_cases.dispatch_legs import (
    AssignCarrierUseCase,
    AssignDriverUseCase,
    RemoveDriverUseCase,
    SplitLoadUseCase,
    UnassignResourceUseCase,
)
from haulpay.application.use_cases.payables import PayableLedgerUseCase
from haulpay.application.use_cases.settlements import (
    BulkSettlementUseCase,
    GenerateSettlementUseCase,
    LoadHoldUseCase,
    SettlementLifecycleUseCase,
)
from haulpay.domain.entities.dispatch_leg import DispatchLeg
from haulpay.domain.entities.driver import CarrierPartnership, Driver
from haulpay.domain.entities.load import Load, LoadStop
from haulpay.domain.entities.rate_profile import RateProfile, RateRule
from haulpay.domain.value_objects.actor import Actor
from haulpay.domain.value_objects.enums import (
    PayBasis,
    PayeeType,
    RuleCategory,
    StopType,
    TriggerEvent,
)
from tests.fakes import (
    FakeAuditLog,
    FakeCarrierRepo,
    FakeDriverRepo,
    FakeLegRepo,
    FakeLoadRepo,
    FakePayableRepo,
    FakePayPlanRepo,
    FakeRateRepo,
    FakeRouteRepo,
    FakeSettlementRepo,
    FakeUnitOfWork,
)

ORG = "org-1"
NOW = 1_710_000_000_000  # 2024-03-09T16:00:00Z


class World:
    """A fully wired set of in-memory repositories plus use case factories."""

    def __init__(self):
        self.loads = FakeLoadRepo()
        self.legs = FakeLegRepo()
        self.drivers = FakeDriverRepo(
            [
                Driver(id=1, org_id=ORG, first_name="Ana", last_name="Ruiz", current_truck_id=11),
                Driver(id=2, org_id=ORG, first_name="Ben", last_name="Okafor"),
            ]
        )
        self.carriers = FakeCarrierRepo(
            [CarrierPartnership(id=1, org_id=ORG, carrier_name="Redline Freight")]
        )
        self.rates = FakeRateRepo()
        self.payables = FakePayableRepo()
        self.settlements = FakeSettlementRepo()
        self.plans = FakePayPlanRepo()
        self.routes = FakeRouteRepo()
        self.audit = FakeAuditLog()
        self.uow = FakeUnitOfWork(
            [
                self.loads.loads, self.loads.stops, self.legs.legs, self.drivers.drivers,
                self.carriers.partnerships, self.rates.profiles, self.rates.rules,
                self.rates.assignments, self.payables.payables, self.settlements.settlements,
                self.plans.plans, self.routes.routes,
            ],
            self.audit,
        )
        self.actor = Actor(user_id="user-1", user_name="Dana Dispatch")

    def clock(self) -> int:
        return NOW

    # ─── Seeding ─────────────────────────────────────────────────────

    async def add_load(
        self,
        windows: list[tuple[str, str]],
        internal_id: str = "L-100",
        miles: Decimal = Decimal("1000"),
        **fields,
    ) -> tuple[Load, list[LoadStop]]:
        """A load with one stop per (window begin, window end) ISO pair."""
        load = await self.loads.save(
            Load(id=None, org_id=ORG, internal_id=internal_id, effective_miles=miles, **fields)
        )
        stops = []
        for seq, (begin, end) in enumerate(windows, start=1):
            stops.append(
                await self.loads.save_stop(
                    LoadStop(
                        id=None,
                        load_id=load.id,
                        sequence_number=seq,
                        stop_type=StopType.PICKUP if seq == 1 else StopType.DELIVERY,
                        window_begin_date=begin[:10],
                        window_begin_time=begin,
                        window_end_date=end[:10],
                        window_end_time=end,
                    )
                )
            )
        return load, stops

    async def add_leg(
        self,
        load: Load,
        stops: list[LoadStop],
        sequence: int = 1,
        miles: Decimal = Decimal("1000"),
        **fields,
    ) -> DispatchLeg:
        return await self.legs.save(
            DispatchLeg(
                id=None,
                load_id=load.id,
                org_id=ORG,
                sequence=sequence,
                start_stop_id=stops[0].id,
                end_stop_id=stops[-1].id,
                loaded_miles=miles,
                **fields,
            )
        )

    async def add_profile(
        self,
        payee_type: PayeeType,
        rules: list[tuple[str, TriggerEvent, str]],
        name: str = "Standard",
        is_default: bool = True,
        category: RuleCategory = RuleCategory.BASE,
    ) -> RateProfile:
        """An active profile with one rule per (name, trigger, rate) triple."""
        profile = await self.rates.save_profile(
            RateProfile(
                id=None,
                org_id=ORG,
                name=name,
                profile_type=payee_type,
                pay_basis=PayBasis.MILEAGE,
                is_default=is_default,
            )
        )
        for rule_name, trigger, rate in rules:
            await self.rates.save_rule(
                RateRule(
                    id=None,
                    profile_id=profile.id,
                    name=rule_name,
                    category=category,
                    trigger_event=trigger,
                    rate_amount=Decimal(rate),
                )
            )
        return profile

    # ─── Use cases ───────────────────────────────────────────────────

    def calculate_pay(self) -> CalculatePayUseCase:
        return CalculatePayUseCase(self.loads, self.legs, self.rates, self.payables, clock=self.clock)

    def assign_driver(self) -> AssignDriverUseCase:
        return AssignDriverUseCase(
            self.loads, self.legs, self.drivers, self.payables, self.audit,
            self.calculate_pay(), clock=self.clock,
        )

    def assign_carrier(self) -> AssignCarrierUseCase:
        return AssignCarrierUseCase(
            self.loads, self.legs, self.carriers, self.payables, self.audit,
            self.calculate_pay(), clock=self.clock,
        )

    def unassign(self) -> UnassignResourceUseCase:
        return UnassignResourceUseCase(
            self.loads, self.legs, self.payables, self.audit, self.calculate_pay(), clock=self.clock
        )

    def split(self) -> SplitLoadUseCase:
        return SplitLoadUseCase(
            self.loads, self.legs, self.drivers, self.payables, self.audit,
            self.calculate_pay(), clock=self.clock,
        )

    def remove_driver(self) -> RemoveDriverUseCase:
        return RemoveDriverUseCase(
            self.loads, self.legs, self.payables, self.settlements, self.audit,
            self.calculate_pay(), clock=self.clock,
        )

    def ledger(self) -> PayableLedgerUseCase:
        return PayableLedgerUseCase(
            self.payables, self.settlements, self.loads, self.audit, clock=self.clock
        )

    def generate(self) -> GenerateSettlementUseCase:
        return GenerateSettlementUseCase(
            self.settlements, self.payables, self.legs, self.loads, self.plans,
            self.drivers, self.carriers, self.audit, self.uow, clock=self.clock,
        )

    def lifecycle(self) -> SettlementLifecycleUseCase:
        return SettlementLifecycleUseCase(
            self.settlements, self.payables, self.rates, self.ledger(), self.audit,
            clock=self.clock,
        )

    def bulk(self) -> BulkSettlementUseCase:
        return BulkSettlementUseCase(self.lifecycle(), self.uow)

    def hold(self) -> LoadHoldUseCase:
        return LoadHoldUseCase(
            self.loads, self.payables, self.settlements, self.audit, clock=self.clock
        )

    def deactivation(self) -> DeactivateResourceUseCase:
        return DeactivateResourceUseCase(
            self.drivers, self.carriers, self.legs, self.loads, self.routes,
            self.calculate_pay(), self.audit, clock=self.clock,
        )

    def auto_assign(self) -> AutoAssignLoadUseCase:
        return AutoAssignLoadUseCase(
            self.loads, self.legs, self.drivers, self.carriers, self.routes,
            self.assign_driver(), self.assign_carrier(),
            Actor(user_id="system", user_name="Auto-assignment"),
        )

    def sweep(self) -> AutoAssignPendingLoadsUseCase:
        return AutoAssignPendingLoadsUseCase(self.loads, self.auto_assign())


@pytest.fixture
def world():
    return World()


@pytest.fixture
def day_windows():
    """Two stops on 2024-03-01, 08:00-10:00 pickup and 16:00-18:00 delivery."""
    return [
        ("2024-03-01T08:00:00Z", "2024-03-01T10:00:00Z"),
        ("2024-03-01T16:00:00Z", "2024-03-01T18:00:00Z"),
    ]
