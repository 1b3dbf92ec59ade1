"""
Shared fixtures.

The suite runs against InMemoryProductionStore, a ProductionStore whose
transactions work on a private copy of the data and only publish it on
commit. Failures can be injected into any transaction step.
"""

from datetime import date
from typing import Dict, List, Optional
import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure

from output_tracker.api.v1.api import api_router
from output_tracker.core.db.mongo_store import write_conflicts
from output_tracker.core.db.store import (
    ProductionRecord,
    ProductionStore,
    TargetConflictError,
    TargetRecord,
    TargetTransaction,
    TimeSlotTargetRecord,
)
from output_tracker.modules.production.production_service import ProductionService
from output_tracker.modules.realtime.change_poller import ChangePoller
from output_tracker.modules.reconciliation.reconciliation_service import ReconciliationService
from output_tracker.modules.targets.target_service import TargetService
from output_tracker.modules.targets.target_store import TargetStore
from output_tracker.shared.keyed_lock import KeyedLock


PRODUCTION_DATE = date(2024, 1, 1)


class InjectedFailure(RuntimeError):
    pass


def _target_key(target: TargetRecord):
    return target.date, target.workcenter, target.shift


class InMemoryTransaction(TargetTransaction):
    def __init__(self, store: "InMemoryProductionStore"):
        self.store = store
        self.targets: Dict[str, TargetRecord] = dict(store.targets)
        self.children: Dict[str, List[TimeSlotTargetRecord]] = {
            target_id: list(slots) for target_id, slots in store.time_slot_targets.items()
        }

    async def _step(self, name: str):
        # Let other tasks interleave between steps like a real driver would
        await asyncio.sleep(0)
        if self.store.fail_on == name:
            raise InjectedFailure(f"injected failure in {name}")
        if self.store.write_conflicts.get(name, 0) > 0:
            self.store.write_conflicts[name] -= 1
            # Same translation the Mongo binding applies to driver errors
            with write_conflicts(name):
                raise OperationFailure(
                    "WriteConflict",
                    code=112,
                    details={"code": 112, "errorLabels": ["TransientTransactionError"]},
                )

    async def find_target(self, target_date, workcenter, shift) -> Optional[TargetRecord]:
        await self._step("find_target")
        for target in self.targets.values():
            if _target_key(target) == (target_date, workcenter, shift):
                return target
        return None

    async def insert_target(
        self, target_date, workcenter, shift, plan_qty, hours, team_member_count, smv, created_by
    ) -> str:
        await self._step("insert_target")
        if self.store.conflicts_remaining > 0:
            self.store.conflicts_remaining -= 1
            raise TargetConflictError("E11000 duplicate key error")

        target_id = self.store.new_id()
        self.targets[target_id] = TargetRecord(
            id=target_id,
            date=target_date,
            workcenter=workcenter,
            shift=shift,
            plan_qty=plan_qty,
            hours=hours,
            team_member_count=team_member_count,
            smv=smv,
            created_by=created_by,
        )
        return target_id

    async def update_target(self, target_id, plan_qty, hours, team_member_count, smv, updated_at) -> None:
        await self._step("update_target")
        self.targets[target_id] = self.targets[target_id].model_copy(
            update={
                "plan_qty": plan_qty,
                "hours": hours,
                "team_member_count": team_member_count,
                "smv": smv,
                "updated_at": updated_at,
            }
        )

    async def delete_time_slot_targets(self, target_id) -> int:
        await self._step("delete_time_slot_targets")
        return len(self.children.pop(target_id, []))

    async def insert_time_slot_targets(self, target_id, slots) -> None:
        await self._step("insert_time_slot_targets")
        self.children[target_id] = [
            slot.model_copy(update={"target_id": target_id}) for slot in slots
        ]

    async def commit(self) -> None:
        await self._step("commit")
        # Unique (date, workcenter, shift) against what others committed meanwhile
        for target in self.targets.values():
            for committed in self.store.targets.values():
                if committed.id != target.id and _target_key(committed) == _target_key(target):
                    raise TargetConflictError("E11000 duplicate key error")
        self.store.targets = self.targets
        self.store.time_slot_targets = self.children
        self.store.commits += 1

    async def rollback(self) -> None:
        self.store.rollbacks += 1


class InMemoryProductionStore(ProductionStore):
    def __init__(self):
        self.production: List[ProductionRecord] = []
        self.targets: Dict[str, TargetRecord] = {}
        self.time_slot_targets: Dict[str, List[TimeSlotTargetRecord]] = {}

        self.fail_on: Optional[str] = None
        self.fail_reads = False
        self.conflicts_remaining = 0
        # step name -> number of WriteConflict errors still to raise
        self.write_conflicts: Dict[str, int] = {}
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 0

    def new_id(self) -> str:
        self._next_id += 1
        return f"{self._next_id:024x}"

    def add_production(self, shift, time_slot, workcenter, quantity, day: date = PRODUCTION_DATE, sub_operation_id=None):
        self.production.append(
            ProductionRecord(
                date=day,
                shift=shift,
                time_slot=time_slot,
                workcenter=workcenter,
                sub_operation_id=sub_operation_id,
                quantity=quantity,
            )
        )

    def _check_reads(self):
        if self.fail_reads:
            raise InjectedFailure("storage unavailable")

    async def read_production_records(self, production_date) -> List[ProductionRecord]:
        self._check_reads()
        return [r for r in self.production if r.date == production_date]

    async def read_targets(self, target_date) -> List[TargetRecord]:
        self._check_reads()
        return sorted(
            (t for t in self.targets.values() if t.date == target_date),
            key=lambda t: (t.workcenter, t.shift.value),
        )

    async def read_time_slot_targets(self, target_id) -> List[TimeSlotTargetRecord]:
        self._check_reads()
        return sorted(self.time_slot_targets.get(target_id, []), key=lambda s: s.position)

    async def read_available_dates(self) -> List[date]:
        self._check_reads()
        return sorted({r.date for r in self.production}, reverse=True)

    async def read_workcenters(self) -> List[str]:
        self._check_reads()
        return sorted({r.workcenter for r in self.production if r.workcenter})

    async def begin(self) -> TargetTransaction:
        return InMemoryTransaction(self)


# -----------------------------
# Fixtures
# -----------------------------

@pytest.fixture
def store() -> InMemoryProductionStore:
    return InMemoryProductionStore()


@pytest.fixture
def target_store(store) -> TargetStore:
    return TargetStore(store)


@pytest.fixture
def target_service(store) -> TargetService:
    return TargetService(store)


@pytest.fixture
def production_service(store) -> ProductionService:
    return ProductionService(store)


@pytest.fixture
def reconciliation_service(store) -> ReconciliationService:
    return ReconciliationService(store)


@pytest.fixture
def app(store) -> FastAPI:
    app = FastAPI()
    app.include_router(api_router, prefix="/api")
    app.state.store = store
    app.state.target_locks = KeyedLock()
    app.state.poller = ChangePoller(ProductionService(store).get_current_grid)
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
