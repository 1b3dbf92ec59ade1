"""
Storage contract used by the engine.

Services never talk to MongoDB directly: they receive a ProductionStore
and use the typed records below. Writes happen only through a
TargetTransaction, the explicit transactional context handed to every
step of the target upsert.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import AsyncIterator, List, Optional, Union
import logging

from pydantic import BaseModel

from output_tracker.shared.time_slots import Shift

logger = logging.getLogger(__name__)


# -----------------------------
# Records
# -----------------------------

class ProductionRecord(BaseModel):
    """Summed output of one (date, shift, time slot, workcenter, sub-operation)."""

    date: date
    # Raw rows may be incomplete; the grid builder drops those
    shift: Optional[str] = None
    time_slot: Optional[str] = None
    workcenter: Optional[str] = None
    sub_operation_id: Optional[str] = None
    quantity: Union[int, float] = 0


class TargetRecord(BaseModel):
    id: str
    date: date
    workcenter: str
    shift: Shift
    plan_qty: int
    hours: int = 8
    team_member_count: Optional[int] = None
    smv: Optional[float] = None
    created_by: str = "system"
    updated_at: Optional[datetime] = None


class TimeSlotTargetRecord(BaseModel):
    target_id: Optional[str] = None
    position: int
    time_slot: str
    target_qty: Union[int, float]


# -----------------------------
# Errors
# -----------------------------

class TargetConflictError(Exception):
    """
    Another writer got to the same (date, workcenter, shift) key first.

    Raised for a duplicate key or a transient transaction error; the whole
    transaction may be retried.
    """


# -----------------------------
# Contracts
# -----------------------------

class TargetTransaction(ABC):
    """
    One atomic unit of target writes.

    begin happens in ProductionStore.begin(); commit() and rollback()
    are the only other state transitions.
    """

    @abstractmethod
    async def find_target(self, target_date: date, workcenter: str, shift: Shift) -> Optional[TargetRecord]:
        ...

    @abstractmethod
    async def insert_target(
        self,
        target_date: date,
        workcenter: str,
        shift: Shift,
        plan_qty: int,
        hours: int,
        team_member_count: int,
        smv: float,
        created_by: str,
    ) -> str:
        """Insert a target row and return its generated id."""

    @abstractmethod
    async def update_target(
        self,
        target_id: str,
        plan_qty: int,
        hours: int,
        team_member_count: int,
        smv: float,
        updated_at: datetime,
    ) -> None:
        ...

    @abstractmethod
    async def delete_time_slot_targets(self, target_id: str) -> int:
        ...

    @abstractmethod
    async def insert_time_slot_targets(self, target_id: str, slots: List[TimeSlotTargetRecord]) -> None:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...


class ProductionStore(ABC):
    """Read access to production/target data plus transactional target writes."""

    @abstractmethod
    async def read_production_records(self, production_date: date) -> List[ProductionRecord]:
        ...

    @abstractmethod
    async def read_targets(self, target_date: date) -> List[TargetRecord]:
        ...

    @abstractmethod
    async def read_time_slot_targets(self, target_id: str) -> List[TimeSlotTargetRecord]:
        ...

    @abstractmethod
    async def read_available_dates(self) -> List[date]:
        """Distinct production dates, newest first."""

    @abstractmethod
    async def read_workcenters(self) -> List[str]:
        """Distinct workcenters seen in production data, sorted."""

    @abstractmethod
    async def begin(self) -> TargetTransaction:
        ...

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[TargetTransaction]:
        """Commit on success, roll back and re-raise on any failure."""
        tx = await self.begin()
        try:
            yield tx
            await tx.commit()
        except BaseException:
            try:
                await tx.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise
