from contextlib import asynccontextmanager, contextmanager
from datetime import date, datetime
from typing import Iterator, List, Optional
import logging
import time

from beanie import PydanticObjectId
from beanie.operators import Set
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorClientSession
from pymongo.errors import DuplicateKeyError, OperationFailure

from output_tracker.core.db.store import (
    ProductionRecord,
    ProductionStore,
    TargetConflictError,
    TargetRecord,
    TargetTransaction,
    TimeSlotTargetRecord,
)
from output_tracker.core.models.production import ProductionSummary
from output_tracker.core.models.target import WorkcenterTarget, WorkcenterTimeSlotTarget
from output_tracker.core.monitoring.prometheus_middleware import track_db_operation
from output_tracker.shared.dates import format_date, parse_date
from output_tracker.shared.time_slots import Shift

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _timed(operation_type: str, collection: str):
    start = time.time()
    success = False
    try:
        yield
        success = True
    finally:
        track_db_operation(operation_type, collection, time.time() - start, success)


def _to_target_record(doc: WorkcenterTarget) -> TargetRecord:
    return TargetRecord(
        id=str(doc.id),
        date=parse_date(doc.target_date),
        workcenter=doc.workcenter,
        shift=Shift(doc.shift),
        plan_qty=doc.plan_qty,
        hours=doc.hours,
        team_member_count=doc.team_member_count,
        smv=doc.smv,
        created_by=doc.created_by,
        updated_at=doc.updated_at,
    )


TRANSIENT_TRANSACTION_ERROR = "TransientTransactionError"


@contextmanager
def write_conflicts(what: str) -> Iterator[None]:
    """
    Surface retryable write failures as TargetConflictError.

    Covers the unique target key and anything the server labels
    TransientTransactionError (e.g. WriteConflict, code 112). Other
    errors pass through unchanged.
    """
    try:
        yield
    except DuplicateKeyError as e:
        raise TargetConflictError(f"{what}: duplicate target key") from e
    except OperationFailure as e:
        if e.has_error_label(TRANSIENT_TRANSACTION_ERROR):
            raise TargetConflictError(f"{what}: {e}") from e
        raise


# -----------------------------
# Transaction
# -----------------------------

class MongoTargetTransaction(TargetTransaction):
    """Multi-document transaction on a Motor session (replica set required)."""

    def __init__(self, session: AsyncIOMotorClientSession):
        self.session = session

    async def find_target(self, target_date: date, workcenter: str, shift: Shift) -> Optional[TargetRecord]:
        with write_conflicts("find target"):
            async with _timed("find", WorkcenterTarget.Settings.name):
                doc = await WorkcenterTarget.find_one(
                    WorkcenterTarget.target_date == format_date(target_date),
                    WorkcenterTarget.workcenter == workcenter,
                    WorkcenterTarget.shift == shift.value,
                    session=self.session,
                )
        return _to_target_record(doc) if doc else None

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
        doc = WorkcenterTarget(
            target_date=format_date(target_date),
            workcenter=workcenter,
            shift=shift.value,
            plan_qty=plan_qty,
            hours=hours,
            team_member_count=team_member_count,
            smv=smv,
            created_by=created_by,
        )
        with write_conflicts(f"insert target {format_date(target_date)}/{workcenter}/{shift.value}"):
            async with _timed("insert", WorkcenterTarget.Settings.name):
                await doc.insert(session=self.session)
        return str(doc.id)

    async def update_target(
        self,
        target_id: str,
        plan_qty: int,
        hours: int,
        team_member_count: int,
        smv: float,
        updated_at: datetime,
    ) -> None:
        with write_conflicts(f"update target {target_id}"):
            async with _timed("update", WorkcenterTarget.Settings.name):
                await WorkcenterTarget.find_one(
                    WorkcenterTarget.id == PydanticObjectId(target_id),
                    session=self.session,
                ).update(
                    Set({
                        WorkcenterTarget.plan_qty: plan_qty,
                        WorkcenterTarget.hours: hours,
                        WorkcenterTarget.team_member_count: team_member_count,
                        WorkcenterTarget.smv: smv,
                        WorkcenterTarget.updated_at: updated_at,
                    }),
                    session=self.session,
                )

    async def delete_time_slot_targets(self, target_id: str) -> int:
        with write_conflicts(f"delete slot targets of {target_id}"):
            async with _timed("delete", WorkcenterTimeSlotTarget.Settings.name):
                result = await WorkcenterTimeSlotTarget.find(
                    WorkcenterTimeSlotTarget.target_id == PydanticObjectId(target_id),
                    session=self.session,
                ).delete(session=self.session)
        return result.deleted_count if result else 0

    async def insert_time_slot_targets(self, target_id: str, slots: List[TimeSlotTargetRecord]) -> None:
        docs = [
            WorkcenterTimeSlotTarget(
                target_id=PydanticObjectId(target_id),
                time_slot=slot.time_slot,
                position=slot.position,
                target_qty=slot.target_qty,
            )
            for slot in slots
        ]
        with write_conflicts(f"insert slot targets of {target_id}"):
            async with _timed("insert_many", WorkcenterTimeSlotTarget.Settings.name):
                await WorkcenterTimeSlotTarget.insert_many(docs, session=self.session)

    async def commit(self) -> None:
        try:
            with write_conflicts("commit"):
                await self.session.commit_transaction()
        finally:
            await self.session.end_session()

    async def rollback(self) -> None:
        try:
            if self.session.in_transaction:
                await self.session.abort_transaction()
        finally:
            await self.session.end_session()


# -----------------------------
# Store
# -----------------------------

class MongoProductionStore(ProductionStore):
    """ProductionStore backed by the Beanie document models."""

    def __init__(self, client: AsyncIOMotorClient):
        self.client = client

    async def begin(self) -> MongoTargetTransaction:
        session = await self.client.start_session()
        session.start_transaction()
        return MongoTargetTransaction(session)

    async def read_production_records(self, production_date: date) -> List[ProductionRecord]:
        day = format_date(production_date)
        pipeline = [
            {
                "$group": {
                    "_id": {
                        "shift": "$shift",
                        "time_slot": "$time_slot",
                        "workcenter": "$workcenter",
                        "sub_operation_id": "$sub_operation_id",
                    },
                    "quantity": {"$sum": "$total_qty"},
                }
            },
            {"$sort": {"_id.shift": 1, "_id.time_slot": 1}},
        ]
        async with _timed("aggregate", ProductionSummary.Settings.name):
            rows = await ProductionSummary.find(
                ProductionSummary.production_date == day
            ).aggregate(pipeline).to_list()

        return [
            ProductionRecord(
                date=production_date,
                shift=row["_id"].get("shift"),
                time_slot=row["_id"].get("time_slot"),
                workcenter=row["_id"].get("workcenter"),
                sub_operation_id=row["_id"].get("sub_operation_id"),
                quantity=row.get("quantity") or 0,
            )
            for row in rows
        ]

    async def read_targets(self, target_date: date) -> List[TargetRecord]:
        async with _timed("find", WorkcenterTarget.Settings.name):
            docs = await WorkcenterTarget.find(
                WorkcenterTarget.target_date == format_date(target_date)
            ).sort(
                [("workcenter", 1), ("shift", 1)]
            ).to_list()
        return [_to_target_record(doc) for doc in docs]

    async def read_time_slot_targets(self, target_id: str) -> List[TimeSlotTargetRecord]:
        async with _timed("find", WorkcenterTimeSlotTarget.Settings.name):
            docs = await WorkcenterTimeSlotTarget.find(
                WorkcenterTimeSlotTarget.target_id == PydanticObjectId(target_id)
            ).sort("position").to_list()
        return [
            TimeSlotTargetRecord(
                target_id=target_id,
                position=doc.position,
                time_slot=doc.time_slot,
                target_qty=doc.target_qty,
            )
            for doc in docs
        ]

    async def read_available_dates(self) -> List[date]:
        async with _timed("distinct", ProductionSummary.Settings.name):
            values = await ProductionSummary.distinct("production_date")

        dates = []
        for value in values:
            try:
                dates.append(parse_date(value))
            except HTTPException:
                logger.warning(f"Skipping unparseable production_date: {value!r}")
        return sorted(dates, reverse=True)

    async def read_workcenters(self) -> List[str]:
        async with _timed("distinct", ProductionSummary.Settings.name):
            values = await ProductionSummary.distinct("workcenter")
        return sorted(v for v in values if v)
