from typing import Dict, List, Optional, Union
import logging

from fastapi import HTTPException, status

from output_tracker.core.db.store import (
    ProductionStore,
    TargetConflictError,
    TimeSlotTargetRecord,
)
from output_tracker.core.monitoring.prometheus_middleware import track_target_upsert
from output_tracker.core.schemas.target import TargetCreate, TargetSetResult, TimeSlotTargetInput
from output_tracker.shared import time_slots
from output_tracker.shared.keyed_lock import KeyedLock
from output_tracker.shared.rounding import round_half_up
from output_tracker.shared.time_slots import Shift
from output_tracker.shared.timezone import get_plant_now

logger = logging.getLogger(__name__)

DEFAULT_CREATED_BY = "system"
MAX_CONFLICT_RETRIES = 3


class TargetStore:
    """
    Atomic upsert of a target together with its 8 slot targets.

    Every call replaces the full set of slot targets, so a target never
    ends up with missing, stale or partial children.
    """

    def __init__(self, store: ProductionStore, locks: Optional[KeyedLock] = None):
        self.store = store
        # Pass the app-wide KeyedLock; a private one only serializes calls made through this instance
        self.locks = locks if locks is not None else KeyedLock()

    # -------------------------
    # Slot split
    # -------------------------

    @staticmethod
    def _explicit_quantities(explicit: Optional[List[TimeSlotTargetInput]]) -> Dict[int, Union[int, float]]:
        overrides: Dict[int, Union[int, float]] = {}
        for index, entry in enumerate(explicit or []):
            if entry is None or entry.target_qty is None:
                continue
            overrides[entry.position or index + 1] = entry.target_qty
        return overrides

    @staticmethod
    def build_slot_targets(
        shift: Shift,
        plan_qty: int,
        hours: int,
        explicit: Optional[List[TimeSlotTargetInput]] = None,
    ) -> List[TimeSlotTargetRecord]:
        """
        Split a shift plan over its 8 slots.

        Each slot gets round(plan_qty × (slot minutes / 60) / hours) unless an
        explicit quantity is supplied for its position, which is used verbatim.

        Example:
            plan_qty=480, hours=8 on Morning -> [30, 60, 60, 90, 60, 60, 60, 60]
        """
        overrides = TargetStore._explicit_quantities(explicit)
        slots = []
        for slot in time_slots.slots_for(shift):
            if slot.position in overrides:
                target_qty = overrides[slot.position]
            else:
                target_qty = round_half_up(plan_qty * (slot.duration / 60) / hours)
            slots.append(
                TimeSlotTargetRecord(
                    position=slot.position,
                    time_slot=slot.label,
                    target_qty=target_qty,
                )
            )
        return slots

    # -------------------------
    # Upsert
    # -------------------------

    async def _upsert(self, payload: TargetCreate) -> TargetSetResult:
        slot_targets = self.build_slot_targets(
            payload.shift, payload.plan_qty, payload.hours, payload.time_slot_targets
        )

        async with self.store.transaction() as tx:
            existing = await tx.find_target(payload.target_date, payload.workcenter, payload.shift)

            if existing:
                target_id = existing.id
                await tx.update_target(
                    target_id,
                    plan_qty=payload.plan_qty,
                    hours=payload.hours,
                    team_member_count=payload.team_member_count,
                    smv=payload.smv,
                    updated_at=get_plant_now(),
                )
                was_updated = True
            else:
                target_id = await tx.insert_target(
                    payload.target_date,
                    payload.workcenter,
                    payload.shift,
                    plan_qty=payload.plan_qty,
                    hours=payload.hours,
                    team_member_count=payload.team_member_count,
                    smv=payload.smv,
                    created_by=payload.created_by or DEFAULT_CREATED_BY,
                )
                was_updated = False

            # Replace, never patch
            await tx.delete_time_slot_targets(target_id)
            await tx.insert_time_slot_targets(target_id, slot_targets)

        return TargetSetResult(
            id=target_id,
            was_updated=was_updated,
            message="Target updated successfully" if was_updated else "Target created successfully",
        )

    async def set_target(self, payload: TargetCreate) -> TargetSetResult:
        """
        Create or update the target for (date, workcenter, shift).

        Calls for the same key run one at a time; different keys run in
        parallel. A concurrent insert from another process surfaces as a
        unique-key conflict and the whole transaction is retried.

        Raises:
            HTTPException 409: the key kept conflicting after all retries
            HTTPException 500: storage failure (everything rolled back)
        """
        key = (payload.target_date, payload.workcenter, payload.shift)
        label = f"{payload.target_date}/{payload.workcenter}/{payload.shift.value}"

        for attempt in range(1, MAX_CONFLICT_RETRIES + 1):
            try:
                async with self.locks.hold(key):
                    result = await self._upsert(payload)
            except TargetConflictError as e:
                track_target_upsert("conflict")
                logger.warning(f"Target {label} conflict on attempt {attempt}: {e}")
                continue
            except HTTPException:
                raise
            except Exception as e:
                track_target_upsert("failed")
                logger.error(f"Error setting target {label}: {e}")
                raise HTTPException(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail=f"Failed to set target: {str(e)}"
                )

            track_target_upsert("updated" if result.was_updated else "created")
            logger.info(
                f"Target {label} {'updated' if result.was_updated else 'created'} "
                f"(id={result.id}, plan={payload.plan_qty}, hours={payload.hours})"
            )
            return result

        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail=f"Target {label} is being modified concurrently. Please try again."
        )
