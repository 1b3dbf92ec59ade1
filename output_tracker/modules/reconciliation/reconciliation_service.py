from collections import defaultdict
from typing import Dict, List, Optional, Tuple
import logging

from fastapi import HTTPException, status

from output_tracker.core.db.store import ProductionStore, TargetRecord, TimeSlotTargetRecord
from output_tracker.core.schemas.production import (
    CellStatus,
    EfficiencyRow,
    Quantity,
    ReconciliationGrid,
    TargetCell,
)
from output_tracker.modules.production.grid_builder import build_grid, discover_workcenters, empty_grid
from output_tracker.modules.targets.efficiency_calculator import EfficiencyCalculator
from output_tracker.shared import time_slots
from output_tracker.shared.dates import parse_date
from output_tracker.shared.rounding import round_half_up
from output_tracker.shared.time_slots import SLOTS_PER_SHIFT, Shift

logger = logging.getLogger(__name__)

# Below target but within 20% of it
YELLOW_THRESHOLD = 0.8


def classify_status(actual, target) -> CellStatus:
    """
    grey:   no target (missing or 0)
    green:  actual >= target
    yellow: target × 0.8 <= actual < target
    red:    actual < target × 0.8
    """
    if not target:
        return "grey"
    actual = actual or 0
    if actual >= target:
        return "green"
    if actual >= target * YELLOW_THRESHOLD:
        return "yellow"
    return "red"


class ReconciliationService:
    """Joins actual output against targets for a production date."""

    def __init__(self, store: ProductionStore):
        self.store = store

    async def _load(self, day) -> Tuple[list, List[TargetRecord], Dict[str, List[TimeSlotTargetRecord]]]:
        try:
            records = await self.store.read_production_records(day)
            targets = await self.store.read_targets(day)
            children = {}
            for target in targets:
                children[target.id] = await self.store.read_time_slot_targets(target.id)
            return records, targets, children
        except Exception as e:
            logger.error(f"Error loading production/targets for {day}: {e}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to load production and target data"
            )

    # -------------------------
    # Slot-level reconciliation
    # -------------------------

    async def get_reconciliation_for_date(self, production_date) -> ReconciliationGrid:
        """
        Actual vs target for every (shift, slot, workcenter) of a date.

        Workcenters are the union of those with production or a target on
        that date. Cells without data default to 0 / grey. Efficiency uses
        the slot duration and the owning target's headcount and SMV.
        """
        day = parse_date(production_date)
        records, targets, children = await self._load(day)

        workcenters = sorted(
            set(discover_workcenters(records)) | {t.workcenter for t in targets}
        )
        _, actual_grid = build_grid(records, workcenters)
        target_grid = empty_grid(workcenters, fill=TargetCell)

        targets_by_key: Dict[Tuple[str, str], TargetRecord] = {
            (t.shift.value, t.workcenter): t for t in targets
        }
        slot_targets: Dict[Tuple[str, str, int], Quantity] = {}
        for target in targets:
            for child in children.get(target.id, []):
                if 1 <= child.position <= SLOTS_PER_SHIFT:
                    slot_targets[(target.shift.value, target.workcenter, child.position)] = child.target_qty

        for shift in Shift:
            for slot in time_slots.slots_for(shift):
                index = slot.position - 1
                for wc in workcenters:
                    actual_qty = actual_grid[shift.value][index].get(wc, 0)
                    target_qty: Optional[Quantity] = slot_targets.get((shift.value, wc, slot.position))
                    target = targets_by_key.get((shift.value, wc))

                    efficiency = 0.0
                    if target is not None:
                        efficiency = EfficiencyCalculator.efficiency(
                            actual_qty, target.smv, target.team_member_count, slot.duration
                        )

                    target_grid[shift.value][index][wc] = TargetCell(
                        target=target_qty or 0,
                        efficiency=round_half_up(efficiency, 2),
                        status=classify_status(actual_qty, target_qty),
                    )

        return ReconciliationGrid(
            workcenters=workcenters,
            actual_data=actual_grid,
            target_data=target_grid,
        )

    # -------------------------
    # Daily aggregate
    # -------------------------

    async def get_efficiency_for_date(self, production_date) -> List[EfficiencyRow]:
        """
        Whole-shift efficiency per (shift, workcenter) with production on the date.

        efficiency = SMV × output × 100 / (team members × hours × 60)
        achievement = round(100 × output / plan), 0 without a plan
        """
        day = parse_date(production_date)
        records, targets, _ = await self._load(day)

        totals: Dict[Tuple[str, str], float] = defaultdict(int)
        for record in records:
            shift = time_slots.as_shift(record.shift)
            if shift is None or not record.workcenter:
                continue
            totals[(shift.value, record.workcenter)] += record.quantity or 0

        targets_by_key = {(t.shift.value, t.workcenter): t for t in targets}

        rows = []
        for (shift, workcenter), total_output in sorted(totals.items()):
            target = targets_by_key.get((shift, workcenter))
            total_target = target.plan_qty if target else None
            total_work_minutes = target.hours * 60 if target and target.hours else None

            efficiency = EfficiencyCalculator.efficiency(
                total_output,
                target.smv if target else None,
                target.team_member_count if target else None,
                total_work_minutes,
            )
            achievement = (
                round_half_up(total_output / total_target * 100)
                if total_target and total_target > 0 else 0
            )

            rows.append(
                EfficiencyRow(
                    production_date=day,
                    shift=shift,
                    workcenter=workcenter,
                    total_output=total_output,
                    total_target=total_target,
                    smv=target.smv if target else None,
                    team_member_count=target.team_member_count if target else None,
                    total_work_minutes=total_work_minutes,
                    efficiency=round_half_up(efficiency, 2),
                    achievement_percentage=achievement,
                )
            )

        return rows
