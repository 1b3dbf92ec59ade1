from typing import List
import logging

from fastapi import HTTPException, status

from output_tracker.core.db.store import ProductionStore
from output_tracker.core.schemas.production import ProductionGrid
from output_tracker.core.schemas.target import TargetResponse, TimeSlotTargetResponse
from output_tracker.modules.production.grid_builder import discover_workcenters, empty_grid
from output_tracker.shared.dates import parse_date
from output_tracker.shared.time_slots import SLOTS_PER_SHIFT

logger = logging.getLogger(__name__)


class TargetService:
    """Read side of targets: per-date targets and the hourly target grid."""

    def __init__(self, store: ProductionStore):
        self.store = store

    async def get_targets_for_date(self, target_date) -> List[TargetResponse]:
        """
        Targets of a date with their slot breakdown.

        Returns:
            Targets ordered by workcenter then shift, each with its
            time_slot_targets ordered by position.
        """
        day = parse_date(target_date)
        try:
            targets = await self.store.read_targets(day)

            result = []
            for target in sorted(targets, key=lambda t: (t.workcenter, t.shift.value)):
                children = await self.store.read_time_slot_targets(target.id)
                result.append(
                    TargetResponse(
                        id=target.id,
                        target_date=target.date,
                        workcenter=target.workcenter,
                        shift=target.shift,
                        plan_qty=target.plan_qty,
                        hours=target.hours,
                        team_member_count=target.team_member_count,
                        smv=target.smv,
                        created_by=target.created_by,
                        updated_at=target.updated_at,
                        time_slot_targets=[
                            TimeSlotTargetResponse(
                                time_slot=child.time_slot,
                                target_qty=child.target_qty,
                                position=child.position,
                            )
                            for child in sorted(children, key=lambda c: c.position)
                        ],
                    )
                )
            return result
        except Exception as e:
            logger.error(f"Error fetching targets for {day}: {e}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch targets"
            )

    async def get_hourly_targets_for_date(self, target_date) -> ProductionGrid:
        """Per-slot target quantities laid out like the production grid."""
        day = parse_date(target_date)
        try:
            records = await self.store.read_production_records(day)
            targets = await self.store.read_targets(day)

            workcenters = sorted(
                set(discover_workcenters(records)) | {t.workcenter for t in targets}
            )
            grid = empty_grid(workcenters)

            for target in targets:
                for child in await self.store.read_time_slot_targets(target.id):
                    if 1 <= child.position <= SLOTS_PER_SHIFT:
                        grid[target.shift.value][child.position - 1][target.workcenter] = child.target_qty

            return ProductionGrid(workcenters=workcenters, data=grid)
        except Exception as e:
            logger.error(f"Error fetching hourly targets for {day}: {e}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch hourly targets"
            )
