from typing import List

from fastapi import APIRouter, Depends, Path, status

from output_tracker.api.deps import get_target_service, get_target_store
from output_tracker.core.schemas.production import ProductionGrid
from output_tracker.core.schemas.target import TargetCreate, TargetResponse, TargetSetResponse
from output_tracker.modules.targets.target_service import TargetService
from output_tracker.modules.targets.target_store import TargetStore


router = APIRouter(tags=["Targets"])


@router.post(
    "/targets",
    response_model=TargetSetResponse,
    status_code=status.HTTP_200_OK,
    summary="Create or Update a Shift Target",
    description="""
    Set the plan for one (date, workcenter, shift).

    **Behavior:**
    - An existing target for the same key is updated in place (same id).
    - The 8 slot targets are always rebuilt from scratch.
    - Slot quantity = round(planQty × slot minutes / 60 / hours), unless
      `timeSlotTargets` gives an explicit `targetQty` for that position.
    - Everything happens in one transaction; on failure nothing is written.

    **Defaults:** hours = 8, teamMemberCount = 1, smv = 0, createdBy = "system".
    """,
    responses={
        200: {"description": "Target created or updated"},
        409: {"description": "Concurrent modification of the same key, retry"},
        422: {"description": "Invalid payload (date, shift, quantities)"},
        500: {"description": "Storage failure, nothing was written"},
    }
)
async def set_target(
    payload: TargetCreate,
    target_store: TargetStore = Depends(get_target_store),
):
    result = await target_store.set_target(payload)
    return TargetSetResponse(id=result.id, updated=result.was_updated, message=result.message)


@router.get(
    "/targets/{date}",
    response_model=List[TargetResponse],
    summary="Get Targets For A Date",
    description="Targets of the date with their slot breakdown, ordered by workcenter and shift.",
)
async def get_targets_for_date(
    date: str = Path(..., description="Target date (YYYY-MM-DD)"),
    service: TargetService = Depends(get_target_service),
):
    return await service.get_targets_for_date(date)


@router.get(
    "/hourly-targets/{date}",
    response_model=ProductionGrid,
    summary="Get Slot Targets Grid For A Date",
    description="Per-slot target quantities in the same layout as the production grid.",
)
async def get_hourly_targets_for_date(
    date: str = Path(..., description="Target date (YYYY-MM-DD)"),
    service: TargetService = Depends(get_target_service),
):
    return await service.get_hourly_targets_for_date(date)
