from typing import List

from fastapi import APIRouter, Depends, Path

from output_tracker.api.deps import get_reconciliation_service
from output_tracker.core.schemas.production import EfficiencyRow, ReconciliationGrid
from output_tracker.modules.reconciliation.reconciliation_service import ReconciliationService


router = APIRouter(tags=["Production vs Targets"])


@router.get(
    "/production-targets/{date}",
    response_model=ReconciliationGrid,
    summary="Get Actual vs Target Grid",
    description="""
    Actual output and target per shift, slot and workcenter.

    **Status colors:**
    - `grey`: no target for the slot
    - `green`: actual ≥ target
    - `yellow`: actual ≥ 80% of target
    - `red`: actual < 80% of target

    **Efficiency:** SMV × actual × 100 / (team members × slot minutes), 2 decimals.
    """,
)
async def get_reconciliation_for_date(
    date: str = Path(..., description="Production date (YYYY-MM-DD)"),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    return await service.get_reconciliation_for_date(date)


@router.get(
    "/efficiency/{date}",
    response_model=List[EfficiencyRow],
    summary="Get Daily Efficiency",
    description="""
    Whole-shift totals per shift and workcenter with production on the date.

    - `efficiency` = SMV × totalOutput × 100 / (teamMemberCount × hours × 60)
    - `achievementPercentage` = round(100 × totalOutput / planQty), 0 without a plan
    """,
)
async def get_efficiency_for_date(
    date: str = Path(..., description="Production date (YYYY-MM-DD)"),
    service: ReconciliationService = Depends(get_reconciliation_service),
):
    return await service.get_efficiency_for_date(date)
