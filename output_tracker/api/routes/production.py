from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Path

from output_tracker.api.deps import get_production_service
from output_tracker.core.schemas.production import ProductionGrid
from output_tracker.modules.production.production_service import ProductionService


router = APIRouter(prefix="/production", tags=["Production"])


@router.get(
    "/current",
    response_model=ProductionGrid,
    summary="Get Today's Production Grid",
    description="""
    Production output of the current production date (plant timezone),
    laid out as 8 slots per shift with one column per workcenter.

    **Notes:**
    - Quantities booked under the `Other` time slot are added to slot 8.
    - The same payload is pushed on `/ws/production` whenever it changes.
    """,
)
async def get_current_grid(service: ProductionService = Depends(get_production_service)):
    return await service.get_current_grid()


@router.get(
    "/dates",
    response_model=List[date],
    summary="Get Dates With Production Data",
    description="Distinct production dates, newest first.",
)
async def get_available_dates(service: ProductionService = Depends(get_production_service)):
    return await service.get_available_dates()


@router.get(
    "/workcenters",
    response_model=List[str],
    summary="Get Workcenters",
    description="Distinct workcenters seen in production data, sorted.",
)
async def get_workcenters(service: ProductionService = Depends(get_production_service)):
    return await service.get_workcenters()


@router.get(
    "/{date}",
    response_model=ProductionGrid,
    summary="Get Production Grid For A Date",
    responses={
        200: {"description": "Grid for the requested date (empty workcenter list if no data)"},
        400: {"description": "Invalid date format, expected YYYY-MM-DD"},
    }
)
async def get_grid_for_date(
    date: str = Path(..., description="Production date (YYYY-MM-DD)"),
    service: ProductionService = Depends(get_production_service),
):
    return await service.get_grid_for_date(date)
