from datetime import date
from typing import List
import logging

from fastapi import HTTPException, status

from output_tracker.core.db.store import ProductionStore
from output_tracker.core.schemas.production import ProductionGrid
from output_tracker.modules.production.grid_builder import build_grid
from output_tracker.shared.dates import parse_date
from output_tracker.shared.timezone import get_plant_today

logger = logging.getLogger(__name__)


class ProductionService:
    """Production output grids and lookups."""

    def __init__(self, store: ProductionStore):
        self.store = store

    async def _grid(self, production_date: date) -> ProductionGrid:
        try:
            records = await self.store.read_production_records(production_date)
        except Exception as e:
            logger.error(f"Error fetching production data for {production_date}: {e}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch production data"
            )

        workcenters, grid = build_grid(records)
        return ProductionGrid(workcenters=workcenters, data=grid)

    async def get_current_grid(self) -> ProductionGrid:
        """Grid for today's production date in the plant timezone."""
        return await self._grid(get_plant_today())

    async def get_grid_for_date(self, production_date) -> ProductionGrid:
        return await self._grid(parse_date(production_date))

    async def get_available_dates(self) -> List[date]:
        try:
            return await self.store.read_available_dates()
        except Exception as e:
            logger.error(f"Error fetching available dates: {e}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch available dates"
            )

    async def get_workcenters(self) -> List[str]:
        try:
            return await self.store.read_workcenters()
        except Exception as e:
            logger.error(f"Error fetching distinct workcenters: {e}")
            raise HTTPException(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to fetch workcenters"
            )
