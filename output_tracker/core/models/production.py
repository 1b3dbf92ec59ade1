from typing import Optional

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, DESCENDING


class ProductionSummary(Document):
    """
    One booked production quantity.

    Written by the shop-floor collectors; this service only reads it.
    Several rows may exist for the same slot/workcenter (one per
    sub-operation or per booking) and are summed on read.
    """

    production_date: str  # YYYY-MM-DD
    shift: Optional[str] = None  # "Morning" / "Evening"
    time_slot: Optional[str] = None  # 08:00-09:30, or "Other"
    workcenter: Optional[str] = None
    sub_operation_id: Optional[str] = None
    total_qty: float = Field(default=0, description="Booked quantity")

    class Settings:
        name = "production_summary"
        indexes = [
            [("production_date", DESCENDING)],
            [("production_date", ASCENDING), ("shift", ASCENDING), ("workcenter", ASCENDING)],
        ]
