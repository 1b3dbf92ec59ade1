from datetime import datetime
from typing import Optional, Union

from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from output_tracker.shared.timezone import get_plant_now


class WorkcenterTarget(Document):
    """
    Planned output and staffing for one (date, workcenter, shift).

    The compound unique index guarantees a single target per key even
    when two processes race on the first insert.
    """

    target_date: str  # YYYY-MM-DD
    workcenter: str
    shift: str
    plan_qty: int = Field(..., ge=0)
    hours: int = Field(default=8, gt=0)
    team_member_count: Optional[int] = 1
    smv: Optional[float] = 0
    created_by: str = "system"
    created_at: datetime = Field(default_factory=get_plant_now)
    updated_at: Optional[datetime] = None

    class Settings:
        name = "workcenter_targets"
        indexes = [
            IndexModel(
                [("target_date", ASCENDING), ("workcenter", ASCENDING), ("shift", ASCENDING)],
                unique=True,
                name="uniq_target_key",
            ),
        ]


class WorkcenterTimeSlotTarget(Document):
    """Per-slot share of a WorkcenterTarget. Always replaced as a full set of 8."""

    target_id: PydanticObjectId
    time_slot: str
    position: int = Field(..., ge=1, le=8)
    target_qty: Union[int, float] = 0

    class Settings:
        name = "workcenter_time_slot_targets"
        indexes = [
            [("target_id", ASCENDING), ("position", ASCENDING)],
        ]
