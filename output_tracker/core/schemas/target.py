from datetime import date, datetime
from typing import Annotated, List, Optional, Union

from pydantic import ConfigDict, Field

from output_tracker.core.schemas.production import CamelModel
from output_tracker.shared.time_slots import Shift, SLOTS_PER_SHIFT


# -----------------------------
# Set Target (input)
# -----------------------------

class TimeSlotTargetInput(CamelModel):
    """
    Explicit quantity for one slot.

    Without a position the entry applies to its index in the list + 1.
    A null target_qty falls back to the proportional split.
    """

    position: Optional[int] = Field(None, ge=1, le=SLOTS_PER_SHIFT)
    target_qty: Optional[Annotated[Union[int, float], Field(ge=0)]] = None


class TargetCreate(CamelModel):
    target_date: date = Field(..., description="Production date (YYYY-MM-DD)")
    workcenter: str = Field(..., min_length=1)
    shift: Shift
    plan_qty: int = Field(..., ge=0, description="Planned output for the whole shift")
    hours: int = Field(8, gt=0, description="Working hours the plan is spread over")
    team_member_count: int = Field(1, ge=0)
    smv: float = Field(0, ge=0, description="Standard minute value per unit")
    created_by: Optional[str] = None
    time_slot_targets: Optional[List[TimeSlotTargetInput]] = Field(None, max_length=SLOTS_PER_SHIFT)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "targetDate": "2024-01-01",
                "workcenter": "WC1",
                "shift": "Morning",
                "planQty": 480,
                "hours": 8,
                "teamMemberCount": 5,
                "smv": 1.2,
                "createdBy": "planner01",
                "timeSlotTargets": [{"position": 3, "targetQty": 75}]
            }
        }
    )


class TargetSetResult(CamelModel):
    id: str
    was_updated: bool
    message: str


class TargetSetResponse(CamelModel):
    success: bool = True
    id: str
    updated: bool
    message: str


# -----------------------------
# Targets (output)
# -----------------------------

class TimeSlotTargetResponse(CamelModel):
    time_slot: str
    target_qty: Union[int, float]
    position: int


class TargetResponse(CamelModel):
    id: str
    target_date: date
    workcenter: str
    shift: Shift
    plan_qty: int
    hours: int
    team_member_count: Optional[int] = None
    smv: Optional[float] = None
    created_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    time_slot_targets: List[TimeSlotTargetResponse] = Field(default_factory=list)
