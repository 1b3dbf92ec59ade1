from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Quantity = Union[int, float]
CellStatus = Literal["grey", "green", "yellow", "red"]


class CamelModel(BaseModel):
    """Serializes as camelCase for the dashboard, accepts either naming on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
# Grids
# -----------------------------

class ProductionGrid(CamelModel):
    """
    Dense per-shift grid.

    data["Morning"][0]["WC1"] is the quantity of WC1 in the first Morning slot.
    Every shift always has 8 slots and every slot carries every workcenter.
    """

    workcenters: List[str] = Field(default_factory=list)
    data: Dict[str, List[Dict[str, Quantity]]]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "workcenters": ["WC1", "WC2"],
                "data": {
                    "Morning": [{"WC1": 30, "WC2": 0}] + [{"WC1": 0, "WC2": 0}] * 7,
                    "Evening": [{"WC1": 0, "WC2": 0}] * 8,
                }
            }
        }
    )


class TargetCell(CamelModel):
    target: Quantity = 0
    efficiency: float = 0
    status: CellStatus = "grey"


class ReconciliationGrid(CamelModel):
    workcenters: List[str] = Field(default_factory=list)
    actual_data: Dict[str, List[Dict[str, Quantity]]]
    target_data: Dict[str, List[Dict[str, TargetCell]]]


# -----------------------------
# Daily efficiency
# -----------------------------

class EfficiencyRow(CamelModel):
    production_date: date
    shift: str
    workcenter: str
    total_output: Quantity = 0
    total_target: Optional[int] = None
    smv: Optional[float] = None
    team_member_count: Optional[int] = None
    total_work_minutes: Optional[int] = None
    efficiency: float = 0
    achievement_percentage: int = 0
