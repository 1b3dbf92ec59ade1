from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging

from output_tracker.shared import time_slots
from output_tracker.shared.time_slots import OTHER_TIME_SLOT, SLOTS_PER_SHIFT, Shift

logger = logging.getLogger(__name__)

ShiftGrid = Dict[str, List[Dict[str, Any]]]


def _field(record: Any, name: str):
    """Read a field from a record object or a plain mapping."""
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def empty_grid(workcenters: Iterable[str], fill: Any = 0) -> ShiftGrid:
    """8 slots per shift, every slot keyed by every workcenter."""
    workcenters = list(workcenters)
    return {
        shift.value: [
            {wc: (fill() if callable(fill) else fill) for wc in workcenters}
            for _ in range(SLOTS_PER_SHIFT)
        ]
        for shift in Shift
    }


def discover_workcenters(records: Iterable[Any]) -> List[str]:
    """Sorted union of the workcenters present in the records."""
    return sorted({wc for wc in (_field(r, "workcenter") for r in records) if wc})


def build_grid(
    records: Iterable[Any],
    workcenters: Optional[Iterable[str]] = None,
) -> Tuple[List[str], ShiftGrid]:
    """
    Fold sparse production records into a dense per-shift grid.

    Rules:
    - Records missing shift, time slot or workcenter are skipped.
    - Quantities accumulate; several records on the same cell add up.
    - "Other" is booked into slot 8 of its shift, on top of whatever
      slot 8 already holds.
    - Any other label the shift does not know is skipped.

    Args:
        records: ProductionRecord objects or mappings with
            shift / time_slot / workcenter / quantity
        workcenters: Columns of the grid. Discovered from the records
            when omitted.

    Returns:
        tuple: (workcenters, {"Morning": [8 dicts], "Evening": [8 dicts]})
    """
    records = list(records)
    if workcenters is None:
        workcenter_list = discover_workcenters(records)
    else:
        workcenter_list = list(workcenters)

    grid = empty_grid(workcenter_list)
    skipped = 0

    for record in records:
        shift = time_slots.as_shift(_field(record, "shift"))
        time_slot = _field(record, "time_slot")
        workcenter = _field(record, "workcenter")
        quantity = _field(record, "quantity") or 0

        if shift is None or not time_slot or not workcenter:
            skipped += 1
            continue

        if time_slot == OTHER_TIME_SLOT:
            logger.warning(
                f"'Other' time slot data for {workcenter} ({shift.value}) "
                f"with quantity {quantity}; booked into slot {SLOTS_PER_SHIFT}"
            )
            index = SLOTS_PER_SHIFT - 1
        else:
            slot_position = time_slots.position(time_slot, shift)
            if slot_position == 0:
                logger.debug(f"Unmapped time slot '{time_slot}' for {shift.value}, skipped")
                skipped += 1
                continue
            index = slot_position - 1

        cell = grid[shift.value][index]
        cell[workcenter] = cell.get(workcenter, 0) + quantity

    if skipped:
        logger.debug(f"Grid build skipped {skipped} incomplete or unmapped records")

    return workcenter_list, grid
