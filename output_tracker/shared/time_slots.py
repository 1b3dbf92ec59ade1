from enum import Enum
from typing import Dict, List, NamedTuple, Optional


# ============================================================================
# Shifts & Time Slots
# ============================================================================

class Shift(str, Enum):
    MORNING = "Morning"
    EVENING = "Evening"


class TimeSlot(NamedTuple):
    label: str
    position: int
    duration: int  # minutes


SLOTS_PER_SHIFT = 8

# Production rows that fall outside the shift windows are booked under this label
OTHER_TIME_SLOT = "Other"

_MORNING_SLOTS = (
    TimeSlot("05:30-06:00", 1, 30),
    TimeSlot("06:00-07:00", 2, 60),
    TimeSlot("07:00-08:00", 3, 60),
    TimeSlot("08:00-09:30", 4, 90),
    TimeSlot("09:30-10:30", 5, 60),
    TimeSlot("10:30-11:30", 6, 60),
    TimeSlot("11:30-12:30", 7, 60),
    TimeSlot("12:30-13:30", 8, 60),
)

_EVENING_SLOTS = (
    TimeSlot("13:30-14:00", 1, 30),
    TimeSlot("14:00-15:00", 2, 60),
    TimeSlot("15:00-16:00", 3, 60),
    TimeSlot("16:00-17:00", 4, 60),
    TimeSlot("17:00-18:30", 5, 90),
    TimeSlot("18:30-19:30", 6, 60),
    TimeSlot("19:30-20:30", 7, 60),
    TimeSlot("20:30-21:30", 8, 60),
)

SHIFT_TIME_SLOTS: Dict[Shift, tuple] = {
    Shift.MORNING: _MORNING_SLOTS,
    Shift.EVENING: _EVENING_SLOTS,
}

_POSITIONS: Dict[Shift, Dict[str, int]] = {
    shift: {slot.label: slot.position for slot in slots}
    for shift, slots in SHIFT_TIME_SLOTS.items()
}

_DURATIONS: Dict[str, int] = {
    slot.label: slot.duration
    for slots in SHIFT_TIME_SLOTS.values()
    for slot in slots
}


def as_shift(value) -> Optional[Shift]:
    """Coerce a raw shift value to Shift, or None when it is not a known shift."""
    if isinstance(value, Shift):
        return value
    try:
        return Shift(value)
    except ValueError:
        return None


def position(time_slot: Optional[str], shift) -> int:
    """
    Position (1-8) of a time slot label within its shift.

    Returns 0 for labels outside the shift's table (including "Other")
    and for unknown shifts. 0 means "unmapped", it is not an error.
    """
    known_shift = as_shift(shift)
    if known_shift is None or not time_slot:
        return 0
    return _POSITIONS[known_shift].get(time_slot, 0)


def duration(time_slot: Optional[str]) -> Optional[int]:
    """Slot width in minutes, or None for an undeclared label."""
    if not time_slot:
        return None
    return _DURATIONS.get(time_slot)


def slots_for(shift) -> List[TimeSlot]:
    """Ordered slots (position 1..8) of a shift."""
    return list(SHIFT_TIME_SLOTS[Shift(shift)])
