"""Bed and room status classification.

These helpers derive the display state of a bed or a room from the raw
occupancy data sent by the backend. They only rely on attribute access
(``isOccupied``, ``residentStatus``, ``beds``, ``roomStatus``) so they work on
the validated models in ``pg_availability.models`` as well as on any other
object carrying the same attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional, Tuple


class ResidentStatus(str, Enum):
    ACTIVE = "active"
    NOTICE_PERIOD = "notice_period"


class RoomStatusHint(str, Enum):
    """Coarse room status as computed by the backend."""

    FULLY_AVAILABLE = "fully_available"
    FULLY_OCCUPIED = "fully_occupied"
    PARTIALLY_OCCUPIED = "partially_occupied"
    NOTICE_PERIOD = "notice_period"


class BedState(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    NOTICE_PERIOD = "notice_period"


class RoomDisplayStatus(str, Enum):
    NOTICE_PERIOD = "notice_period"
    AVAILABLE = "available"
    FULL = "full"
    PARTIAL = "partial"


BED_STATE_LABELS = {
    BedState.AVAILABLE: "Available",
    BedState.OCCUPIED: "Occupied",
    BedState.NOTICE_PERIOD: "Notice Period",
}

ROOM_STATUS_LABELS = {
    RoomDisplayStatus.NOTICE_PERIOD: "Notice Period",
    RoomDisplayStatus.AVAILABLE: "Available",
    RoomDisplayStatus.FULL: "Full",
    RoomDisplayStatus.PARTIAL: "Partial",
}


def classify_bed(bed: Any) -> BedState:
    """Return the display state of a single bed.

    An unoccupied bed is always ``available`` and its resident is never
    looked at. An occupied bed whose resident is missing or has an unknown
    status is reported as ``occupied``.
    """
    if not bed.isOccupied:
        return BedState.AVAILABLE
    if bed.residentStatus == ResidentStatus.NOTICE_PERIOD.value:
        return BedState.NOTICE_PERIOD
    return BedState.OCCUPIED


def has_notice_period_bed(beds: Iterable[Any]) -> bool:
    """Return True if any bed is occupied by a resident serving notice."""
    return any(classify_bed(bed) is BedState.NOTICE_PERIOD for bed in beds)


def bed_counts(beds: Iterable[Any]) -> Tuple[int, int, int]:
    """Count beds per state in a single pass.

    Returns:
        ``(available, occupied, notice_period)``; ``occupied`` excludes
        notice-period beds.
    """
    available = occupied = notice = 0
    for bed in beds:
        state = classify_bed(bed)
        if state is BedState.AVAILABLE:
            available += 1
        elif state is BedState.NOTICE_PERIOD:
            notice += 1
        else:
            occupied += 1
    return available, occupied, notice


def derive_room_hint(beds: Iterable[Any], number_of_beds: Optional[int] = None) -> RoomStatusHint:
    """Compute a coarse room status when the backend did not send one.

    Beds declared by ``number_of_beds`` but missing from ``beds`` count as free.
    """
    beds = list(beds)
    capacity = max(number_of_beds or 0, len(beds))
    _, occupied, notice = bed_counts(beds)
    if notice:
        return RoomStatusHint.NOTICE_PERIOD
    if occupied == 0:
        return RoomStatusHint.FULLY_AVAILABLE
    if occupied == capacity:
        return RoomStatusHint.FULLY_OCCUPIED
    return RoomStatusHint.PARTIALLY_OCCUPIED


def classify_room(room: Any) -> Tuple[RoomDisplayStatus, str]:
    """Return the display status and label of a room.

    A single notice-period bed overrides the backend hint, whatever the state
    of the other beds.
    """
    if has_notice_period_bed(room.beds):
        status = RoomDisplayStatus.NOTICE_PERIOD
    elif room.roomStatus == RoomStatusHint.FULLY_AVAILABLE.value:
        status = RoomDisplayStatus.AVAILABLE
    elif room.roomStatus == RoomStatusHint.FULLY_OCCUPIED.value:
        status = RoomDisplayStatus.FULL
    else:
        status = RoomDisplayStatus.PARTIAL
    return status, ROOM_STATUS_LABELS[status]
