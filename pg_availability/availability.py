"""Room filtering, occupancy statistics and room views.

Everything in this module is a pure function of the room list fetched from
the backend: nothing here performs I/O or mutates its inputs. Statistics are
always computed over the full room set, never over a filtered view.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, List, Optional, Sequence, Union

from .models import (
    BedView,
    NoticePeriodBed,
    NoticePeriodInfo,
    Room,
    RoomCard,
    RoomDetail,
    ServerMetadata,
    StatsSnapshot,
    StatusFilter,
)
from .status import BED_STATE_LABELS, BedState, RoomStatusHint, bed_counts, classify_bed, classify_room, has_notice_period_bed

logger = logging.getLogger(__name__)

ALL = "all"

# Counters compared between server metadata and the local computation.
STAT_FIELDS = ("totalRooms", "totalBeds", "availableBeds", "occupiedBeds", "noticePeriodBeds", "occupancyRate")


def _floor_id(room: Room) -> Optional[str]:
    return room.floor.id if room.floor else None


def _floor_name(room: Room) -> Optional[str]:
    return room.floor.name if room.floor else None


def _matches_search(room: Room, needle: str) -> bool:
    if needle in room.roomNumber.lower():
        return True
    if needle in (_floor_name(room) or "").lower():
        return True
    for bed in room.beds:
        if not bed.isOccupied or bed.resident is None:
            continue
        if needle in (bed.resident.firstName or "").lower() or needle in (bed.resident.lastName or "").lower():
            return True
    return False


def _matches_status(room: Room, status: StatusFilter) -> bool:
    if status is StatusFilter.AVAILABLE:
        return room.roomStatus == RoomStatusHint.FULLY_AVAILABLE.value
    if status is StatusFilter.OCCUPIED:
        return room.roomStatus == RoomStatusHint.FULLY_OCCUPIED.value
    if status is StatusFilter.PARTIAL:
        return room.roomStatus == RoomStatusHint.PARTIALLY_OCCUPIED.value
    if status is StatusFilter.NOTICE:
        return has_notice_period_bed(room.beds)
    return True


def filter_rooms(
    rooms: Iterable[Room],
    search: str = "",
    status: Union[StatusFilter, str] = StatusFilter.ALL,
    floor: str = ALL,
    sharing: str = ALL,
) -> List[Room]:
    """Return the rooms matching every active filter, in their original order.

    Args:
        rooms: the full room list.
        search: case-insensitive text matched against the room number, the
            floor name and the names of the residents on occupied beds.
        status: one of ``all``, ``available``, ``occupied``, ``partial``
            (matched against the backend room status) or ``notice`` (any bed
            in notice period).
        floor: floor id, or ``all``.
        sharing: sharing type such as ``2-sharing``, or ``all``.

    Raises:
        ValueError: if ``status`` is not a known status filter.
    """
    status = StatusFilter(status)
    needle = search.lower()
    result = []
    for room in rooms:
        if needle and not _matches_search(room, needle):
            continue
        if not _matches_status(room, status):
            continue
        if floor != ALL and _floor_id(room) != floor:
            continue
        if sharing != ALL and room.sharingType != sharing:
            continue
        result.append(room)
    return result


def occupancy_rate(occupied: int, total: int) -> float:
    """Percentage of occupied beds rounded to one decimal, 0 when there are no beds."""
    if total <= 0:
        return 0.0
    return round(min(max(occupied / total * 100, 0.0), 100.0), 1)


def compute_stats(rooms: Sequence[Room]) -> StatsSnapshot:
    """Aggregate bed counts over all rooms in a single pass."""
    total_beds = available = occupied = notice = notice_rooms = 0
    for room in rooms:
        _, room_occupied, room_notice = bed_counts(room.beds)
        total_beds += room.numberOfBeds
        # Beds declared by numberOfBeds but missing from the list count as free.
        available += room.numberOfBeds - room_occupied - room_notice
        occupied += room_occupied
        notice += room_notice
        if room_notice:
            notice_rooms += 1
    return StatsSnapshot(
        totalRooms=len(rooms),
        totalBeds=total_beds,
        availableBeds=available,
        occupiedBeds=occupied,
        noticePeriodBeds=notice,
        noticePeriodRooms=notice_rooms,
        occupancyRate=occupancy_rate(occupied + notice, total_beds),
        source="computed",
    )


def _stats_from_metadata(metadata: ServerMetadata, rooms: Sequence[Room], notice_rooms: int) -> StatsSnapshot:
    rate = metadata.occupancyRate
    if rate is None or not math.isfinite(rate):
        rate = 0.0
    return StatsSnapshot(
        totalRooms=metadata.totalRooms or len(rooms),
        totalBeds=metadata.totalBeds or 0,
        availableBeds=metadata.availableBeds or 0,
        occupiedBeds=metadata.occupiedBeds or 0,
        noticePeriodBeds=metadata.noticePeriodBeds or 0,
        noticePeriodRooms=notice_rooms,
        occupancyRate=round(min(max(rate, 0.0), 100.0), 1),
        source="server",
    )


def resolve_stats(
    rooms: Sequence[Room],
    metadata: Optional[ServerMetadata] = None,
    trust_server_metadata: bool = False,
) -> StatsSnapshot:
    """Return the statistics for a room list.

    The local computation is authoritative. When the backend sent a metadata
    block it is compared against it and any difference is logged; with
    ``trust_server_metadata`` the backend figures are returned instead.
    """
    computed = compute_stats(rooms)
    if metadata is None:
        return computed
    server = _stats_from_metadata(metadata, rooms, computed.noticePeriodRooms)
    drift = {
        name: (getattr(server, name), getattr(computed, name))
        for name in STAT_FIELDS
        if getattr(server, name) != getattr(computed, name)
    }
    if drift:
        logger.warning("Server statistics differ from computed values (server, computed): %s", drift)
    return server if trust_server_metadata else computed


def notice_period_info(room: Room) -> Optional[NoticePeriodInfo]:
    """Summarise when the notice-period beds of a room free up, or None."""
    beds = [bed for bed in room.beds if classify_bed(bed) is BedState.NOTICE_PERIOD]
    if not beds:
        return None
    days = [(bed.resident.noticeDays if bed.resident else None) or 0 for bed in beds]
    return NoticePeriodInfo(
        totalBeds=len(beds),
        earliestAvailability=min(days),
        latestAvailability=max(days),
        beds=[
            NoticePeriodBed(
                bedNumber=bed.bedNumber,
                residentName=bed.resident.fullName if bed.resident else "N/A",
                noticeDays=bed.resident.noticeDays if bed.resident else None,
                checkOutDate=bed.resident.checkOutDate if bed.resident else None,
            )
            for bed in beds
        ],
    )


def build_room_card(room: Room) -> RoomCard:
    status, label = classify_room(room)
    return RoomCard(
        roomId=room.id,
        roomNumber=room.roomNumber,
        floorId=_floor_id(room),
        floorName=_floor_name(room),
        sharingType=room.sharingType,
        cost=room.cost,
        numberOfBeds=room.numberOfBeds,
        availableBedCount=room.availableBedCount,
        occupiedBedCount=room.occupiedBedCount,
        noticePeriodBedCount=room.noticePeriodBedCount,
        displayStatus=status,
        statusLabel=label,
    )


def build_room_detail(room: Room) -> RoomDetail:
    """Full view of a room: card fields, per-bed states and notice-period info."""
    card = build_room_card(room)
    beds = []
    for bed in room.beds:
        state = classify_bed(bed)
        resident = bed.resident if state is not BedState.AVAILABLE else None
        beds.append(
            BedView(
                bedNumber=bed.bedNumber,
                state=state,
                label=BED_STATE_LABELS[state],
                residentName=resident.fullName if resident else None,
                noticeDays=resident.noticeDays if resident else None,
                checkOutDate=resident.checkOutDate if resident else None,
            )
        )
    if room.numberOfBeds:
        cost_per_bed = round(room.cost / room.numberOfBeds, 2)
        percent = round(room.occupiedBedCount / room.numberOfBeds * 100)
    else:
        cost_per_bed, percent = 0.0, 0
    return RoomDetail(
        **card.model_dump(),
        costPerBed=cost_per_bed,
        occupancyPercent=percent,
        beds=beds,
        noticePeriodInfo=notice_period_info(room),
    )
