"""Tests for room filtering, statistics and room views."""

import logging

import pytest

from pg_availability.availability import (
    build_room_card,
    build_room_detail,
    compute_stats,
    filter_rooms,
    notice_period_info,
    occupancy_rate,
    resolve_stats,
)
from pg_availability.models import Room, ServerMetadata, StatusFilter
from pg_availability.status import BedState, RoomDisplayStatus


def _numbers(rooms):
    return [r.roomNumber for r in rooms]


# ─── FILTER ENGINE ────────────────────────────────────────────────────────────

class TestFilterRooms:
    def test_no_filters_returns_everything(self, rooms):
        assert _numbers(filter_rooms(rooms)) == ["101", "102", "201", "202"]

    def test_search_room_number(self, rooms):
        assert _numbers(filter_rooms(rooms, search="20")) == ["201", "202"]

    def test_search_floor_name_case_insensitive(self, rooms):
        assert _numbers(filter_rooms(rooms, search="gRoUnD")) == ["101", "102"]

    def test_search_resident_last_name(self, rooms):
        """A resident's last name finds the room even though the number does not match."""
        assert _numbers(filter_rooms(rooms, search="singh")) == ["102"]

    def test_search_resident_first_name(self, rooms):
        assert _numbers(filter_rooms(rooms, search="Neha")) == ["202"]

    def test_search_without_match(self, rooms):
        assert filter_rooms(rooms, search="zzz") == []

    @pytest.mark.parametrize(
        "status, expected",
        [
            ("available", ["201"]),
            ("occupied", ["102", "202"]),
            ("partial", ["101"]),
            ("notice", ["102"]),
            ("all", ["101", "102", "201", "202"]),
        ],
    )
    def test_status_filter(self, rooms, status, expected):
        assert _numbers(filter_rooms(rooms, status=status)) == expected

    def test_notice_filter_without_notice_beds_is_empty(self, rooms):
        calm = [r for r in rooms if r.id != "r2"]
        assert filter_rooms(calm, status=StatusFilter.NOTICE) == []

    def test_partial_and_notice_are_independent(self, make_room, make_bed):
        """A partial room with a notice bed matches both filters."""
        room = make_room("r", "9", [make_bed(1), make_bed(2, True, "notice_period", "A", "B")], hint="partially_occupied")
        assert filter_rooms([room], status="partial") == [room]
        assert filter_rooms([room], status="notice") == [room]

    def test_floor_filter(self, rooms):
        assert _numbers(filter_rooms(rooms, floor="f2")) == ["201", "202"]

    def test_floor_filter_skips_rooms_without_floor(self):
        room = Room.model_validate({"_id": "x", "roomNumber": "1", "floorId": None})
        assert filter_rooms([room], floor="f1") == []
        assert filter_rooms([room], floor="all") == [room]

    def test_sharing_filter(self, rooms):
        assert _numbers(filter_rooms(rooms, sharing="2-sharing")) == ["101", "102"]

    def test_filters_combine(self, rooms):
        assert _numbers(filter_rooms(rooms, search="0", status="occupied", floor="f2")) == ["202"]

    def test_unknown_status_rejected(self, rooms):
        with pytest.raises(ValueError):
            filter_rooms(rooms, status="vacant")

    def test_idempotent_and_pure(self, rooms):
        before = [r.model_dump() for r in rooms]
        once = filter_rooms(rooms, search="1", status="occupied")
        twice = filter_rooms(once, search="1", status="occupied")
        assert once == twice
        assert [r.model_dump() for r in rooms] == before


# ─── STATISTICS ───────────────────────────────────────────────────────────────

class TestStatistics:
    def test_compute_stats(self, rooms):
        stats = compute_stats(rooms)
        assert stats.totalRooms == 4
        assert stats.totalBeds == 8
        assert stats.availableBeds == 2
        assert stats.occupiedBeds == 5
        assert stats.noticePeriodBeds == 1
        assert stats.noticePeriodRooms == 1
        assert stats.occupancyRate == 75.0
        assert stats.source == "computed"

    def test_empty_rooms_have_zero_rate(self):
        stats = compute_stats([])
        assert stats.totalBeds == 0
        assert stats.occupancyRate == 0

    def test_rate_rounded_to_one_decimal(self):
        assert occupancy_rate(1, 3) == 33.3
        assert occupancy_rate(2, 3) == 66.7

    def test_rate_bounds(self):
        assert occupancy_rate(0, 0) == 0
        assert occupancy_rate(5, 5) == 100.0
        assert 0 <= occupancy_rate(3, 7) <= 100

    def test_stats_ignore_filters(self, rooms):
        """Statistics describe the whole branch, not the filtered view."""
        filter_rooms(rooms, status="notice")
        assert compute_stats(rooms) == compute_stats(list(rooms))

    def test_without_metadata_uses_computation(self, rooms):
        assert resolve_stats(rooms) == compute_stats(rooms)

    def test_metadata_agrees_with_computation(self, rooms):
        computed = compute_stats(rooms)
        metadata = ServerMetadata(**computed.model_dump(exclude={"noticePeriodRooms", "source"}))
        server = resolve_stats(rooms, metadata, trust_server_metadata=True)
        assert server.source == "server"
        assert server.model_dump(exclude={"source"}) == computed.model_dump(exclude={"source"})

    def test_drift_is_logged_and_computation_wins(self, rooms, caplog):
        metadata = ServerMetadata(totalRooms=4, totalBeds=8, availableBeds=2, occupiedBeds=6, noticePeriodBeds=1, occupancyRate=75)
        with caplog.at_level(logging.WARNING, logger="pg_availability.availability"):
            stats = resolve_stats(rooms, metadata)
        assert stats.occupiedBeds == 5
        assert "differ" in caplog.text

    def test_trusted_metadata_is_used_verbatim(self, rooms):
        metadata = ServerMetadata(totalBeds=8, availableBeds=2, occupiedBeds=6, noticePeriodBeds=1, occupancyRate=75.04)
        stats = resolve_stats(rooms, metadata, trust_server_metadata=True)
        assert stats.occupiedBeds == 6
        assert stats.totalRooms == 4
        assert stats.occupancyRate == 75.0
        assert stats.noticePeriodRooms == 1

    @pytest.mark.parametrize("rate", [None, float("nan"), float("inf")])
    def test_trusted_metadata_bad_rate_is_zero(self, rooms, rate):
        stats = resolve_stats(rooms, ServerMetadata(totalBeds=0, occupancyRate=rate), trust_server_metadata=True)
        assert stats.occupancyRate == 0


# ─── ROOM VIEWS ───────────────────────────────────────────────────────────────

class TestRoomViews:
    def test_room_card(self, rooms):
        card = build_room_card(rooms[1])
        assert card.roomId == "r2"
        assert card.floorName == "Ground"
        assert card.displayStatus is RoomDisplayStatus.NOTICE_PERIOD
        assert card.statusLabel == "Notice Period"
        assert card.occupiedBedCount == 2
        assert card.noticePeriodBedCount == 1
        assert card.availableBedCount == 0

    def test_room_detail(self, rooms):
        detail = build_room_detail(rooms[1])
        assert detail.costPerBed == 8000
        assert detail.occupancyPercent == 100
        assert [b.state for b in detail.beds] == [BedState.OCCUPIED, BedState.NOTICE_PERIOD]
        assert detail.beds[1].label == "Notice Period"
        assert detail.beds[1].residentName == "Vikram Singh"
        assert detail.beds[1].noticeDays == 12

    def test_room_detail_free_bed_has_no_resident(self, rooms):
        detail = build_room_detail(rooms[0])
        assert detail.beds[0].state is BedState.AVAILABLE
        assert detail.beds[0].residentName is None
        assert detail.occupancyPercent == 50

    def test_room_detail_without_beds(self):
        detail = build_room_detail(Room.model_validate({"_id": "x", "cost": 5000}))
        assert detail.costPerBed == 0
        assert detail.occupancyPercent == 0

    def test_notice_period_info(self, make_room, make_bed):
        room = make_room(
            "r", "7",
            [
                make_bed(1, True, "notice_period", "A", "One", notice_days=20),
                make_bed(2, True, "notice_period", "B", "Two", notice_days=5),
                make_bed(3),
            ],
        )
        info = notice_period_info(room)
        assert info.totalBeds == 2
        assert info.earliestAvailability == 5
        assert info.latestAvailability == 20
        assert [b.residentName for b in info.beds] == ["A One", "B Two"]

    def test_no_notice_period_info(self, rooms):
        assert notice_period_info(rooms[0]) is None
