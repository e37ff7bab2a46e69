"""Shared fixtures: backend-shaped room payloads and fake backends."""

from typing import Any, Dict, List, Optional

import pytest

from pg_availability.errors import PgTransportError
from pg_availability.models import Floor, Room, RoomsPayload, ServerMetadata


def bed_json(
    number: Any,
    occupied: bool = False,
    status: Optional[str] = None,
    first: Optional[str] = None,
    last: Optional[str] = None,
    notice_days: Optional[int] = None,
    check_out: Optional[str] = None,
) -> Dict[str, Any]:
    bed: Dict[str, Any] = {"bedNumber": number, "isOccupied": occupied}
    if occupied:
        bed["residentStatus"] = status or "active"
        bed["resident"] = {
            "_id": f"res-{number}-{first}",
            "firstName": first,
            "lastName": last,
            "status": status or "active",
            "noticeDays": notice_days,
            "checkOutDate": check_out,
        }
    else:
        bed["residentStatus"] = "available"
        bed["resident"] = None
    return bed


def room_json(
    room_id: str,
    number: str,
    beds: List[Dict[str, Any]],
    floor_id: str = "f1",
    floor_name: str = "Ground",
    sharing: Optional[str] = None,
    cost: float = 12000,
    hint: Optional[str] = None,
) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "_id": room_id,
        "roomNumber": number,
        "floorId": {"_id": floor_id, "name": floor_name},
        "sharingType": sharing or f"{len(beds)}-sharing",
        "cost": cost,
        "numberOfBeds": len(beds),
        "beds": beds,
    }
    if hint is not None:
        data["roomStatus"] = hint
    return data


@pytest.fixture
def make_bed():
    return bed_json


@pytest.fixture
def make_room():
    def _make(*args, **kwargs) -> Room:
        return Room.model_validate(room_json(*args, **kwargs))

    return _make


@pytest.fixture
def rooms_json() -> List[Dict[str, Any]]:
    """Four rooms over two floors with one resident serving notice."""
    return [
        room_json(
            "r1", "101",
            [bed_json(1), bed_json(2, True, "active", "Asha", "Rao")],
            hint="partially_occupied",
        ),
        room_json(
            "r2", "102",
            [
                bed_json(1, True, "active", "Karan", "Mehta"),
                bed_json(2, True, "notice_period", "Vikram", "Singh", notice_days=12, check_out="2026-11-01T00:00:00.000Z"),
            ],
            hint="fully_occupied",
            cost=16000,
        ),
        room_json("r3", "201", [bed_json(1)], floor_id="f2", floor_name="First", hint="fully_available", cost=9000),
        room_json(
            "r4", "202",
            [
                bed_json(1, True, "active", "Neha", "Iyer"),
                bed_json(2, True, "active", "Rohit", "Das"),
                bed_json(3, True, "active", "Sara", "Khan"),
            ],
            floor_id="f2",
            floor_name="First",
            hint="fully_occupied",
            cost=21000,
        ),
    ]


@pytest.fixture
def rooms(rooms_json) -> List[Room]:
    return [Room.model_validate(r) for r in rooms_json]


@pytest.fixture
def floors() -> List[Floor]:
    return [Floor.model_validate({"_id": "f1", "name": "Ground"}), Floor.model_validate({"_id": "f2", "name": "First"})]


class FakePgClient:
    """Stands in for ``PgApiClient``; responses are queued per branch.

    Queue an exception instance to make the next call fail with it.
    """

    def __init__(self) -> None:
        self.room_responses: Dict[str, List[Any]] = {}
        self.floor_responses: Dict[str, List[Any]] = {}
        self.calls: List[tuple] = []
        self.before_rooms = None

    def queue_rooms(self, branch_id: str, response: Any) -> None:
        self.room_responses.setdefault(branch_id, []).append(response)

    def queue_floors(self, branch_id: str, response: Any) -> None:
        self.floor_responses.setdefault(branch_id, []).append(response)

    @staticmethod
    def _next(queue: Dict[str, List[Any]], branch_id: str) -> Any:
        pending = queue.get(branch_id)
        if not pending:
            raise PgTransportError("no response queued")
        response = pending.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get_floors(self, branch_id: str) -> List[Floor]:
        self.calls.append(("floors", branch_id))
        return self._next(self.floor_responses, branch_id)

    def get_rooms(self, branch_id: str) -> RoomsPayload:
        self.calls.append(("rooms", branch_id))
        if self.before_rooms is not None:
            hook, self.before_rooms = self.before_rooms, None
            hook()
        return self._next(self.room_responses, branch_id)


@pytest.fixture
def fake_client() -> FakePgClient:
    return FakePgClient()


@pytest.fixture
def payload(rooms) -> RoomsPayload:
    return RoomsPayload(rooms=rooms, metadata=None)


@pytest.fixture
def payload_with_metadata(rooms) -> RoomsPayload:
    return RoomsPayload(
        rooms=rooms,
        metadata=ServerMetadata(
            totalRooms=4, totalBeds=8, availableBeds=2, occupiedBeds=5, noticePeriodBeds=1, occupancyRate=75.0
        ),
    )
