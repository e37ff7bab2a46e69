"""Pydantic data models for the PG backend payloads and the board API.

The wire models (``Floor``, ``ResidentSummary``, ``Bed``, ``Room``,
``ServerMetadata``) validate the JSON sent by the backend at the fetch
boundary. Missing or malformed nested fields fall back to declared defaults
instead of surfacing later as placeholder values, so everything downstream
can rely on a consistent shape.

The remaining models describe what the board returns to its own clients.
They are separate from the wire models to decouple our representation from
the backend's.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, computed_field, field_validator, model_validator

from .status import BedState, RoomDisplayStatus, RoomStatusHint, bed_counts, derive_room_hint


class WireModel(BaseModel):
    """Base class for models parsed from backend JSON."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


_OPTIONAL_DATETIME = TypeAdapter(Optional[datetime])
_OPTIONAL_INT = TypeAdapter(Optional[int])
_OPTIONAL_FLOAT = TypeAdapter(Optional[float])


def _lenient(adapter: TypeAdapter, value: Any) -> Any:
    """Parse ``value`` with ``adapter``; blank or unparseable values become None."""
    if isinstance(value, str) and not value.strip():
        return None
    try:
        return adapter.validate_python(value)
    except ValidationError:
        return None


class Floor(WireModel):
    id: str = Field(default="", alias="_id")
    name: Optional[str] = None


class ResidentSummary(WireModel):
    """Read-only view of the resident occupying a bed."""

    id: Optional[str] = Field(default=None, alias="_id")
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    status: Optional[str] = None
    noticeDays: Optional[int] = None
    checkOutDate: Optional[datetime] = None
    contractEndDate: Optional[datetime] = None

    @field_validator("checkOutDate", "contractEndDate", mode="before")
    @classmethod
    def _lenient_date(cls, v: Any) -> Any:
        return _lenient(_OPTIONAL_DATETIME, v)

    @field_validator("noticeDays", mode="before")
    @classmethod
    def _lenient_days(cls, v: Any) -> Any:
        return _lenient(_OPTIONAL_INT, v)

    @property
    def fullName(self) -> str:
        return " ".join(part for part in (self.firstName, self.lastName) if part) or "N/A"


class Bed(WireModel):
    bedNumber: str = ""
    isOccupied: bool = False
    residentStatus: Optional[str] = None
    resident: Optional[ResidentSummary] = None

    @field_validator("bedNumber", mode="before")
    @classmethod
    def _bed_number_as_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("isOccupied", mode="before")
    @classmethod
    def _null_is_free(cls, v: Any) -> Any:
        return False if v is None else v

    @model_validator(mode="after")
    def _drop_resident_when_free(self) -> "Bed":
        # An empty bed never carries a resident; the backend marks it
        # with residentStatus "available", which is not a resident status.
        if not self.isOccupied:
            self.resident = None
            self.residentStatus = None
        elif self.residentStatus is None and self.resident is not None:
            self.residentStatus = self.resident.status
        return self


class Room(WireModel):
    id: str = Field(default="", alias="_id")
    roomNumber: str = "N/A"
    floor: Optional[Floor] = Field(default=None, alias="floorId")
    sharingType: Optional[str] = None
    cost: float = 0.0
    numberOfBeds: int = 0
    beds: List[Bed] = Field(default_factory=list)
    roomStatus: Optional[str] = None

    @field_validator("roomNumber", mode="before")
    @classmethod
    def _room_number_as_text(cls, v: Any) -> str:
        return "N/A" if v is None or v == "" else str(v)

    @field_validator("floor", mode="before")
    @classmethod
    def _floor_reference(cls, v: Any) -> Any:
        # floorId is either populated ({_id, name}) or a bare id.
        if isinstance(v, str):
            return {"_id": v} if v else None
        return v

    @field_validator("cost", "numberOfBeds", mode="before")
    @classmethod
    def _null_is_zero(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("beds", mode="before")
    @classmethod
    def _null_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @model_validator(mode="after")
    def _normalise(self) -> "Room":
        if self.numberOfBeds < len(self.beds):
            self.numberOfBeds = len(self.beds)
        known = {hint.value for hint in RoomStatusHint}
        if self.roomStatus not in known:
            self.roomStatus = derive_room_hint(self.beds, self.numberOfBeds).value
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def occupiedBedCount(self) -> int:
        """Occupied beds, notice-period beds included."""
        _, occupied, notice = bed_counts(self.beds)
        return occupied + notice

    @computed_field  # type: ignore[prop-decorator]
    @property
    def availableBedCount(self) -> int:
        return max(self.numberOfBeds - self.occupiedBedCount, 0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def noticePeriodBedCount(self) -> int:
        return bed_counts(self.beds)[2]


class ServerMetadata(WireModel):
    """Statistics block optionally sent alongside the room list."""

    totalRooms: Optional[int] = None
    totalBeds: Optional[int] = None
    availableBeds: Optional[int] = None
    occupiedBeds: Optional[int] = None
    noticePeriodBeds: Optional[int] = None
    occupancyRate: Optional[float] = None

    @field_validator("totalRooms", "totalBeds", "availableBeds", "occupiedBeds", "noticePeriodBeds", mode="before")
    @classmethod
    def _lenient_count(cls, v: Any) -> Any:
        return _lenient(_OPTIONAL_INT, v)

    @field_validator("occupancyRate", mode="before")
    @classmethod
    def _lenient_rate(cls, v: Any) -> Any:
        return _lenient(_OPTIONAL_FLOAT, v)


class RoomsPayload(BaseModel):
    rooms: List[Room] = []
    metadata: Optional[ServerMetadata] = None


class StatusFilter(str, Enum):
    ALL = "all"
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    NOTICE = "notice"
    PARTIAL = "partial"


class FilterState(BaseModel):
    """User-driven filters; ``all`` and an empty search disable a filter."""

    search: str = ""
    status: StatusFilter = StatusFilter.ALL
    floor: str = "all"
    sharing: str = "all"


class StatsSnapshot(BaseModel):
    totalRooms: int = 0
    totalBeds: int = 0
    availableBeds: int = 0
    occupiedBeds: int = 0
    noticePeriodBeds: int = 0
    noticePeriodRooms: int = 0
    occupancyRate: float = 0.0
    source: str = "computed"


class RoomCard(BaseModel):
    """Summary of a room as shown on the grid."""

    roomId: str
    roomNumber: str
    floorId: Optional[str] = None
    floorName: Optional[str] = None
    sharingType: Optional[str] = None
    cost: float = 0.0
    numberOfBeds: int = 0
    availableBedCount: int = 0
    occupiedBedCount: int = 0
    noticePeriodBedCount: int = 0
    displayStatus: RoomDisplayStatus
    statusLabel: str


class BedView(BaseModel):
    bedNumber: str
    state: BedState
    label: str
    residentName: Optional[str] = None
    noticeDays: Optional[int] = None
    checkOutDate: Optional[datetime] = None


class NoticePeriodBed(BaseModel):
    bedNumber: str
    residentName: str
    noticeDays: Optional[int] = None
    checkOutDate: Optional[datetime] = None


class NoticePeriodInfo(BaseModel):
    """When the notice-period beds of a room are expected to free up."""

    totalBeds: int
    earliestAvailability: int
    latestAvailability: int
    beds: List[NoticePeriodBed] = []


class RoomDetail(RoomCard):
    costPerBed: float = 0.0
    occupancyPercent: int = 0
    beds: List[BedView] = []
    noticePeriodInfo: Optional[NoticePeriodInfo] = None


class Notification(BaseModel):
    level: str
    message: str
    createdAt: datetime


class BoardState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class BoardSnapshot(BaseModel):
    state: BoardState
    branchId: Optional[str] = None
    refreshing: bool = False
    lastFetchedAt: Optional[datetime] = None
    lastError: Optional[str] = None
    totalRooms: int = 0
    stats: StatsSnapshot
