"""Fetch and refresh orchestration for the room availability board.

``RoomBoard`` owns the last room snapshot of the selected branch. A load moves
the board through ``idle -> loading -> success | error``:

- selecting a branch reloads floors and rooms;
- a manual refresh reloads rooms only and is refused while a load is in
  flight;
- a failed load keeps the previous rooms and queues one error notification;
- every load is stamped with a generation number, and a response whose
  generation has been superseded by a newer load is discarded.

Handlers run in FastAPI's worker threads, so state is guarded by a lock. The
backend is called outside the lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional

from .availability import resolve_stats
from .errors import BoardBusyError, NoBranchSelectedError, PgAvailabilityError
from .models import BoardSnapshot, BoardState, Floor, Notification, Room, StatsSnapshot
from .pg_client import PgApiClient

logger = logging.getLogger(__name__)

# Oldest notifications are dropped when nobody drains the queue.
MAX_NOTIFICATIONS = 20


def _utcnow() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


class RoomBoard:
    """Holds the rooms, floors and statistics of the selected branch."""

    def __init__(
        self,
        client: PgApiClient,
        *,
        trust_server_metadata: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._trust_server_metadata = trust_server_metadata
        self._clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self._state = BoardState.IDLE
        self._branch_id: Optional[str] = None
        self._rooms: List[Room] = []
        self._floors: List[Floor] = []
        self._stats = StatsSnapshot()
        self._last_fetched_at: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._notifications: Deque[Notification] = deque(maxlen=MAX_NOTIFICATIONS)

    # -- commands -----------------------------------------------------------

    def select_branch(self, branch_id: str) -> bool:
        """Select a branch and reload its floors and rooms.

        Returns True if the load succeeded and was applied.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._branch_id = branch_id
            self._state = BoardState.LOADING
        logger.info("Loading branch %s (request %s)", branch_id, generation)
        return self._load(branch_id, generation, include_floors=True, manual=False)

    def refresh(self) -> bool:
        """Reload the rooms of the selected branch.

        Raises:
            NoBranchSelectedError: no branch has been selected yet.
            BoardBusyError: a load is already in progress.
        """
        with self._lock:
            if self._branch_id is None:
                raise NoBranchSelectedError("Select a branch first")
            if self._state is BoardState.LOADING:
                raise BoardBusyError("Rooms are already being loaded")
            self._generation += 1
            generation = self._generation
            branch_id = self._branch_id
            self._state = BoardState.LOADING
        logger.info("Refreshing rooms of branch %s (request %s)", branch_id, generation)
        return self._load(branch_id, generation, include_floors=False, manual=True)

    def _load(self, branch_id: str, generation: int, *, include_floors: bool, manual: bool) -> bool:
        floors: Optional[List[Floor]] = None
        if include_floors:
            try:
                floors = self._client.get_floors(branch_id)
            except PgAvailabilityError as exc:
                # Rooms are still worth loading; the previous floors stay.
                logger.warning("Could not load floors for branch %s: %s", branch_id, exc)
            except Exception:
                logger.exception("Unexpected error loading floors for branch %s", branch_id)

        try:
            payload = self._client.get_rooms(branch_id)
            stats = resolve_stats(payload.rooms, payload.metadata, self._trust_server_metadata)
        except PgAvailabilityError as exc:
            logger.error("Error fetching rooms for branch %s: %s", branch_id, exc)
            self._fail(generation, str(exc), manual)
            return False
        except Exception as exc:
            # Any other failure must not leave the board stuck in LOADING.
            logger.exception("Unexpected error loading rooms for branch %s", branch_id)
            self._fail(generation, f"{type(exc).__name__}: {exc}", manual)
            return False

        with self._lock:
            if generation != self._generation:
                logger.info("Discarding stale response of request %s for branch %s", generation, branch_id)
                return False
            self._rooms = payload.rooms
            if floors is not None:
                self._floors = floors
            self._stats = stats
            self._last_fetched_at = self._clock()
            self._last_error = None
            self._state = BoardState.SUCCESS
            if manual:
                self._notify("success", "Rooms refreshed successfully")
        return True

    def _fail(self, generation: int, message: str, manual: bool) -> None:
        with self._lock:
            if generation != self._generation:
                logger.info("Ignoring failure of superseded request %s", generation)
                return
            self._state = BoardState.ERROR
            self._last_error = message
            self._notify("error", f"Failed to {'refresh' if manual else 'fetch'} rooms: {message}")

    def _notify(self, level: str, message: str) -> None:
        self._notifications.append(Notification(level=level, message=message, createdAt=self._clock()))

    # -- queries ------------------------------------------------------------

    @property
    def branch_id(self) -> Optional[str]:
        with self._lock:
            return self._branch_id

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms)

    def floors(self) -> List[Floor]:
        with self._lock:
            return list(self._floors)

    def stats(self) -> StatsSnapshot:
        with self._lock:
            return self._stats

    def room(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return next((room for room in self._rooms if room.id == room_id), None)

    def drain_notifications(self) -> List[Notification]:
        """Return queued notifications and clear the queue."""
        with self._lock:
            pending = list(self._notifications)
            self._notifications.clear()
        return pending

    def snapshot(self) -> BoardSnapshot:
        with self._lock:
            return BoardSnapshot(
                state=self._state,
                branchId=self._branch_id,
                refreshing=self._state is BoardState.LOADING,
                lastFetchedAt=self._last_fetched_at,
                lastError=self._last_error,
                totalRooms=len(self._rooms),
                stats=self._stats,
            )
