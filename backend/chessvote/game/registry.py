from __future__ import annotations

import logging
from threading import RLock
from typing import Callable

from .models import Room

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Process-wide map of room id -> Room.

    Rooms are created lazily and live until ``close()``. ``lock`` guards every
    room mutation; the state machine holds it for the whole of an intent or a
    timer tick so broadcasts leave in mutation order.
    """

    def __init__(self) -> None:
        self.lock = RLock()
        self._rooms: dict[str, Room] = {}

    def get(self, room_id: str) -> Room | None:
        with self.lock:
            return self._rooms.get(room_id)

    def get_or_create(self, room_id: str, factory: Callable[[str], Room]) -> Room:
        with self.lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = factory(room_id)
                self._rooms[room_id] = room
                logger.info("room created room=%s", room_id)
            return room

    def list(self) -> list[Room]:
        with self.lock:
            return list(self._rooms.values())

    def __contains__(self, room_id: str) -> bool:
        with self.lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self.lock:
            return len(self._rooms)

    def close(self) -> None:
        """Stop every countdown; pending runners see a stale generation and exit."""
        with self.lock:
            for room in self._rooms.values():
                room.timer.stop()
            self._rooms.clear()
