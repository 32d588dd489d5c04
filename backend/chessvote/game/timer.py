from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Literal

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

TimerState = Literal["idle", "running", "resolving"]


@dataclass
class TickOutcome:
    remaining: int
    reveal: bool
    expired: bool


@dataclass
class RoomTimer:
    """Countdown state for one room.

    Every ``start``/``stop`` bumps ``generation``; a background runner holding
    an older generation must treat itself as cancelled.
    """

    state: TimerState = "idle"
    generation: int = 0
    remaining: int = 0
    reveal_at: int = 0
    length: int = 0
    reveal_fired: bool = False

    @property
    def running(self) -> bool:
        return self.state == "running"

    def start(self, length: int, reveal_at: int) -> int:
        self.generation += 1
        self.state = "running"
        self.length = length
        self.reveal_at = reveal_at
        self.remaining = length
        self.reveal_fired = False
        return self.generation

    def stop(self) -> None:
        self.generation += 1
        self.state = "idle"

    def step(self) -> TickOutcome:
        self.remaining -= 1
        reveal = False
        if self.remaining == self.reveal_at and not self.reveal_fired:
            self.reveal_fired = True
            reveal = True
        expired = self.remaining <= 0
        if expired:
            self.state = "resolving"
        return TickOutcome(remaining=self.remaining, reveal=reveal, expired=expired)

    def public(self) -> dict:
        return {"remaining": self.remaining, "revealAt": self.reveal_at, "length": self.length}


TickFn = Callable[[str, int], bool]
ErrorFn = Callable[[str, int], None]


class TimerScheduler:
    """Drives room countdowns from Socket.IO background tasks.

    One task per (room, generation). The task sleeps ``interval`` seconds and
    calls ``tick(room_id, generation)`` until that returns False.
    """

    def __init__(self, socketio: SocketIO | None, interval: float = 1.0, enabled: bool = True) -> None:
        self._socketio = socketio
        self.interval = interval
        self.enabled = enabled and socketio is not None

    def schedule(self, room_id: str, generation: int, tick: TickFn, on_error: ErrorFn | None = None) -> None:
        if not self.enabled:
            return

        def _runner() -> None:
            while True:
                self._socketio.sleep(self.interval)
                try:
                    if not tick(room_id, generation):
                        break
                except Exception:
                    logger.exception("timer tick failed room=%s generation=%s", room_id, generation)
                    if on_error is not None:
                        on_error(room_id, generation)
                    break

        self._socketio.start_background_task(_runner)
