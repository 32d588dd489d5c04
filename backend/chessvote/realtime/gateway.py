from __future__ import annotations

import logging
from typing import Any, Protocol

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)


class Gateway(Protocol):
    def emit(self, room_id: str, event: str, payload: dict[str, Any] | None = None) -> None: ...


class SocketIOGateway:
    """Fan-out of room events over Socket.IO rooms (one Socket.IO room per room id)."""

    def __init__(self, socketio: SocketIO) -> None:
        self._socketio = socketio

    def emit(self, room_id: str, event: str, payload: dict[str, Any] | None = None) -> None:
        # A failed emission must not undo the mutation that produced it.
        try:
            if payload is None:
                self._socketio.emit(event, to=room_id)
            else:
                self._socketio.emit(event, payload, to=room_id)
        except Exception:
            logger.exception("broadcast failed room=%s event=%s", room_id, event)
