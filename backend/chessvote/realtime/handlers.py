from __future__ import annotations

import logging
from typing import Any

from flask import request
from flask_socketio import SocketIO, emit, join_room

from ..errors import ChessVoteError
from ..game.service import RoomService
from . import events

logger = logging.getLogger(__name__)


def _pick(payload: dict, *keys: str) -> Any:
    # Older clients send gameId/userId/fen/moveHistory/revealTime/instructions.
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _text(payload: dict, *keys: str) -> str:
    value = _pick(payload, *keys)
    if value is None:
        return ""
    return str(value).strip()


def _reject(code: str, message: str = "") -> dict:
    emit(events.ERROR, {"error": code, "message": message})
    return {"ok": False, "error": code}


def register_socketio_handlers(socketio: SocketIO, service: RoomService, default_room_id: str = "default-game") -> None:
    def _room_id(payload: dict) -> str:
        return _text(payload, "roomId", "gameId") or default_room_id

    @socketio.on(events.JOIN_GAME)
    def join_game(data):
        payload = data or {}
        room_id = _room_id(payload)
        participant_id = _text(payload, "participantId", "userId") or request.sid
        name = _text(payload, "name") or None

        join_room(room_id)
        snapshot = service.join(room_id, participant_id, name)

        emit(events.BOARD_UPDATE, {"position": snapshot["position"], "history": snapshot["history"]})
        emit(events.MODE_UPDATE, {"mode": snapshot["mode"], "revealed": snapshot["revealed"]})
        emit(events.INSTRUCTIONS_UPDATE, {"text": snapshot["instructions"]})
        emit(
            events.VOTE_TALLY,
            {"tally": snapshot["tally"], "votersByMove": snapshot["votersByMove"], "revealed": snapshot["revealed"]},
        )
        if "timer" in snapshot:
            emit(events.TIMER_UPDATE, {"remaining": snapshot["timer"]["remaining"], "revealAt": snapshot["timer"]["revealAt"]})

        logger.info("join room=%s participant=%s sid=%s", room_id, participant_id, request.sid)
        return {"ok": True, "state": snapshot}

    @socketio.on(events.SUBMIT_VOTE)
    def submit_vote(data):
        payload = data or {}
        room_id = _room_id(payload)
        participant_id = _text(payload, "participantId", "userId")
        move = _text(payload, "move")
        name = _text(payload, "name") or None
        if not participant_id or not move:
            return _reject("invalid_payload", "participantId and move are required")

        service.submit_vote(room_id, participant_id, move, name)
        return {"ok": True}

    @socketio.on(events.RETRACT_VOTE)
    def retract_vote(data):
        payload = data or {}
        room_id = _room_id(payload)
        participant_id = _text(payload, "participantId", "userId")
        if not participant_id:
            return _reject("invalid_payload", "participantId is required")

        service.retract_vote(room_id, participant_id, _text(payload, "move") or None)
        return {"ok": True}

    @socketio.on(events.UPDATE_BOARD)
    def update_board(data):
        payload = data or {}
        room_id = _room_id(payload)
        position = _pick(payload, "position", "fen")
        history = _pick(payload, "history", "moveHistory")
        if history is None:
            history = []
        if not isinstance(position, str) or not isinstance(history, list):
            return _reject("invalid_payload", "position must be a string and history a list")

        try:
            service.apply_position(room_id, position, history)
        except ChessVoteError as exc:
            logger.warning("rejected position room=%s sid=%s: %s", room_id, request.sid, exc)
            return _reject(exc.code, str(exc))
        return {"ok": True}

    @socketio.on(events.SET_MODE)
    def set_mode(data):
        payload = data or {}
        room_id = _room_id(payload)
        mode = _text(payload, "mode")
        revealed = bool(_pick(payload, "revealed", "reveal"))

        try:
            state = service.set_mode(
                room_id,
                mode,
                revealed,
                timer_length=_pick(payload, "timerLength"),
                reveal_at=_pick(payload, "revealAt", "revealTime"),
            )
        except ChessVoteError as exc:
            return _reject(exc.code, str(exc))
        return {"ok": True, **state}

    @socketio.on(events.INSTRUCTIONS_UPDATE)
    def instructions_update(data):
        payload = data or {}
        room_id = _room_id(payload)
        text = _pick(payload, "text", "instructions")
        if text is not None and not isinstance(text, str):
            return _reject("invalid_payload", "text must be a string")

        if not service.set_instructions(room_id, text or ""):
            return {"ok": False, "error": "room_not_found"}
        return {"ok": True}

    @socketio.on(events.RESET_REVEAL)
    def reset_reveal(data=None):
        payload = data or {}
        room_id = _room_id(payload)
        if not service.reset_reveal(room_id):
            return {"ok": False, "error": "room_not_found"}
        return {"ok": True}

    @socketio.on("disconnect")
    def on_disconnect(*args):
        # Ballots and names outlive the connection; Socket.IO drops room membership itself.
        logger.debug("disconnect sid=%s", request.sid)
