from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..game.service import RoomService

bp = Blueprint("rooms", __name__)


def _service() -> RoomService:
    return current_app.extensions["chessvote"]


@bp.get("/rooms")
def list_rooms():
    rooms = [
        {"roomId": r.id, "mode": r.mode, "participants": len(r.participant_names)}
        for r in _service().list_rooms()
    ]
    return jsonify({"rooms": rooms})


@bp.get("/rooms/<room_id>")
def get_room(room_id: str):
    snapshot = _service().snapshot(room_id)
    if snapshot is None:
        return jsonify({"error": "room_not_found"}), 404
    return jsonify(snapshot)
