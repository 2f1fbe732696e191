"""Room management routes.

Handles room creation, listing, joining, leaving and timer commands.
Domain errors propagate to the application's error handler.
"""

import logging

from flask import Blueprint, current_app, request

from focushive.auth import get_current_identity, require_auth
from focushive.exceptions import ValidationError

log = logging.getLogger(__name__)

rooms = Blueprint("rooms", __name__)


def _lifecycle():
    return current_app.extensions["room_lifecycle"]


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@rooms.route("/api/rooms", methods=["GET"])
def list_rooms():
    """List all rooms with at least one member.

    Returns:
        [{
            "id": "...",
            "name": "Math",
            "host": {"id": "...", "name": "Alice"},
            "userCount": 2,
            "users": [{"id": "...", "name": "Alice", "joinedAt": "..."}],
            "timerState": {...},
            "timerSettings": {...},
            "version": 3
        }]
    """
    return _lifecycle().list_active(), 200


@rooms.route("/api/rooms", methods=["POST"])
@require_auth
def create_room():
    """Create a new room hosted by the caller.

    Request body:
        {
            "name": "Math",
            "focusDuration": 25,       # minutes
            "shortBreakDuration": 5,   # minutes
            "longBreakDuration": 15    # minutes
        }
    """
    identity = get_current_identity()
    data = _json_body()
    room = _lifecycle().create(
        data.get("name"),
        identity,
        focus_minutes=data.get("focusDuration"),
        short_break_minutes=data.get("shortBreakDuration"),
        long_break_minutes=data.get("longBreakDuration"),
        session_id=request.headers.get("X-Session-ID"),
    )
    return room, 201


@rooms.route("/api/rooms/<string:room_id>", methods=["GET"])
def get_room(room_id: str):
    return _lifecycle().get_room_view(room_id), 200


@rooms.route("/api/rooms/<string:room_id>/join", methods=["POST"])
@require_auth
def join_room(room_id: str):
    """Join a room.

    Headers:
        X-Session-ID: optional Socket.IO sid to bind the membership to
    """
    identity = get_current_identity()
    session_id = request.headers.get("X-Session-ID") or None
    return _lifecycle().join(room_id, identity, session_id), 200


@rooms.route("/api/rooms/<string:room_id>/leave", methods=["POST"])
@require_auth
def leave_room(room_id: str):
    identity = get_current_identity()
    left = _lifecycle().leave(room_id, identity.userId)
    return {"success": True, "left": left}, 200


@rooms.route("/api/rooms/<string:room_id>/timer", methods=["POST"])
@require_auth
def timer_command(room_id: str):
    """Apply a host-only timer command.

    Request body:
        {
            "action": "start" | "pause" | "reset" | "changeMode" | "complete",
            "timeRemaining": 42,   # optional, pause only
            "mode": "shortBreak"   # changeMode only
        }
    """
    identity = get_current_identity()
    data = _json_body()
    action = data.get("action")
    if not isinstance(action, str) or not action:
        raise ValidationError("action is required", field="action")
    params = {key: data[key] for key in ("timeRemaining", "mode") if key in data}
    return _lifecycle().timer_command(room_id, identity.userId, action, **params), 200
