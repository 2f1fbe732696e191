import logging
import typing as t
from functools import wraps

from flask import current_app, request
from flask_socketio import ConnectionRefusedError, emit, join_room, leave_room

from focushive.analytics import connected_sessions
from focushive.auth import AuthError, extract_token_from_handshake, identity_from_token
from focushive.exceptions import FocusHiveError, Unauthorized, ValidationError
from focushive.models import Identity
from focushive.server import socketio

from .constants import SocketEvents, SocketRooms

log = logging.getLogger(__name__)

# incoming event -> timer action
TIMER_ACTIONS = {
    SocketEvents.START_TIMER: "start",
    SocketEvents.PAUSE_TIMER: "pause",
    SocketEvents.RESET_TIMER: "reset",
    SocketEvents.CHANGE_TIMER_MODE: "changeMode",
    SocketEvents.TIMER_COMPLETED: "complete",
}


# --- Helper Functions ---
def _lifecycle():
    return current_app.extensions["room_lifecycle"]


def get_identity_from_sid(sid: str) -> Identity:
    """Gets the identity behind a connected Socket.IO sid."""
    session = current_app.extensions["presence"].get(sid)
    if session is None:
        raise Unauthorized("Session is not authenticated")
    return Identity(userId=session.userId, displayName=session.displayName)


def _room_id(data: t.Any) -> str:
    room_id = data.get("roomId") if isinstance(data, dict) else None
    if not isinstance(room_id, str) or not room_id:
        raise ValidationError("roomId is required", field="roomId")
    return room_id


def socket_errors(f):
    """Report domain errors to the calling session only.

    The error is emitted as ``error`` to the caller and returned as a
    ``{"success": False, ...}`` acknowledgement; nothing is broadcast.
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except FocusHiveError as e:
            log.info(f"{f.__name__} failed for {request.sid}: {e.message}")
            payload = e.to_dict()
            emit(SocketEvents.ERROR, payload, to=request.sid)
            return {"success": False, **payload}

    return decorated_function


@socketio.on("connect")
def handle_connect(auth=None):
    """Handle socket connection with JWT authentication.

    Auth payload
    ------------
    {
        "token": "jwt-token-string"
    }

    The token may also come from the ``token`` cookie or query parameter.
    """
    sid = request.sid
    try:
        identity = identity_from_token(extract_token_from_handshake(auth))
    except AuthError as e:
        log.warning(f"Client {sid} authentication failed: {e.message}")
        raise ConnectionRefusedError(e.message)

    presence = current_app.extensions["presence"]
    presence.register(sid, identity.userId, identity.displayName)
    join_room(SocketRooms.OVERVIEW)
    connected_sessions.set(presence.count())
    log.info(f"User {identity.userId} connected (sid: {sid})")

    return {"status": "ok", "userId": identity.userId}


@socketio.on("disconnect")
def handle_disconnect(*args, **kwargs):
    """Handle client disconnect.

    Removes only the memberships bound to this sid; the user's other
    sessions are unaffected.
    """
    sid = request.sid
    rooms = _lifecycle().disconnect(sid)
    connected_sessions.set(current_app.extensions["presence"].count())
    log.info(f"Client disconnected: {sid} (left rooms: {rooms})")


@socketio.on(SocketEvents.JOIN_ROOM)
@socket_errors
def handle_join_room(data):
    """Join a room and subscribe to its updates.

    Payload: ``{"roomId": str}``
    """
    room_id = _room_id(data)
    identity = get_identity_from_sid(request.sid)
    join_room(SocketRooms.for_room(room_id))
    try:
        room = _lifecycle().join(room_id, identity, request.sid)
    except FocusHiveError:
        leave_room(SocketRooms.for_room(room_id))
        raise
    emit(SocketEvents.ROOM_JOINED, room, to=request.sid)
    return {"success": True, "room": room}


@socketio.on(SocketEvents.LEAVE_ROOM)
@socket_errors
def handle_leave_room(data):
    """Payload: ``{"roomId": str}``"""
    room_id = _room_id(data)
    identity = get_identity_from_sid(request.sid)
    leave_room(SocketRooms.for_room(room_id))
    left = _lifecycle().leave(room_id, identity.userId)
    return {"success": True, "left": left}


@socketio.on(SocketEvents.GET_ACTIVE_ROOMS)
@socket_errors
def handle_get_active_rooms(*args):
    get_identity_from_sid(request.sid)
    rooms = _lifecycle().list_active()
    emit(SocketEvents.ACTIVE_ROOMS, rooms, to=request.sid)
    return {"success": True, "rooms": rooms}


@socketio.on(SocketEvents.SEND_MESSAGE)
@socket_errors
def handle_send_message(data):
    """Payload: ``{"roomId": str, "text": str}``"""
    room_id = _room_id(data)
    identity = get_identity_from_sid(request.sid)
    message = _lifecycle().send_message(room_id, identity, data.get("text"))
    return {"success": True, "message": message}


def _timer_handler(event: str, action: str):
    def handler(data):
        room_id = _room_id(data)
        identity = get_identity_from_sid(request.sid)
        params = {}
        if "timeRemaining" in data:
            params["timeRemaining"] = data["timeRemaining"]
        if "mode" in data:
            params["mode"] = data["mode"]
        result = _lifecycle().timer_command(room_id, identity.userId, action, **params)
        return {"success": True, **result}

    handler.__name__ = f"handle_{action}_timer"
    wrapped = socket_errors(handler)
    socketio.on_event(event, wrapped)
    return wrapped


for _event, _action in TIMER_ACTIONS.items():
    _timer_handler(_event, _action)
