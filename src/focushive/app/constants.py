"""Constants for the FocusHive application."""


class SocketEvents:
    """Socket.IO event names."""

    # Client -> server
    JOIN_ROOM = "join-room"
    LEAVE_ROOM = "leave-room"
    GET_ACTIVE_ROOMS = "get-active-rooms"
    SEND_MESSAGE = "send-message"
    START_TIMER = "start-timer"
    PAUSE_TIMER = "pause-timer"
    RESET_TIMER = "reset-timer"
    CHANGE_TIMER_MODE = "change-timer-mode"
    TIMER_COMPLETED = "timer-completed"

    # Server -> client
    ROOM_JOINED = "room-joined"
    ROOM_CREATED = "room-created"
    ROOM_DELETED = "room-deleted"
    ACTIVE_ROOMS = "active-rooms"
    USER_LIST_UPDATED = "user-list-updated"
    USER_JOINED = "user-joined"
    USER_LEFT = "user-left"
    NEW_MESSAGE = "new-message"
    ERROR = "error"

    PRESENCE = frozenset({USER_JOINED, USER_LEFT})


class SocketRooms:
    """Socket.IO room names."""

    OVERVIEW = "overview:public"

    @staticmethod
    def for_room(room_id: str) -> str:
        return f"room:{room_id}"


class Channels:
    """Relay (Redis pub/sub) channel names."""

    ACTIVE_ROOMS = "active-rooms"
    ROOM_UPDATES = "room-updates"
    USER_PRESENCE = "user-presence"

    @classmethod
    def for_event(cls, event: str, room_id: str | None) -> str:
        """Channel carrying ``event`` for a room, or the global feed."""
        if room_id is None:
            if event == SocketEvents.ACTIVE_ROOMS:
                return cls.ACTIVE_ROOMS
            return cls.ROOM_UPDATES
        if event in SocketEvents.PRESENCE:
            return f"{cls.USER_PRESENCE}:{room_id}"
        return f"{cls.ROOM_UPDATES}:{room_id}"

    @classmethod
    def subscribe_capability(cls) -> dict[str, list[str]]:
        """Channel patterns a client token may subscribe to."""
        return {
            cls.ACTIVE_ROOMS: ["subscribe"],
            cls.ROOM_UPDATES: ["subscribe"],
            f"{cls.ROOM_UPDATES}:*": ["subscribe"],
            f"{cls.USER_PRESENCE}:*": ["subscribe"],
        }


class ChatConfig:
    """Chat message limits."""

    MAX_MESSAGE_LENGTH = 500


class RoomConfig:
    """Room name limits."""

    MAX_NAME_LENGTH = 100
