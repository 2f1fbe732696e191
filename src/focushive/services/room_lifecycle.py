"""Room lifecycle orchestration.

Composes the registry, the presence tracker and the broadcast gateway.
Every operation commits its change through the registry first and only
then broadcasts the freshly derived public view. A failed operation
never broadcasts.
"""

import datetime as dt
import logging
import math
import typing as t
import uuid

from focushive import timer, views
from focushive.analytics import active_rooms, rooms_deleted
from focushive.app.constants import ChatConfig, RoomConfig, SocketEvents
from focushive.config import FocusHiveConfig
from focushive.exceptions import NotFound, Unauthorized, ValidationError
from focushive.models import (
    MAX_DURATIONS,
    MIN_DURATION,
    Identity,
    Member,
    Room,
    TimerMode,
    TimerSettings,
    TimerState,
    utcnow,
)
from focushive.services.presence import PresenceTracker
from focushive.services.room_registry import RoomRegistry

log = logging.getLogger(__name__)

# field name -> (mode, default minutes)
DURATION_FIELDS = {
    "focusDuration": (TimerMode.FOCUS, 25),
    "shortBreakDuration": (TimerMode.SHORT_BREAK, 5),
    "longBreakDuration": (TimerMode.LONG_BREAK, 15),
}


def validate_room_name(name: t.Any) -> str:
    """Return the trimmed room name.

    Raises
    ------
    ValidationError
        If the name is not a non-empty string of at most 100 characters.
    """
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Room name is required", field="name")
    name = name.strip()
    if len(name) > RoomConfig.MAX_NAME_LENGTH:
        raise ValidationError(
            f"Room name must be at most {RoomConfig.MAX_NAME_LENGTH} characters",
            field="name",
        )
    return name


def settings_from_minutes(**minutes: t.Any) -> TimerSettings:
    """Build timer settings from durations given in minutes.

    Missing or None values fall back to 25/5/15 minutes.

    Raises
    ------
    ValidationError
        Naming the first offending duration field.
    """
    seconds = {}
    for field, (mode, default) in DURATION_FIELDS.items():
        value = minutes.get(field)
        if value is None:
            value = default
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                raise ValidationError(
                    f"{field} must be a number of minutes", field=field
                ) from None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{field} must be a number of minutes", field=field)
        value = value * 60
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationError(
                f"{field} must be a finite number of minutes", field=field
            )
        duration = round(value)
        if not MIN_DURATION <= duration <= MAX_DURATIONS[mode]:
            raise ValidationError(
                f"{field} must be between {MIN_DURATION // 60} and "
                f"{MAX_DURATIONS[mode] // 60} minutes",
                field=field,
            )
        seconds[field] = duration
    return TimerSettings(**seconds)


def validate_message(text: t.Any) -> str:
    if not isinstance(text, str) or not text.strip():
        raise ValidationError("Message text is required", field="text")
    text = text.strip()
    if len(text) > ChatConfig.MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message must be at most {ChatConfig.MAX_MESSAGE_LENGTH} characters",
            field="text",
        )
    return text


class RoomLifecycleManager:
    """Orchestrates room creation, membership, timer commands and cleanup.

    Parameters
    ----------
    registry : RoomRegistry
        Authoritative room store
    presence : PresenceTracker
        Live session table
    gateway : BroadcastGateway
        Fan-out to all transports
    config : FocusHiveConfig
        Application configuration (sweep grace period)
    clock : Callable[[], datetime]
        UTC clock, injectable for tests
    """

    def __init__(
        self,
        registry: RoomRegistry,
        presence: PresenceTracker,
        gateway: t.Any,
        config: FocusHiveConfig,
        clock: t.Callable[[], dt.datetime] = utcnow,
    ):
        self.registry = registry
        self.presence = presence
        self.gateway = gateway
        self.config = config
        self.clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_active(self) -> list[dict]:
        """Summaries of all rooms with at least one member."""
        now = self.clock()
        return [
            views.room_summary(room, now)
            for room in self.registry.list_rooms_with_members()
        ]

    def get_room_view(self, room_id: str) -> dict:
        return views.room_detail(self.registry.get_room(room_id), self.clock())

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def create(
        self,
        name: t.Any,
        identity: Identity,
        focus_minutes: t.Any = None,
        short_break_minutes: t.Any = None,
        long_break_minutes: t.Any = None,
        session_id: str | None = None,
    ) -> dict:
        """Create a room hosted by ``identity``.

        Returns
        -------
        dict
            Full public view of the new room

        Raises
        ------
        ValidationError
            For an empty name or out-of-range durations
        Conflict
            If the name is already in use
        """
        name = validate_room_name(name)
        settings = settings_from_minutes(
            focusDuration=focus_minutes,
            shortBreakDuration=short_break_minutes,
            longBreakDuration=long_break_minutes,
        )
        room = self.registry.create_room(
            name,
            identity.userId,
            identity.displayName,
            settings,
            host_session_id=session_id,
        )
        now = self.clock()
        self.gateway.publish(
            SocketEvents.ROOM_CREATED,
            views.room_summary(room, now),
            version=room.version,
        )
        self.broadcast_active_rooms()
        return views.room_detail(room, now)

    def join(self, room_id: str, identity: Identity, session_id: str | None) -> dict:
        """Add ``identity`` to a room, or refresh its existing membership.

        Joining twice never duplicates the membership entry.

        Raises
        ------
        NotFound
            If the room does not exist
        """
        joined_at = self.clock()
        is_new = False

        def upsert(members: list[Member]) -> list[Member]:
            nonlocal is_new
            for member in members:
                if member.userId == identity.userId:
                    member.name = identity.displayName
                    if session_id is not None:
                        member.sessionId = session_id
                    return members
            is_new = True
            members.append(
                Member(
                    userId=identity.userId,
                    name=identity.displayName,
                    sessionId=session_id,
                    joinedAt=joined_at,
                )
            )
            return members

        room = self.registry.atomic_update_members(room_id, upsert)
        log.info(
            f"User {identity.userId} {'joined' if is_new else 'rejoined'} room {room_id}"
        )
        self._broadcast_members(room)
        if is_new:
            self.gateway.publish(
                SocketEvents.USER_JOINED,
                {
                    "roomId": room.id,
                    "userId": identity.userId,
                    "userName": identity.displayName,
                },
                room_id=room.id,
                version=room.version,
            )
        self.broadcast_active_rooms()
        return views.room_detail(room, self.clock())

    def leave(self, room_id: str, user_id: str) -> bool:
        """Remove ``user_id`` from a room, deleting the room if it empties.

        Returns
        -------
        bool
            False if the user was not a member

        Raises
        ------
        NotFound
            If the room does not exist
        """
        removed: list[Member] = []

        def remove(members: list[Member]) -> list[Member]:
            removed.extend(m for m in members if m.userId == user_id)
            return [m for m in members if m.userId != user_id]

        room = self.registry.atomic_update_members(room_id, remove)
        if not removed:
            return False
        log.info(f"User {user_id} left room {room_id}")
        self._after_removal(room, removed, reason="leave")
        self.broadcast_active_rooms()
        return True

    def disconnect(self, session_id: str) -> list[str]:
        """Clean up after a closed transport session.

        Only membership entries bound to this session are removed; the
        user's entries for other sessions stay untouched.

        Returns
        -------
        list[str]
            Ids of the rooms the session was removed from
        """
        user_id = self.presence.unregister(session_id)
        log.debug(f"Session {session_id} of user {user_id} disconnected")
        affected = []
        for candidate in self.registry.find_rooms_by_session(session_id):
            removed: list[Member] = []

            def remove(members: list[Member]) -> list[Member]:
                removed.extend(m for m in members if m.sessionId == session_id)
                return [m for m in members if m.sessionId != session_id]

            try:
                room = self.registry.atomic_update_members(candidate.id, remove)
            except NotFound:
                # Deleted by a concurrent leave or sweep.
                continue
            if removed:
                affected.append(room.id)
                self._after_removal(room, removed, reason="disconnect")
        if affected:
            self.broadcast_active_rooms()
        return affected

    def _after_removal(self, room: Room, removed: list[Member], reason: str) -> None:
        if room.is_empty:
            self._delete_room(room.id, reason)
            return
        self._broadcast_members(room)
        for member in removed:
            self.gateway.publish(
                SocketEvents.USER_LEFT,
                {"roomId": room.id, "userId": member.userId, "userName": member.name},
                room_id=room.id,
                version=room.version,
            )

    def _delete_room(self, room_id: str, reason: str) -> bool:
        deleted = self.registry.delete_if_empty(room_id)
        if deleted is None:
            return False
        rooms_deleted.labels(reason=reason).inc()
        payload = {"roomId": deleted.id, "roomName": deleted.name}
        version = deleted.version + 1
        self.gateway.publish(
            SocketEvents.ROOM_DELETED, payload, room_id=deleted.id, version=version
        )
        self.gateway.publish(SocketEvents.ROOM_DELETED, payload, version=version)
        return True

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def timer_command(self, room_id: str, user_id: str, action: str, **params) -> dict:
        """Apply a host-only timer command.

        Parameters
        ----------
        room_id : str
            Target room
        user_id : str
            Caller, must be the room's host
        action : str
            ``start``, ``pause``, ``reset``, ``changeMode`` or ``complete``
        params
            ``timeRemaining`` for pause, ``mode`` for changeMode

        Returns
        -------
        dict
            ``{"roomId", "timerState", "changed"}`` plus
            ``suggestedNextMode`` after a completion

        Raises
        ------
        NotFound
            If the room does not exist
        Unauthorized
            If the caller is not the host (status 403)
        ValidationError
            For unknown actions or modes
        """
        room = self.registry.get_room(room_id)
        if room.hostId != user_id:
            raise Unauthorized("Only the host can control the timer", status_code=403)

        now = self.clock()
        transition: timer.TimerTransition | None = None

        def update(state: TimerState, settings: TimerSettings) -> TimerState | None:
            nonlocal transition
            transition = timer.apply(action, state, settings, now=now, **params)
            return transition.state if transition.changed else None

        room, changed = self.registry.atomic_update_timer(room_id, update)
        result = {
            "roomId": room.id,
            "timerState": views.timer_view(room, now),
            "changed": changed,
        }
        if transition is not None and transition.suggested_next_mode is not None:
            result["suggestedNextMode"] = transition.suggested_next_mode.value
        if not changed:
            log.debug(f"Timer {action} in room {room_id} was a no-op")
            return result

        log.info(f"Timer {action} in room {room_id} by host {user_id}")
        payload = {k: v for k, v in result.items() if k != "changed"}
        self.gateway.publish(
            timer.TIMER_EVENTS[action], payload, room_id=room.id, version=room.version
        )
        self.broadcast_active_rooms()
        return result

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    def send_message(self, room_id: str, identity: Identity, text: t.Any) -> dict:
        """Forward a chat message to the room's subscribers.

        Raises
        ------
        ValidationError
            For empty or overlong text
        NotFound
            If the room does not exist
        Unauthorized
            If the sender is not a member (status 403)
        """
        text = validate_message(text)
        room = self.registry.get_room(room_id)
        if room.find_member(identity.userId) is None:
            raise Unauthorized("Join the room before sending messages", status_code=403)
        message = {
            "id": str(uuid.uuid4()),
            "roomId": room.id,
            "userId": identity.userId,
            "userName": identity.displayName,
            "text": text,
            "timestamp": self.clock().isoformat(),
        }
        self.gateway.publish(SocketEvents.NEW_MESSAGE, message, room_id=room.id)
        return message

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    def sweep(self) -> dict[str, int]:
        """Delete empty rooms and prune members whose session has closed.

        A member is pruned when it was bound to a session that is no longer
        connected and it joined more than ``sweep_grace_seconds`` ago.
        Members that never bound a session (HTTP create or join) are kept.

        Returns
        -------
        dict[str, int]
            ``{"deleted": ..., "pruned": ...}``
        """
        now = self.clock()
        grace = dt.timedelta(seconds=self.config.sweep_grace_seconds)
        deleted = 0
        pruned = 0
        for candidate in self.registry.list_rooms():
            if candidate.is_empty:
                deleted += self._delete_room(candidate.id, reason="sweep")
                continue
            removed: list[Member] = []

            def prune(members: list[Member]) -> list[Member]:
                kept = []
                for member in members:
                    orphaned = member.sessionId is not None and not (
                        self.presence.is_connected(member.sessionId)
                    )
                    if orphaned and now - member.joinedAt > grace:
                        removed.append(member)
                    else:
                        kept.append(member)
                return kept

            try:
                room = self.registry.atomic_update_members(candidate.id, prune)
            except NotFound:
                continue
            if not removed:
                continue
            pruned += len(removed)
            if room.is_empty:
                deleted += self._delete_room(room.id, reason="sweep")
            else:
                self._after_removal(room, removed, reason="sweep")
        if deleted or pruned:
            log.info(f"Sweep deleted {deleted} rooms and pruned {pruned} members")
            self.broadcast_active_rooms()
        return {"deleted": deleted, "pruned": pruned}

    # ------------------------------------------------------------------
    # Broadcast helpers
    # ------------------------------------------------------------------

    def _broadcast_members(self, room: Room) -> None:
        users = views.member_list(room.members)
        self.gateway.publish(
            SocketEvents.USER_LIST_UPDATED,
            {"roomId": room.id, "users": users, "userCount": len(users)},
            room_id=room.id,
            version=room.version,
        )

    def broadcast_active_rooms(self) -> list[dict]:
        rooms = self.list_active()
        active_rooms.set(len(rooms))
        self.gateway.publish(SocketEvents.ACTIVE_ROOMS, rooms)
        return rooms
