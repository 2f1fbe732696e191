"""Persistent room registry.

Rooms are stored as one JSON document per room in Redis (or the
in-memory ``znsocket.MemoryStorage`` in single-process mode). Every
read-modify-write of a room runs under a room-keyed lock, so concurrent
membership and timer updates of the same room never interleave, while
updates of different rooms run in parallel.
"""

import contextlib
import logging
import threading
import typing as t

from redis import Redis

from focushive.exceptions import Conflict, NotFound
from focushive.models import Member, Room, TimerSettings, TimerState
from focushive.redis_keys import RoomKeys

log = logging.getLogger(__name__)

MembersUpdate = t.Callable[[list[Member]], list[Member]]
TimerUpdate = t.Callable[[TimerState, TimerSettings], TimerState | None]


class RoomLocks:
    """Room-keyed mutexes.

    The internal guard is held only while looking up or creating a lock,
    never while a room operation runs.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, room_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(room_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[room_id] = lock
            return lock

    def discard(self, room_id: str) -> None:
        """Forget the lock of a deleted room."""
        with self._guard:
            self._locks.pop(room_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class RoomRegistry:
    """Authoritative store for rooms and their membership.

    Parameters
    ----------
    redis_client : Redis
        Redis client (``decode_responses=True``) or ``MemoryStorage``
    """

    def __init__(self, redis_client: Redis):
        self.r = redis_client
        self.locks = RoomLocks()
        # Serializes name reservation; held only during create/delete.
        self._names_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, room_id: str) -> Room | None:
        raw = self.r.get(RoomKeys(room_id).document())
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return Room.model_validate_json(raw)

    def _save(self, room: Room) -> None:
        self.r.set(RoomKeys(room.id).document(), room.model_dump_json())

    def get_room(self, room_id: str) -> Room:
        """Get a room by id.

        Raises
        ------
        NotFound
            If the room does not exist
        """
        room = self._load(room_id)
        if room is None:
            raise NotFound(f"Room '{room_id}' not found")
        return room

    def room_exists(self, room_id: str) -> bool:
        return self.r.exists(RoomKeys(room_id).document()) > 0

    def list_rooms(self) -> list[Room]:
        """Return all stored rooms ordered by creation time."""
        rooms = []
        for key in self.r.scan_iter(match=RoomKeys.document_pattern()):
            room_id = RoomKeys.parse_room_id(key)
            if room_id is None:
                continue
            room = self._load(room_id)
            # The room may have been deleted between scan and read.
            if room is not None:
                rooms.append(room)
        return sorted(rooms, key=lambda room: (room.createdAt, room.id))

    def list_rooms_with_members(self) -> list[Room]:
        """Return rooms that have at least one member."""
        return [room for room in self.list_rooms() if not room.is_empty]

    def find_rooms_by_session(self, session_id: str) -> list[Room]:
        """Return rooms with a membership entry attached to ``session_id``."""
        return [
            room
            for room in self.list_rooms()
            if any(member.sessionId == session_id for member in room.members)
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_room(
        self,
        name: str,
        host_id: str,
        host_name: str,
        settings: TimerSettings,
        host_session_id: str | None = None,
    ) -> Room:
        """Create a room with the host as its first member.

        Parameters
        ----------
        name : str
            Room name, must not be in use (case-sensitive exact match)
        host_id : str
            Creating user, becomes the immutable host
        host_name : str
            Display name of the host
        settings : TimerSettings
            Validated timer durations
        host_session_id : str | None
            Transport session of the host, if known

        Returns
        -------
        Room
            The persisted room

        Raises
        ------
        Conflict
            If a room with this name exists
        """
        room = Room(
            name=name,
            hostId=host_id,
            hostName=host_name,
            timerSettings=settings,
            timerState=TimerState(timeRemaining=settings.focusDuration),
            members=[Member(userId=host_id, name=host_name, sessionId=host_session_id)],
        )
        name_key = RoomKeys.name_reservation(name)
        with self._names_lock:
            owner = self.r.get(name_key)
            if owner is not None and self.room_exists(owner):
                raise Conflict(f"Room name '{name}' is already in use")
            self.r.set(name_key, room.id)
            self._save(room)
        log.info(f"Created room '{name}' ({room.id}) hosted by {host_id}")
        return room

    @contextlib.contextmanager
    def _room_lock(self, room_id: str) -> t.Iterator[None]:
        """Hold the room lock, forgetting it if the room turns out not to exist."""
        try:
            with self.locks.get(room_id):
                yield
        except NotFound:
            self.locks.discard(room_id)
            raise

    def atomic_update_members(self, room_id: str, fn: MembersUpdate) -> Room:
        """Apply ``fn`` to the member list under the room lock.

        ``fn`` receives a copy of the current members and returns the new
        list. The room version is bumped only if the list changed.

        Raises
        ------
        NotFound
            If the room does not exist (e.g. deleted concurrently)
        """
        with self._room_lock(room_id):
            room = self.get_room(room_id)
            members = fn([member.model_copy() for member in room.members])
            if members == room.members:
                return room
            room = room.model_copy(
                update={"members": members, "version": room.version + 1}
            )
            self._save(room)
            return room

    def atomic_update_timer(self, room_id: str, fn: TimerUpdate) -> tuple[Room, bool]:
        """Apply ``fn`` to the timer state under the room lock.

        ``fn`` returns the new state, or None for a no-op.

        Returns
        -------
        tuple[Room, bool]
            The current room and whether it was modified

        Raises
        ------
        NotFound
            If the room does not exist
        """
        with self._room_lock(room_id):
            room = self.get_room(room_id)
            state = fn(room.timerState, room.timerSettings)
            if state is None or state == room.timerState:
                return room, False
            room = room.model_copy(
                update={"timerState": state, "version": room.version + 1}
            )
            self._save(room)
            return room, True

    def delete_if_empty(self, room_id: str) -> Room | None:
        """Delete the room if it has no members.

        Emptiness is re-checked under the room lock, so only one caller
        can ever observe the deletion.

        Returns
        -------
        Room | None
            The deleted room, or None if it still has members or was
            already gone.
        """
        with self.locks.get(room_id):
            room = self._load(room_id)
            if room is not None and not room.is_empty:
                return None
            if room is not None:
                self._delete(room)
        self.locks.discard(room_id)
        if room is None:
            return None
        log.info(f"Deleted empty room '{room.name}' ({room_id})")
        return room

    def _delete(self, room: Room) -> None:
        name_key = RoomKeys.name_reservation(room.name)
        with self._names_lock:
            self.r.delete(RoomKeys(room.id).document())
            owner = self.r.get(name_key)
            if owner == room.id:
                self.r.delete(name_key)
