"""Pydantic models for rooms shared between the registry, REST API and Socket.IO events.

Rooms are persisted as a single JSON document, so the model *is* the
storage format. Field names are camelCase to match the frontend payloads.
"""

import datetime as dt
import enum
import uuid

from pydantic import BaseModel, Field


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TimerMode(str, enum.Enum):
    FOCUS = "focus"
    SHORT_BREAK = "shortBreak"
    LONG_BREAK = "longBreak"


# Duration bounds in seconds, per mode.
MIN_DURATION = 60
MAX_DURATIONS = {
    TimerMode.FOCUS: 180 * 60,
    TimerMode.SHORT_BREAK: 60 * 60,
    TimerMode.LONG_BREAK: 180 * 60,
}


class TimerSettings(BaseModel):
    """Per-room timer durations in seconds. Fixed at room creation."""

    focusDuration: int = Field(25 * 60, ge=MIN_DURATION, le=180 * 60)
    shortBreakDuration: int = Field(5 * 60, ge=MIN_DURATION, le=60 * 60)
    longBreakDuration: int = Field(15 * 60, ge=MIN_DURATION, le=180 * 60)

    def duration_for(self, mode: TimerMode) -> int:
        return {
            TimerMode.FOCUS: self.focusDuration,
            TimerMode.SHORT_BREAK: self.shortBreakDuration,
            TimerMode.LONG_BREAK: self.longBreakDuration,
        }[TimerMode(mode)]


class TimerState(BaseModel):
    """Checkpointed timer state.

    ``timeRemaining`` is the value at the last state-changing event. While
    ``isRunning`` the current value must be derived from ``startedAt``,
    see :func:`focushive.timer.derive_remaining`.
    """

    mode: TimerMode = TimerMode.FOCUS
    timeRemaining: int = Field(25 * 60, ge=0)
    isRunning: bool = False
    cycleCount: int = Field(0, ge=0)
    startedAt: dt.datetime | None = None
    pausedAt: dt.datetime | None = None


class Member(BaseModel):
    """A room's record of one user's participation."""

    userId: str
    name: str
    sessionId: str | None = None
    joinedAt: dt.datetime = Field(default_factory=utcnow)


class Room(BaseModel):
    """Authoritative room document.

    Attributes
    ----------
    id : str
        Unique room identifier (UUID4)
    name : str
        Unique, case-sensitive room name
    hostId : str
        User who created the room; sole authority for timer commands
    hostName : str
        Display name of the host at creation time
    timerSettings : TimerSettings
        Durations for the three timer modes
    timerState : TimerState
        Shared timer checkpoint
    members : list[Member]
        Current members, unique by userId
    createdAt : datetime
        Creation timestamp
    version : int
        Incremented by every committed write
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    hostId: str
    hostName: str
    timerSettings: TimerSettings = Field(default_factory=TimerSettings)
    timerState: TimerState = Field(default_factory=TimerState)
    members: list[Member] = Field(default_factory=list)
    createdAt: dt.datetime = Field(default_factory=utcnow)
    version: int = 1

    def find_member(self, user_id: str) -> Member | None:
        for member in self.members:
            if member.userId == user_id:
                return member
        return None

    @property
    def is_empty(self) -> bool:
        return len(self.members) == 0


class PresenceSession(BaseModel):
    """One live transport connection of an authenticated user."""

    sessionId: str
    userId: str
    displayName: str
    connectedAt: dt.datetime = Field(default_factory=utcnow)


class Identity(BaseModel):
    """Verified caller identity extracted from a session token."""

    userId: str
    displayName: str
