"""Public views of rooms sent to clients.

Every view derives the timer's remaining time at build time; the stored
checkpoint is never sent as-is while the timer runs.
"""

import datetime as dt

from focushive import timer
from focushive.models import Member, Room, TimerState


def timer_view(room: Room, now: dt.datetime | None = None) -> dict:
    state: TimerState = timer.current_state(room.timerState, room.timerSettings, now)
    return state.model_dump(mode="json")


def member_list(members: list[Member]) -> list[dict]:
    """Format members for the frontend, keeping the first entry per user."""
    seen: set[str] = set()
    users = []
    for member in members:
        if member.userId in seen:
            continue
        seen.add(member.userId)
        users.append(
            {
                "id": member.userId,
                "name": member.name,
                "joinedAt": member.joinedAt.isoformat(),
            }
        )
    return users


def room_summary(room: Room, now: dt.datetime | None = None) -> dict:
    """Room entry of the active-rooms feed."""
    users = member_list(room.members)
    return {
        "id": room.id,
        "name": room.name,
        "host": {"id": room.hostId, "name": room.hostName},
        "userCount": len(users),
        "users": users,
        "timerState": timer_view(room, now),
        "timerSettings": room.timerSettings.model_dump(mode="json"),
        "version": room.version,
    }


def room_detail(room: Room, now: dt.datetime | None = None) -> dict:
    """Full room view returned on fetch and join."""
    data = room_summary(room, now)
    data["createdAt"] = room.createdAt.isoformat()
    data["isHostPresent"] = room.find_member(room.hostId) is not None
    return data
