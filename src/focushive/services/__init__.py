"""Service layer for domain logic."""

from .presence import InMemoryPresenceTracker, PresenceTracker
from .room_lifecycle import RoomLifecycleManager
from .room_registry import RoomLocks, RoomRegistry

__all__ = [
    "InMemoryPresenceTracker",
    "PresenceTracker",
    "RoomLifecycleManager",
    "RoomLocks",
    "RoomRegistry",
]
