"""Redis key management for FocusHive.

Centralizes Redis key construction to avoid duplication and errors.
All key construction should go through these classes.

Each room is a single JSON document, so a write to one key is atomic.
Room names are reserved through a separate key that maps the name to the
owning room id.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class RoomKeys:
    """Redis keys for a single room."""

    room_id: str

    # Prefix of all room documents, used for scanning.
    PREFIX = "room:"

    def document(self) -> str:
        """JSON document holding the complete room."""
        return f"{self.PREFIX}{self.room_id}"

    @staticmethod
    def name_reservation(name: str) -> str:
        """Maps a room name to the id of the room that owns it."""
        return f"room-name:{name}"

    @classmethod
    def document_pattern(cls) -> str:
        """Pattern for scanning all room documents."""
        return f"{cls.PREFIX}*"

    @classmethod
    def parse_room_id(cls, key: str | bytes) -> str | None:
        """Extract the room id from a document key.

        Returns None if the key is not a room document key.
        """
        if isinstance(key, bytes):
            key = key.decode("utf-8")
        if not key.startswith(cls.PREFIX):
            return None
        room_id = key[len(cls.PREFIX) :]
        return room_id or None
