from . import events
from .room_routes import rooms
from .utility_routes import utility

__all__ = [
    "events",
    "rooms",
    "utility",
]
