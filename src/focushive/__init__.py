"""FocusHive: shared Pomodoro rooms with a synchronized timer."""
import importlib.metadata
import logging

from focushive.server import create_app

__all__ = ["create_app"]

log = logging.getLogger(__name__)
log.setLevel(logging.INFO)
handler = logging.StreamHandler()
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler.setFormatter(formatter)
log.addHandler(handler)

__version__ = importlib.metadata.version("focushive")
