"""Prometheus metrics for FocusHive.

This module provides Prometheus metrics for monitoring room activity and
broadcast health.
"""

from prometheus_client import Counter, Gauge

# Presence metrics
connected_sessions = Gauge(
    "focushive_connected_sessions", "Number of currently connected transport sessions"
)

# Room metrics
active_rooms = Gauge("focushive_active_rooms", "Number of rooms with at least one member")

rooms_deleted = Counter(
    "focushive_rooms_deleted",
    "Number of rooms deleted because they became empty",
    ["reason"],  # Labels: 'leave', 'disconnect' or 'sweep'
)

# Broadcast metrics
broadcast_failures = Counter(
    "focushive_broadcast_failures",
    "Number of failed publishes per transport",
    ["transport"],  # Labels: 'socketio' or 'relay'
)

broadcasts_suppressed = Counter(
    "focushive_broadcasts_suppressed",
    "Number of identical broadcasts suppressed by the dedup window",
)
