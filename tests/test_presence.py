"""Tests for InMemoryPresenceTracker."""

from focushive.services.presence import InMemoryPresenceTracker


def test_register_and_get(presence):
    """Test a registered session is live."""
    presence.register("sid-1", "user-1", "Alice")

    session = presence.get("sid-1")
    assert session.userId == "user-1"
    assert session.displayName == "Alice"
    assert presence.is_connected("sid-1")
    assert presence.count() == 1


def test_user_may_hold_several_sessions(presence):
    """Test multiple tabs of one user are tracked separately."""
    presence.register("sid-1", "user-1", "Alice")
    presence.register("sid-2", "user-1", "Alice")

    assert presence.sessions_for("user-1") == {"sid-1", "sid-2"}


def test_unregister_returns_owner(presence):
    """Test unregistering reports the user and removes only that session."""
    presence.register("sid-1", "user-1", "Alice")
    presence.register("sid-2", "user-1", "Alice")

    assert presence.unregister("sid-1") == "user-1"
    assert presence.sessions_for("user-1") == {"sid-2"}
    assert not presence.is_connected("sid-1")


def test_unregister_unknown_session(presence):
    """Test unregistering an unknown session is harmless."""
    assert presence.unregister("missing") is None


def test_is_connected_handles_missing_session_id():
    """Test memberships without a session are never connected."""
    assert InMemoryPresenceTracker().is_connected(None) is False


def test_reregister_session_for_other_user(presence):
    """Test a reused session id moves to the new user."""
    presence.register("sid-1", "user-1", "Alice")
    presence.register("sid-1", "user-2", "Bob")

    assert presence.sessions_for("user-1") == set()
    assert presence.sessions_for("user-2") == {"sid-1"}
    assert presence.count() == 1
