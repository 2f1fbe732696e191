"""Tests for the public room views."""

import datetime as dt

from focushive import views
from focushive.models import Member, Room, TimerState

T0 = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)


def make_room(**kwargs) -> Room:
    return Room(name="Math", hostId="host", hostName="Host", createdAt=T0, **kwargs)


def test_member_list_deduplicates_users():
    """Test a user listed twice appears once."""
    members = [
        Member(userId="a", name="Alice", joinedAt=T0),
        Member(userId="a", name="Alice", sessionId="sid-2", joinedAt=T0),
        Member(userId="b", name="Bob", joinedAt=T0),
    ]
    assert [u["id"] for u in views.member_list(members)] == ["a", "b"]


def test_room_summary_derives_timer():
    """Test the summary carries the freshly derived remaining time."""
    room = make_room(
        timerState=TimerState(timeRemaining=100, isRunning=True, startedAt=T0),
        members=[Member(userId="host", name="Host", joinedAt=T0)],
    )

    summary = views.room_summary(room, now=T0 + dt.timedelta(seconds=30))

    assert summary["timerState"]["timeRemaining"] == 70
    assert summary["host"] == {"id": "host", "name": "Host"}
    assert summary["userCount"] == 1
    assert summary["version"] == 1


def test_room_detail_reports_host_presence():
    room = make_room(members=[Member(userId="guest", name="Guest", joinedAt=T0)])

    detail = views.room_detail(room, now=T0)

    assert detail["isHostPresent"] is False
    assert detail["createdAt"] == T0.isoformat()
