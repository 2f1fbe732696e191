"""Tests for the pure timer transitions."""

import datetime as dt

import pytest

from focushive import timer
from focushive.exceptions import ValidationError
from focushive.models import TimerMode, TimerSettings, TimerState

T0 = dt.datetime(2024, 1, 1, 12, 0, 0, tzinfo=dt.timezone.utc)


def at(seconds: float) -> dt.datetime:
    return T0 + dt.timedelta(seconds=seconds)


@pytest.fixture
def settings():
    return TimerSettings()


def running(remaining: int, started_at: dt.datetime = T0, **kwargs) -> TimerState:
    return TimerState(
        timeRemaining=remaining, isRunning=True, startedAt=started_at, **kwargs
    )


def test_derive_remaining_of_stopped_timer_is_checkpoint(settings):
    """Test a stopped timer reports its stored value."""
    state = TimerState(timeRemaining=600)
    assert timer.derive_remaining(state, settings, at(1000)) == 600


def test_derive_remaining_subtracts_elapsed_time(settings):
    """Test 100 s running for 30 s leaves 70 s."""
    state = running(100)
    assert timer.derive_remaining(state, settings, at(30)) == 70


def test_derive_remaining_floors_partial_seconds(settings):
    """Test partial seconds are not counted as elapsed."""
    assert timer.derive_remaining(running(100), settings, at(30.9)) == 70


def test_derive_remaining_never_negative(settings):
    """Test remaining time stops at zero."""
    assert timer.derive_remaining(running(100), settings, at(5000)) == 0


def test_derive_remaining_clamped_to_mode_duration(settings):
    """Test remaining time never exceeds the mode duration."""
    state = TimerState(mode=TimerMode.SHORT_BREAK, timeRemaining=10_000)
    assert timer.derive_remaining(state, settings) == settings.shortBreakDuration


def test_derive_remaining_ignores_clock_skew(settings):
    """Test a start time in the future counts as zero elapsed."""
    assert timer.derive_remaining(running(100, started_at=at(10)), settings, T0) == 100


def test_start_sets_running_and_start_time(settings):
    """Test starting a stopped timer."""
    result = timer.start(TimerState(timeRemaining=300), settings, now=T0)

    assert result.changed is True
    assert result.state.isRunning is True
    assert result.state.startedAt == T0
    assert result.state.pausedAt is None
    assert result.state.timeRemaining == 300


def test_start_running_timer_is_noop(settings):
    """Test starting an already running timer changes nothing."""
    state = running(100)
    result = timer.start(state, settings, now=at(5))

    assert result.changed is False
    assert result.state == state


def test_start_exhausted_timer_is_noop(settings):
    """Test a timer at zero cannot be started."""
    result = timer.start(TimerState(timeRemaining=0), settings, now=T0)
    assert result.changed is False


def test_pause_uses_derived_remaining(settings):
    """Test pausing without a client value checkpoints the derived time."""
    result = timer.pause(running(100), settings, now=at(30))

    assert result.changed is True
    assert result.state.isRunning is False
    assert result.state.timeRemaining == 70
    assert result.state.pausedAt == at(30)
    assert result.state.startedAt is None


def test_pause_prefers_client_value(settings):
    """Test the pausing client's displayed time is used."""
    result = timer.pause(running(100), settings, client_remaining=72, now=at(30))
    assert result.state.timeRemaining == 72


@pytest.mark.parametrize(
    ("client_remaining", "expected"),
    [
        (-5, 0),
        (99_999, 1500),
        ("abc", 70),
        (None, 70),
        (True, 70),
        (65.7, 65),
        (float("inf"), 70),
        (float("-inf"), 70),
        (float("nan"), 70),
    ],
)
def test_pause_sanitizes_client_value(client_remaining, expected):
    """Test client values are clamped to the mode duration or ignored."""
    settings = TimerSettings()
    result = timer.pause(
        running(100), settings, client_remaining=client_remaining, now=at(30)
    )
    assert result.state.timeRemaining == expected


def test_pause_stopped_timer_is_noop(settings):
    """Test pausing a stopped timer changes nothing."""
    assert timer.pause(TimerState(), settings, now=T0).changed is False


def test_reset_restores_full_duration(settings):
    """Test reset stops the timer at the full duration of the mode."""
    state = running(100, cycleCount=2)
    result = timer.reset(state, settings)

    assert result.changed is True
    assert result.state.timeRemaining == settings.focusDuration
    assert result.state.isRunning is False
    assert result.state.startedAt is None
    assert result.state.cycleCount == 2


def test_reset_fresh_timer_is_noop(settings):
    """Test resetting an untouched timer changes nothing."""
    assert timer.reset(TimerState(), settings).changed is False


def test_change_mode_focus_to_break_increments_cycle(settings):
    """Test leaving focus for a break counts a cycle."""
    result = timer.change_mode(TimerState(), settings, "shortBreak")

    assert result.state.mode == TimerMode.SHORT_BREAK
    assert result.state.timeRemaining == settings.shortBreakDuration
    assert result.state.cycleCount == 1
    assert result.state.isRunning is False


def test_change_mode_break_to_focus_keeps_cycle(settings):
    """Test returning to focus does not count a cycle."""
    state = TimerState(mode=TimerMode.LONG_BREAK, timeRemaining=900, cycleCount=4)
    result = timer.change_mode(state, settings, "focus")

    assert result.state.mode == TimerMode.FOCUS
    assert result.state.timeRemaining == settings.focusDuration
    assert result.state.cycleCount == 4


def test_change_mode_rejects_unknown_mode(settings):
    """Test an invalid mode raises a ValidationError naming the field."""
    with pytest.raises(ValidationError) as exc_info:
        timer.change_mode(TimerState(), settings, "nap")
    assert exc_info.value.field == "mode"


@pytest.mark.parametrize(
    ("mode", "cycle_count", "expected"),
    [
        (TimerMode.FOCUS, 0, TimerMode.SHORT_BREAK),
        (TimerMode.FOCUS, 3, TimerMode.LONG_BREAK),
        (TimerMode.FOCUS, 7, TimerMode.LONG_BREAK),
        (TimerMode.SHORT_BREAK, 1, TimerMode.FOCUS),
        (TimerMode.LONG_BREAK, 4, TimerMode.FOCUS),
    ],
)
def test_suggest_next_mode(mode, cycle_count, expected):
    """Test every fourth focus session suggests a long break."""
    assert timer.suggest_next_mode(mode, cycle_count) == expected


def test_complete_fourth_focus_suggests_long_break(settings):
    """Test completing focus with cycleCount 3 suggests a long break."""
    result = timer.complete(running(10, cycleCount=3), settings, now=at(20))

    assert result.changed is True
    assert result.suggested_next_mode == TimerMode.LONG_BREAK
    assert result.state.cycleCount == 4
    assert result.state.timeRemaining == 0
    assert result.state.isRunning is False


def test_complete_first_focus_suggests_short_break(settings):
    """Test completing focus with cycleCount 0 suggests a short break."""
    result = timer.complete(running(10), settings, now=at(20))

    assert result.suggested_next_mode == TimerMode.SHORT_BREAK
    assert result.state.cycleCount == 1


def test_complete_break_suggests_focus_without_counting(settings):
    """Test completing a break does not change the cycle count."""
    state = running(10, mode=TimerMode.SHORT_BREAK, cycleCount=1)
    result = timer.complete(state, settings, now=at(20))

    assert result.suggested_next_mode == TimerMode.FOCUS
    assert result.state.cycleCount == 1


def test_complete_paused_exhausted_timer(settings):
    """Test a timer paused at zero can still be completed."""
    state = TimerState(timeRemaining=0, pausedAt=T0)
    assert timer.complete(state, settings, now=at(1)).changed is True


def test_complete_twice_counts_once(settings):
    """Test duplicate completion events are no-ops."""
    first = timer.complete(running(10), settings, now=at(20))
    second = timer.complete(first.state, settings, now=at(21))

    assert second.changed is False
    assert second.state.cycleCount == 1


def test_complete_stopped_timer_is_noop(settings):
    """Test completing a timer that never ran changes nothing."""
    assert timer.complete(TimerState(), settings, now=T0).changed is False


def test_apply_dispatches_by_action(settings):
    """Test apply forwards parameters to the matching transition."""
    result = timer.apply("pause", running(100), settings, now=at(10), timeRemaining=50)
    assert result.state.timeRemaining == 50

    result = timer.apply("changeMode", TimerState(), settings, mode="longBreak")
    assert result.state.mode == TimerMode.LONG_BREAK


def test_apply_rejects_unknown_action(settings):
    """Test unknown actions raise a ValidationError naming the field."""
    with pytest.raises(ValidationError) as exc_info:
        timer.apply("skip", TimerState(), settings)
    assert exc_info.value.field == "action"
