"""Pure Pomodoro timer transitions.

All functions take a :class:`TimerState` plus the room's
:class:`TimerSettings` and return a new state; nothing here touches the
store or the transports. Authorization (host-only) is checked by the
caller before a transition is attempted.

Remaining time is a checkpoint: while the timer runs, the stored
``timeRemaining`` is the value at ``startedAt`` and the current value is
derived from the wall clock on every read.
"""

import datetime as dt
import math
import typing as t
from dataclasses import dataclass

from focushive.exceptions import ValidationError
from focushive.models import TimerMode, TimerSettings, TimerState, utcnow

# Every fourth completed focus session earns a long break.
LONG_BREAK_INTERVAL = 4


@dataclass(frozen=True)
class TimerTransition:
    """Result of a timer transition.

    Attributes
    ----------
    state : TimerState
        The updated timer state (identical to the input if not changed)
    changed : bool
        False when the transition was a no-op; no-ops are neither
        persisted nor broadcast.
    suggested_next_mode : TimerMode | None
        Advisory next mode, only set by :func:`complete`.
    """

    state: TimerState
    changed: bool
    suggested_next_mode: TimerMode | None = None


def _elapsed_seconds(started_at: dt.datetime, now: dt.datetime) -> int:
    return max(0, math.floor((now - started_at).total_seconds()))


def derive_remaining(
    state: TimerState, settings: TimerSettings, now: dt.datetime | None = None
) -> int:
    """Compute the current remaining time in seconds.

    Parameters
    ----------
    state : TimerState
        Stored timer checkpoint
    settings : TimerSettings
        Room durations, used as upper bound
    now : datetime | None
        Reference time, defaults to the current UTC time

    Returns
    -------
    int
        Remaining seconds, always within ``[0, duration_for(mode)]``
    """
    remaining = state.timeRemaining
    if state.isRunning and state.startedAt is not None:
        now = now or utcnow()
        remaining = state.timeRemaining - _elapsed_seconds(state.startedAt, now)
    return min(max(0, remaining), settings.duration_for(state.mode))


def current_state(
    state: TimerState, settings: TimerSettings, now: dt.datetime | None = None
) -> TimerState:
    """Return a copy of ``state`` with ``timeRemaining`` freshly derived."""
    return state.model_copy(
        update={"timeRemaining": derive_remaining(state, settings, now)}
    )


def start(
    state: TimerState, settings: TimerSettings, now: dt.datetime | None = None
) -> TimerTransition:
    """Start a stopped timer from its current checkpoint.

    A running or exhausted timer is left untouched.
    """
    if state.isRunning or derive_remaining(state, settings, now) == 0:
        return TimerTransition(state, changed=False)
    now = now or utcnow()
    new_state = state.model_copy(
        update={
            "isRunning": True,
            "timeRemaining": derive_remaining(state, settings, now),
            "startedAt": now,
            "pausedAt": None,
        }
    )
    return TimerTransition(new_state, changed=True)


def _coerce_client_remaining(value: t.Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return int(value)


def pause(
    state: TimerState,
    settings: TimerSettings,
    client_remaining: t.Any = None,
    now: dt.datetime | None = None,
) -> TimerTransition:
    """Pause a running timer.

    Parameters
    ----------
    client_remaining
        Remaining seconds as displayed by the pausing client. Used instead
        of the server-derived value when it is numeric; clamped to
        ``[0, duration_for(mode)]``.
    """
    if not state.isRunning:
        return TimerTransition(state, changed=False)
    now = now or utcnow()
    remaining = _coerce_client_remaining(client_remaining)
    if remaining is None:
        remaining = derive_remaining(state, settings, now)
    remaining = min(max(0, remaining), settings.duration_for(state.mode))
    new_state = state.model_copy(
        update={
            "isRunning": False,
            "timeRemaining": remaining,
            "startedAt": None,
            "pausedAt": now,
        }
    )
    return TimerTransition(new_state, changed=True)


def reset(state: TimerState, settings: TimerSettings) -> TimerTransition:
    """Reset the current mode to its full duration and stop the timer."""
    duration = settings.duration_for(state.mode)
    if (
        not state.isRunning
        and state.timeRemaining == duration
        and state.startedAt is None
        and state.pausedAt is None
    ):
        return TimerTransition(state, changed=False)
    new_state = state.model_copy(
        update={
            "timeRemaining": duration,
            "isRunning": False,
            "startedAt": None,
            "pausedAt": None,
        }
    )
    return TimerTransition(new_state, changed=True)


def parse_mode(mode: t.Any) -> TimerMode:
    """Validate a client-supplied mode string.

    Raises
    ------
    ValidationError
        If ``mode`` is not one of the three timer modes.
    """
    try:
        return TimerMode(mode)
    except ValueError:
        valid = ", ".join(m.value for m in TimerMode)
        raise ValidationError(
            f"Invalid timer mode '{mode}'. Valid modes: {valid}", field="mode"
        ) from None


def change_mode(
    state: TimerState, settings: TimerSettings, new_mode: t.Any
) -> TimerTransition:
    """Switch to ``new_mode`` with its full duration, stopped.

    ``cycleCount`` is incremented when switching from focus into a break.
    """
    mode = parse_mode(new_mode)
    cycle_count = state.cycleCount
    if state.mode == TimerMode.FOCUS and mode != TimerMode.FOCUS:
        cycle_count += 1
    new_state = state.model_copy(
        update={
            "mode": mode,
            "timeRemaining": settings.duration_for(mode),
            "isRunning": False,
            "cycleCount": cycle_count,
            "startedAt": None,
            "pausedAt": None,
        }
    )
    return TimerTransition(new_state, changed=new_state != state)


def suggest_next_mode(mode: TimerMode, cycle_count: int) -> TimerMode:
    """Advisory mode after completing ``mode`` with ``cycle_count`` prior cycles."""
    if mode == TimerMode.FOCUS:
        if (cycle_count + 1) % LONG_BREAK_INTERVAL == 0:
            return TimerMode.LONG_BREAK
        return TimerMode.SHORT_BREAK
    return TimerMode.FOCUS


def complete(
    state: TimerState, settings: TimerSettings, now: dt.datetime | None = None
) -> TimerTransition:
    """Mark the current session as finished.

    Applies to a running timer, or to a paused timer that is already at
    zero. An already completed timer (stopped at zero without
    timestamps) is left untouched, so duplicate completion events from
    several clients count once.
    """
    exhausted_checkpoint = (
        not state.isRunning
        and derive_remaining(state, settings, now) == 0
        and state.pausedAt is not None
    )
    if not (state.isRunning or exhausted_checkpoint):
        return TimerTransition(state, changed=False)

    suggested = suggest_next_mode(state.mode, state.cycleCount)
    cycle_count = state.cycleCount
    if state.mode == TimerMode.FOCUS:
        cycle_count += 1
    new_state = state.model_copy(
        update={
            "isRunning": False,
            "timeRemaining": 0,
            "cycleCount": cycle_count,
            "startedAt": None,
            "pausedAt": None,
        }
    )
    return TimerTransition(new_state, changed=True, suggested_next_mode=suggested)


# action name -> event emitted after a successful transition
TIMER_EVENTS = {
    "start": "timer-started",
    "pause": "timer-paused",
    "reset": "timer-reset",
    "changeMode": "timer-mode-changed",
    "complete": "timer-completed",
}


def apply(
    action: str,
    state: TimerState,
    settings: TimerSettings,
    now: dt.datetime | None = None,
    **params: t.Any,
) -> TimerTransition:
    """Dispatch a timer command by name.

    Parameters
    ----------
    action : str
        One of ``start``, ``pause``, ``reset``, ``changeMode``, ``complete``
    params
        ``timeRemaining`` for pause, ``mode`` for changeMode

    Raises
    ------
    ValidationError
        For unknown actions or invalid modes.
    """
    if action == "start":
        return start(state, settings, now)
    if action == "pause":
        return pause(state, settings, params.get("timeRemaining"), now)
    if action == "reset":
        return reset(state, settings)
    if action == "changeMode":
        return change_mode(state, settings, params.get("mode"))
    if action == "complete":
        return complete(state, settings, now)
    raise ValidationError(
        f"Unknown timer action '{action}'. Valid actions: {', '.join(TIMER_EVENTS)}",
        field="action",
    )
