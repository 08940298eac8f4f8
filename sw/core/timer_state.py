from dataclasses import dataclass, replace
from enum import Enum
from sw.core.store import PersistedRecord
from sw.util.misc import format_time


# How a running timer's elapsed time advances.
class TickStrategy(Enum):
    # elapsed_ms is what accumulated before start_ms, displayed time is always elapsed_ms + (now - start_ms).
    DRIFT_FREE = "drift_free"
    # Legacy: every tick adds a fixed interval to elapsed_ms regardless of how late the tick fired.
    ACCUMULATE = "accumulate"


# Immutable snapshot of the stopwatch. Everything that changes it goes through reduce().
@dataclass(frozen=True)
class TimerState:
    running: bool = False
    start_ms: int | None = None
    elapsed_ms: int = 0


#region === Events ===

@dataclass(frozen=True)
class Start:
    now: int

@dataclass(frozen=True)
class Pause:
    now: int

@dataclass(frozen=True)
class Reset:
    pass

@dataclass(frozen=True)
class Reconcile:
    record: PersistedRecord
    now: int

@dataclass(frozen=True)
class Tick:
    now: int
    interval_ms: int

#endregion === Events ===


# Returns how much time the timer should display at `now`.
def displayed_elapsed(state, now, strategy=TickStrategy.DRIFT_FREE):
    if not state.running or state.start_ms is None:
        return state.elapsed_ms
    if strategy is TickStrategy.ACCUMULATE:
        return state.elapsed_ms
    return state.elapsed_ms + max(0, now - state.start_ms)


# The only way state changes. Pure: no clock reads, no persistence, no timers.
def reduce(state, event, strategy=TickStrategy.DRIFT_FREE):
    if isinstance(event, Start):
        if state.running:
            return state
        return replace(state, running=True, start_ms=event.now)

    if isinstance(event, Pause):
        if not state.running:
            return state
        return TimerState(running=False, start_ms=None, elapsed_ms=displayed_elapsed(state, event.now, strategy))

    if isinstance(event, Reset):
        return TimerState()

    if isinstance(event, Reconcile):
        return _reconcile(event.record, event.now, strategy)

    if isinstance(event, Tick):
        if not state.running or strategy is TickStrategy.DRIFT_FREE:
            return state
        return replace(state, elapsed_ms=state.elapsed_ms + event.interval_ms, start_ms=event.now)

    raise TypeError(f"Unknown timer event: {event!r}")


# Rebuilds state purely from what was persisted. Same record and same now always give the same state.
def _reconcile(record, now, strategy):
    elapsed = record.elapsed_ms or 0
    if not record.is_running or record.start_ms is None:
        return TimerState(running=False, start_ms=None, elapsed_ms=elapsed)

    # A start instant in the future means the wall clock went backwards. Count from now instead.
    start = min(record.start_ms, now)
    if strategy is TickStrategy.ACCUMULATE:
        return TimerState(running=True, start_ms=now, elapsed_ms=elapsed + (now - start))
    return TimerState(running=True, start_ms=start, elapsed_ms=elapsed)


# Durable projection of a state. elapsedTime is only kept once there's something to keep.
def to_record(state):
    return PersistedRecord(
        start_ms=state.start_ms if state.running else None,
        elapsed_ms=state.elapsed_ms if state.elapsed_ms > 0 else None,
        is_running=state.running,
    )


@dataclass(frozen=True)
class TimerView:
    text: str
    show_reset: bool
    status: str

# Everything a screen needs to draw the timer at `now`.
def render(state, now, strategy=TickStrategy.DRIFT_FREE):
    elapsed = displayed_elapsed(state, now, strategy)
    if state.running:
        status = "Running"
    elif elapsed > 0:
        status = "Paused"
    else:
        status = "Ready"
    return TimerView(text=format_time(elapsed), show_reset=elapsed > 0, status=status)
