"""Runtime side of the stopwatch: owns the state, the tick source and the store.

Transitions run through timer_state.reduce(); this class only decides what to
persist afterwards and keeps at most one QTimer ticking.
"""

from PySide6.QtCore import QObject, Qt, QTimer, Signal
from sw.common.logger import log
from sw.core.store import PersistedRecord, clear_record, load_record, save_record
from sw.core.timer_state import (
    Pause,
    Reconcile,
    Reset,
    Start,
    Tick,
    TickStrategy,
    TimerState,
    displayed_elapsed,
    reduce,
    render,
    to_record,
)
from sw.util.misc import now_ms

_ACTIVE_STATES = (Qt.ApplicationState.ApplicationActive, "active")


class LifecycleSubscription:
    """Connection from an app-state signal to a callback, released exactly once.

    Works as a context manager so the connection can't outlive its scope.
    """

    def __init__(self, signal, callback):
        self._signal = signal
        self._callback = callback
        self._signal.connect(self._callback)
        self.active = True

    def close(self):
        if not self.active:
            return
        self.active = False
        try:
            self._signal.disconnect(self._callback)
        except (RuntimeError, TypeError):
            # Sender already destroyed, nothing left to disconnect from.
            log.debug("Lifecycle signal was already gone when releasing subscription")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class TimerEngine(QObject):
    elapsedChanged = Signal(int)
    runningChanged = Signal(bool)

    def __init__(self, store, settings=None, clock=now_ms, parent=None):
        super().__init__(parent)
        settings = settings or {}
        self._store = store
        self._clock = clock
        self.interval_ms = int(settings.get("tick_interval_ms", 10))
        self.strategy = TickStrategy(settings.get("tick_strategy", TickStrategy.DRIFT_FREE.value))
        self.state = TimerState()

        # Tick source plus the token it was armed with. Only a timeout carrying the current token counts.
        self._tick_token = 0
        self._ticker = None
        self._lifecycle = None

        log.debug(f"Initialized timer engine with {self.interval_ms}ms ticks, strategy '{self.strategy.value}'")

    #region === Reads ===

    @property
    def running(self):
        return self.state.running

    @property
    def elapsed_ms(self):
        return displayed_elapsed(self.state, self._clock(), self.strategy)

    @property
    def tick_active(self):
        return self._ticker is not None

    def view(self):
        return render(self.state, self._clock(), self.strategy)

    #endregion === Reads ===

    #region === Transitions ===

    def start(self):
        if self.state.running:
            return
        before = self.state
        self.state = reduce(before, Start(self._clock()), self.strategy)
        self._arm_tick()
        save_record(self._store, to_record(self.state), previous=to_record(before))
        log.debug(f"Started timer at {self.state.start_ms} with {self.state.elapsed_ms}ms already elapsed")
        self._emit(before)

    def pause(self):
        # Cancel before computing the frozen value so nothing can land on top of it.
        self._cancel_tick()
        if not self.state.running:
            return
        before = self.state
        self.state = reduce(before, Pause(self._clock()), self.strategy)
        save_record(self._store, to_record(self.state), previous=to_record(before))
        log.debug(f"Paused timer at {self.state.elapsed_ms}ms")
        self._emit(before)

    def toggle(self):
        if self.state.running:
            self.pause()
        else:
            self.start()

    def reset(self):
        self._cancel_tick()
        before = self.state
        self.state = reduce(before, Reset(), self.strategy)
        clear_record(self._store)
        log.debug("Reset timer to 0")
        self._emit(before)

    # Rebuilds state from the store. Runs on cold load and on every return to the foreground. Only writes back
    # when the stored record had to be repaired (or moved forward, for the accumulate strategy), so running it
    # twice in a row changes nothing.
    #
    # While running, the in-memory start instant outranks the store: a record that doesn't describe a running
    # timer (unreadable store, an earlier write that failed) is overwritten from memory instead.
    def reconcile(self):
        before = self.state
        record = load_record(self._store)
        if before.running and not (record.is_running and record.start_ms is not None):
            failed = save_record(self._store, to_record(before))
            if failed:
                log.warning(f"Kept running timer on resume, but could not re-persist: {', '.join(failed)}")
            else:
                log.info(f"Stored timer record {record} was stale on resume, re-persisted the running timer")
            if self._ticker is None:
                self._arm_tick()
            self._emit(before, force=True)
            return

        self.state = reduce(before, Reconcile(record, self._clock()), self.strategy)

        repaired = to_record(self.state)
        if record != PersistedRecord() and repaired != record:
            log.info(f"Stored timer record {record} was rewritten as {repaired} during reconcile")
            failed = save_record(self._store, repaired)
            if failed:
                log.warning(f"Could not rewrite stored keys during reconcile: {', '.join(failed)}")

        if self.state.running:
            if self._ticker is None:
                self._arm_tick()
        else:
            self._cancel_tick()
        log.debug(f"Reconciled timer: running={self.state.running}, elapsed={self.elapsed_ms}ms")
        self._emit(before, force=True)

    #endregion === Transitions ===

    #region === Ticking ===

    def _arm_tick(self):
        self._cancel_tick()
        self._tick_token += 1
        token = self._tick_token
        ticker = QTimer(self)
        ticker.setInterval(self.interval_ms)
        ticker.timeout.connect(lambda: self._on_tick(token))
        ticker.start()
        self._ticker = ticker
        log.debug(f"Armed tick source #{token}")

    def _cancel_tick(self):
        if self._ticker is None:
            return
        self._ticker.stop()
        self._ticker.deleteLater()
        self._ticker = None
        # Bumping the token invalidates any timeout the old QTimer already queued.
        self._tick_token += 1

    def _on_tick(self, token):
        if token != self._tick_token or self._ticker is None or not self.state.running:
            return
        if self.strategy is TickStrategy.ACCUMULATE:
            before = self.state
            self.state = reduce(before, Tick(self._clock(), self.interval_ms), self.strategy)
            # Legacy behaviour: the accumulator is written on every tick. Last write wins.
            save_record(self._store, to_record(self.state), previous=to_record(before))
        self.elapsedChanged.emit(self.elapsed_ms)

    #endregion === Ticking ===

    #region === Lifecycle ===

    # Hooks reconcile() up to an app-state signal. Replaces any earlier subscription.
    def subscribe_lifecycle(self, signal):
        self._release_lifecycle()
        self._lifecycle = LifecycleSubscription(signal, self._on_app_state)
        return self._lifecycle

    def _on_app_state(self, app_state):
        if app_state in _ACTIVE_STATES:
            log.debug("App became active, reconciling timer")
            self.reconcile()

    def _release_lifecycle(self):
        if self._lifecycle is not None:
            self._lifecycle.close()
            self._lifecycle = None

    # Stops ticking and drops the lifecycle hook. State and store are left as they are.
    def close(self):
        self._cancel_tick()
        self._release_lifecycle()
        log.debug("Closed timer engine")

    #endregion === Lifecycle ===

    def _emit(self, before, force=False):
        if force or before.running != self.state.running:
            self.runningChanged.emit(self.state.running)
        self.elapsedChanged.emit(self.elapsed_ms)
