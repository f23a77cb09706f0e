from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Protocol

from restmode.core.settings import Settings


logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Time for an Eye Break"
NOTIFICATION_BODY = "Taking regular breaks helps reduce eye strain and maintain productivity."


class Mode(str, Enum):
    WORKING = "working"
    COUNTING_DOWN = "counting_down"
    ON_BREAK = "on_break"


class BreakKind(str, Enum):
    NONE = "none"
    SHORT = "short"
    LONG = "long"


class TimerKind(str, Enum):
    WORK = "work"
    COUNTDOWN = "countdown"
    BREAK = "break"


class SoundKind(str, Enum):
    COMPLETE = "complete"
    DISMISS = "dismiss"


class SettingsSource(Protocol):
    @property
    def current(self) -> Settings: ...

    def subscribe(self, callback: Callable[[str, object], None]) -> None: ...


class Notifier(Protocol):
    def schedule_notification(self, fire_at: float, title: str, body: str) -> None: ...

    def cancel_all_pending(self) -> None: ...


class SoundSink(Protocol):
    def play(self, kind: SoundKind) -> None: ...


@dataclass(frozen=True)
class ScheduleSnapshot:
    mode: Mode
    break_kind: BreakKind
    time_remaining_seconds: int
    next_break_at: float
    progress: float
    completed_short_breaks: int
    postpone_allowed: bool
    active_timer: TimerKind | None
    idle_paused: bool
    shutting_down: bool

    @property
    def is_break_active(self) -> bool:
        return self.mode != Mode.WORKING


class BreakScheduler:
    """Work/break cycle engine detached from UI framework.

    All time flows in through ``tick()``; the three logical timers (work,
    countdown, break) are mutually exclusive and only advance on a tick.
    Mutating calls are serialized through one ordered queue, so a call made
    from inside a listener runs after the operation currently in progress.
    Collaborators may own Qt timers, so calls belong on the GUI thread.
    """

    def __init__(
        self,
        settings: SettingsSource,
        notifier: Notifier | None = None,
        sound: SoundSink | None = None,
        idle_seconds: Callable[[], float] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._settings = settings
        self._notifier = notifier
        self._sound = sound
        self._idle_seconds = idle_seconds or (lambda: 0.0)
        self._clock = clock or time.time

        config = settings.current
        now = self._clock()
        self._mode = Mode.WORKING
        self._break_kind = BreakKind.NONE
        self._time_remaining = 0
        self._phase_deadline: float | None = None
        self._interval_sec = float(config.work_duration_seconds)
        self._next_break_at = now + self._interval_sec
        self._progress = 0.0
        self._completed_short_breaks = 0
        self._postpone_allowed = not config.hide_skip_button
        self._active_timer: TimerKind | None = None
        self._idle_paused_at: float | None = None
        self._shutting_down = False

        self._listeners: list[Callable[[ScheduleSnapshot], None]] = []
        self._queue: deque[tuple[Callable[..., None], tuple[Any, ...]]] = deque()
        self._queue_lock = threading.Lock()
        self._draining = False

        settings.subscribe(self._on_setting_changed)
        logger.info("Break scheduler created, first break in %d min", config.work_duration_minutes)
        if config.start_timer_on_launch:
            self.start()

    # ----- Observable state -----
    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def break_kind(self) -> BreakKind:
        return self._break_kind

    @property
    def time_remaining_seconds(self) -> int:
        return self._time_remaining

    @property
    def next_break_at(self) -> float:
        return self._next_break_at

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def completed_short_breaks(self) -> int:
        return self._completed_short_breaks

    @property
    def postpone_allowed(self) -> bool:
        return self._postpone_allowed

    @property
    def active_timer(self) -> TimerKind | None:
        return self._active_timer

    @property
    def is_break_active(self) -> bool:
        return self._mode != Mode.WORKING

    @property
    def is_idle_paused(self) -> bool:
        return self._idle_paused_at is not None

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    def snapshot(self) -> ScheduleSnapshot:
        return ScheduleSnapshot(
            mode=self._mode,
            break_kind=self._break_kind,
            time_remaining_seconds=self._time_remaining,
            next_break_at=self._next_break_at,
            progress=self._progress,
            completed_short_breaks=self._completed_short_breaks,
            postpone_allowed=self._postpone_allowed,
            active_timer=self._active_timer,
            idle_paused=self._idle_paused_at is not None,
            shutting_down=self._shutting_down,
        )

    def add_listener(self, callback: Callable[[ScheduleSnapshot], None]) -> None:
        self._listeners.append(callback)

    # ----- Public API -----
    def start(self) -> None:
        self._submit(self._start)

    def tick(self, now: float | None = None) -> ScheduleSnapshot:
        self._submit(self._tick, now)
        return self.snapshot()

    def start_break(self) -> None:
        self._submit(self._start_break)

    def postpone_break(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValueError("Postpone minutes must be positive")
        self._submit(self._postpone, minutes * 60, False)

    def skip_break(self) -> None:
        self._submit(self._postpone, None, True)

    def add_work_time(self, minutes: int) -> None:
        if minutes <= 0:
            raise ValueError("Added work minutes must be positive")
        self._submit(self._add_work_time, minutes * 60)

    def cleanup(self) -> None:
        if self._shutting_down:
            logger.info("Cleanup already in progress")
            return
        self._shutting_down = True
        self._submit(self._teardown)

    # ----- Serialized queue -----
    def _submit(self, operation: Callable[..., None], *args: Any) -> None:
        with self._queue_lock:
            self._queue.append((operation, args))
            if self._draining:
                return
            self._draining = True
        try:
            while True:
                with self._queue_lock:
                    if not self._queue:
                        self._draining = False
                        return
                    operation, args = self._queue.popleft()
                operation(*args)
        except Exception:
            with self._queue_lock:
                self._draining = False
            raise

    def _accepting(self, operation: str) -> bool:
        if self._shutting_down:
            logger.info("Ignoring %s while shutting down", operation)
            return False
        return True

    # ----- Operations (run inside the queue) -----
    def _start(self) -> None:
        if not self._accepting("start"):
            return
        if self._mode != Mode.WORKING or self._active_timer is not None or self._idle_paused_at is not None:
            return
        now = self._clock()
        self._set_next_break(now, self._settings.current.work_duration_seconds)
        self._start_timer(TimerKind.WORK)
        self._schedule_notification(now)
        logger.info("Work timer started")
        self._emit()

    def _tick(self, now: float | None) -> None:
        if not self._accepting("tick"):
            return
        if now is None:
            now = self._clock()
        if self._idle_paused_at is not None:
            self._tick_idle_paused(now)
        elif self._active_timer == TimerKind.WORK:
            self._tick_work(now)
        elif self._active_timer in {TimerKind.COUNTDOWN, TimerKind.BREAK}:
            self._tick_phase(now)
        self._emit()

    def _start_break(self) -> None:
        if not self._accepting("start_break"):
            return
        if self._mode != Mode.WORKING:
            logger.debug("Break already in progress")
            return
        self._idle_paused_at = None
        self._begin_break(self._clock())
        self._emit()

    def _postpone(self, delay_sec: int | None, always_dismiss: bool) -> None:
        if not self._accepting("skip_break" if always_dismiss else "postpone_break"):
            return
        now = self._clock()
        if delay_sec is None:
            delay_sec = self._settings.current.work_duration_seconds
        was_on_break = self._mode != Mode.WORKING
        if self._mode == Mode.ON_BREAK and self._break_kind == BreakKind.LONG:
            self._completed_short_breaks = 0
        self._return_to_work(now, delay_sec)
        if was_on_break or always_dismiss:
            self._play(SoundKind.DISMISS)
        logger.info("Next break postponed by %d s", delay_sec)
        self._emit()

    def _add_work_time(self, extra_sec: int) -> None:
        if not self._accepting("add_work_time"):
            return
        if self._mode != Mode.WORKING:
            logger.info("Cannot add work time during a break")
            return
        now = self._clock()
        if self._idle_paused_at is not None:
            self._resume_from_idle(now)
        self._next_break_at += extra_sec
        self._interval_sec += extra_sec
        self._update_progress(now)
        self._start_timer(TimerKind.WORK)
        self._schedule_notification(now)
        logger.info("Added %d s of work time", extra_sec)
        self._emit()

    def _teardown(self) -> None:
        self._stop_timers()
        self._idle_paused_at = None
        if self._notifier is not None:
            self._notifier.cancel_all_pending()
        logger.info("Cleanup completed")
        self._emit()

    def _on_setting_changed(self, key: str, value: object) -> None:
        self._submit(self._apply_setting, key, value)

    def _apply_setting(self, key: str, value: object) -> None:
        if not self._accepting(f"setting change {key}"):
            return
        now = self._clock()
        if key == "work_duration_minutes":
            if self._mode != Mode.WORKING:
                return
            self._set_next_break(now, self._settings.current.work_duration_seconds)
            if self._idle_paused_at is not None:
                self._idle_paused_at = now
            elif self._active_timer == TimerKind.WORK:
                self._start_timer(TimerKind.WORK)
                self._schedule_notification(now)
            logger.info("Work timer restarted for new duration")
        elif key == "hide_skip_button":
            self._postpone_allowed = not bool(value)
        elif key == "pause_on_idle":
            if not value and self._idle_paused_at is not None:
                self._resume_from_idle(now)
        else:
            return
        self._emit()

    # ----- Timer ticks -----
    def _tick_work(self, now: float) -> None:
        if self._handle_idle(now):
            return
        self._update_progress(now)
        if now >= self._next_break_at:
            logger.info("Work interval elapsed")
            self._begin_break(now)

    def _tick_phase(self, now: float) -> None:
        if self._phase_deadline is None:
            return
        self._time_remaining = max(0, math.ceil(self._phase_deadline - now))
        if self._time_remaining > 0:
            return
        if self._mode == Mode.COUNTING_DOWN:
            self._enter_break(now)
        else:
            self._complete_break(now)

    def _tick_idle_paused(self, now: float) -> None:
        config = self._settings.current
        idle = self._idle_seconds()
        if config.reset_on_idle and idle > config.reset_after_seconds:
            self._reset_for_idle(now, idle)
            self._idle_paused_at = now
        if not config.pause_on_idle or idle <= config.pause_after_seconds:
            self._resume_from_idle(now)

    def _handle_idle(self, now: float) -> bool:
        """Apply idle policy for a work tick; True when the schedule froze."""
        config = self._settings.current
        idle = self._idle_seconds()
        if config.reset_on_idle and idle > config.reset_after_seconds:
            self._reset_for_idle(now, idle)
            self._start_timer(TimerKind.WORK)
            self._schedule_notification(now)
        if config.pause_on_idle and idle > config.pause_after_seconds:
            self._stop_timers()
            self._idle_paused_at = now
            if self._notifier is not None:
                self._notifier.cancel_all_pending()
            logger.info("Idle for %.0f s, work timer paused", idle)
            return True
        return False

    def _reset_for_idle(self, now: float, idle: float) -> None:
        """Restart the cycle; repeated on every tick while idle stays above the threshold."""
        logger.debug("Idle for %.0f s, schedule reset", idle)
        self._completed_short_breaks = 0
        self._set_next_break(now, self._settings.current.work_duration_seconds)

    # ----- Transitions -----
    def _begin_break(self, now: float) -> None:
        config = self._settings.current
        self._stop_timers()
        if self._notifier is not None:
            self._notifier.cancel_all_pending()
        if config.countdown_enabled:
            self._mode = Mode.COUNTING_DOWN
            self._break_kind = BreakKind.NONE
            self._start_phase(TimerKind.COUNTDOWN, config.countdown_seconds, now)
            logger.info("Break countdown started (%d s)", config.countdown_seconds)
        else:
            self._enter_break(now)

    def _enter_break(self, now: float) -> None:
        config = self._settings.current
        kind = self._next_break_kind()
        duration = config.long_break_seconds if kind == BreakKind.LONG else config.short_break_seconds
        self._mode = Mode.ON_BREAK
        self._break_kind = kind
        self._postpone_allowed = not config.hide_skip_button
        self._start_phase(TimerKind.BREAK, duration, now)
        logger.info("%s break started (%d s)", kind.value.capitalize(), duration)

    def _complete_break(self, now: float) -> None:
        if self._break_kind == BreakKind.LONG:
            self._completed_short_breaks = 0
        else:
            self._completed_short_breaks += 1
        logger.info("%s break completed, %d short breaks in cycle", self._break_kind.value.capitalize(), self._completed_short_breaks)
        self._play(SoundKind.COMPLETE)
        self._return_to_work(now, self._settings.current.work_duration_seconds)

    def _return_to_work(self, now: float, delay_sec: float) -> None:
        self._stop_timers()
        self._mode = Mode.WORKING
        self._break_kind = BreakKind.NONE
        self._time_remaining = 0
        self._phase_deadline = None
        self._idle_paused_at = None
        self._set_next_break(now, delay_sec)
        self._start_timer(TimerKind.WORK)
        self._schedule_notification(now)

    def _resume_from_idle(self, now: float) -> None:
        if self._idle_paused_at is None:
            return
        paused_for = max(0.0, now - self._idle_paused_at)
        self._idle_paused_at = None
        self._next_break_at += paused_for
        self._start_timer(TimerKind.WORK)
        self._update_progress(now)
        self._schedule_notification(now)
        logger.info("Activity detected after %.0f s, work timer resumed", paused_for)

    def _next_break_kind(self) -> BreakKind:
        config = self._settings.current
        if config.long_breaks_enabled and (self._completed_short_breaks + 1) % config.long_break_interval == 0:
            return BreakKind.LONG
        return BreakKind.SHORT

    # ----- Helpers -----
    def _set_next_break(self, now: float, delay_sec: float) -> None:
        self._interval_sec = float(delay_sec)
        self._next_break_at = now + delay_sec
        self._update_progress(now)

    def _update_progress(self, now: float) -> None:
        remaining = self._next_break_at - now
        progress = (self._interval_sec - remaining) / self._interval_sec if self._interval_sec > 0 else 0.0
        self._progress = max(0.0, min(1.0, progress))

    def _start_timer(self, kind: TimerKind) -> None:
        self._stop_timers()
        self._active_timer = kind

    def _start_phase(self, kind: TimerKind, total_seconds: int, now: float) -> None:
        self._start_timer(kind)
        self._phase_deadline = now + total_seconds
        self._time_remaining = total_seconds

    def _stop_timers(self) -> None:
        self._active_timer = None

    def _schedule_notification(self, now: float) -> None:
        if self._notifier is None:
            return
        self._notifier.cancel_all_pending()
        delay = self._next_break_at - now
        if self._mode != Mode.WORKING or delay <= 0:
            logger.debug("Skipping notification, delay %.1f s", delay)
            return
        self._notifier.schedule_notification(self._next_break_at, NOTIFICATION_TITLE, NOTIFICATION_BODY)

    def _play(self, kind: SoundKind) -> None:
        if self._sound is not None:
            self._sound.play(kind)

    def _emit(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
