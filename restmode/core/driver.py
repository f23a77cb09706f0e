from __future__ import annotations

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from restmode.core.scheduler import BreakScheduler, Mode, ScheduleSnapshot


TICK_INTERVAL_MS = 1000


class SchedulerDriver(QObject):
    """Drives ``BreakScheduler.tick()`` from the Qt event loop."""

    snapshot_changed = pyqtSignal(object)
    mode_changed = pyqtSignal(object)

    def __init__(self, scheduler: BreakScheduler, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.scheduler = scheduler
        self._last_mode: Mode = scheduler.mode
        scheduler.add_listener(self._on_snapshot)

        self.tick_timer = QTimer(self)
        self.tick_timer.setInterval(TICK_INTERVAL_MS)
        self.tick_timer.timeout.connect(self._on_tick)

    def start(self) -> None:
        self.tick_timer.start()

    def stop(self) -> None:
        self.tick_timer.stop()

    def _on_tick(self) -> None:
        if self.scheduler.is_shutting_down:
            self.stop()
            return
        self.scheduler.tick()

    def _on_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        self.snapshot_changed.emit(snapshot)
        if snapshot.mode != self._last_mode:
            self._last_mode = snapshot.mode
            self.mode_changed.emit(snapshot.mode)
