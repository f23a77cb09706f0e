from __future__ import annotations

import logging
import time
from typing import Callable

from PyQt6.QtCore import QObject, QTimer
from PyQt6.QtWidgets import QSystemTrayIcon


logger = logging.getLogger(__name__)

MESSAGE_TIMEOUT_MS = 5000


class TrayNotifier(QObject):
    """Local notifications delivered through the system tray.

    Holds at most one pending notification. When the platform cannot show
    tray messages every call is a no-op.
    """

    def __init__(
        self,
        tray_icon: QSystemTrayIcon,
        clock: Callable[[], float] | None = None,
        parent: QObject | None = None,
    ) -> None:
        super().__init__(parent)
        self._tray_icon = tray_icon
        self._clock = clock or time.time
        self._pending: tuple[str, str] | None = None
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._deliver)
        self.enabled = QSystemTrayIcon.isSystemTrayAvailable() and QSystemTrayIcon.supportsMessages()
        if not self.enabled:
            logger.warning("Tray notifications are not available, reminders will be silent")

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule_notification(self, fire_at: float, title: str, body: str) -> None:
        if not self.enabled:
            return
        self.cancel_all_pending()
        delay_ms = int((fire_at - self._clock()) * 1000)
        if delay_ms <= 0:
            return
        self._pending = (title, body)
        self._timer.start(delay_ms)
        logger.debug("Notification scheduled in %d ms", delay_ms)

    def cancel_all_pending(self) -> None:
        if self._timer.isActive():
            self._timer.stop()
        self._pending = None

    def _deliver(self) -> None:
        if self._pending is None:
            return
        title, body = self._pending
        self._pending = None
        self._tray_icon.showMessage(title, body, QSystemTrayIcon.MessageIcon.Information, MESSAGE_TIMEOUT_MS)
        logger.info("Notification delivered: %s", title)
