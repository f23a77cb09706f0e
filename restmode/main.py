from __future__ import annotations

"""Точка входа приложения RestMode.

Модуль отвечает за инициализацию Qt-приложения, подключение хранилища,
загрузку настроек и запуск планировщика перерывов.
"""

import logging
import os
import sys
import time
from pathlib import Path

from PyQt6.QtWidgets import QApplication, QStyle, QSystemTrayIcon

from restmode.core.driver import SchedulerDriver
from restmode.core.scheduler import BreakScheduler, ScheduleSnapshot
from restmode.core.settings import SettingsStore
from restmode.core.timefmt import format_countdown, format_menu_time, seconds_until
from restmode.data.storage import Storage
from restmode.platform.idle import get_idle_seconds
from restmode.platform.notifier import TrayNotifier
from restmode.platform.sound import SoundPlayer


logger = logging.getLogger(__name__)


def default_db_path() -> Path:
    """Возвращает путь к SQLite-файлу: `RESTMODE_DB_PATH` или текущая директория."""
    override = os.environ.get("RESTMODE_DB_PATH")
    if override:
        return Path(override).expanduser()
    return Path.cwd() / "restmode.db"


def configure_logging() -> None:
    level_name = os.environ.get("RESTMODE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def tooltip_text(snapshot: ScheduleSnapshot, now: float) -> str:
    if snapshot.is_break_active:
        return f"RestMode - break ends in {format_countdown(snapshot.time_remaining_seconds)}"
    if snapshot.idle_paused:
        return "RestMode - paused while idle"
    return f"RestMode - next break in {format_menu_time(seconds_until(snapshot.next_break_at, now))}"


def main() -> int:
    """Создает зависимости приложения и запускает главный цикл событий."""
    configure_logging()
    app = QApplication(sys.argv)
    app.setQuitOnLastWindowClosed(False)

    storage = Storage(default_db_path())
    storage.init_db()

    settings = SettingsStore()
    settings.load_from_storage(storage)

    tray_icon = QSystemTrayIcon(app.style().standardIcon(QStyle.StandardPixmap.SP_ComputerIcon), app)
    tray_icon.setToolTip("RestMode")
    tray_icon.show()

    scheduler = BreakScheduler(
        settings=settings,
        notifier=TrayNotifier(tray_icon, parent=app),
        sound=SoundPlayer(),
        idle_seconds=get_idle_seconds,
    )
    driver = SchedulerDriver(scheduler, parent=app)
    driver.snapshot_changed.connect(lambda snapshot: tray_icon.setToolTip(tooltip_text(snapshot, time.time())))
    app.aboutToQuit.connect(driver.stop)
    app.aboutToQuit.connect(scheduler.cleanup)
    driver.start()

    logger.info("RestMode running, database at %s", storage.db_path)
    return app.exec()


if __name__ == "__main__":
    raise SystemExit(main())
