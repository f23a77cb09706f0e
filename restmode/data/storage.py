from __future__ import annotations

"""SQLite-хранилище пользовательских настроек RestMode.

Все настройки расписания перерывов лежат одним JSON-объектом под ключом
`PREFERENCES_KEY`; таблица `settings` остается ключ/значение.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Mapping


SCHEMA_VERSION = 1
PREFERENCES_KEY = "settings"

logger = logging.getLogger(__name__)


class Storage:
    """Файл базы настроек; каждое обращение открывает и закрывает соединение."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode = WAL;")
        except sqlite3.DatabaseError:
            logger.debug("WAL journal mode unavailable for %s", self.db_path)
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def init_db(self) -> None:
        """Создает таблицы при первом запуске и фиксирует версию схемы."""
        with self._transaction() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if not row:
                conn.execute("INSERT INTO schema_version(version) VALUES (?)", (SCHEMA_VERSION,))
            conn.execute("CREATE TABLE IF NOT EXISTS settings(key TEXT PRIMARY KEY, value TEXT)")
        logger.debug("Storage initialised at %s", self.db_path)

    def schema_version(self) -> int:
        with self._transaction() as conn:
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        return int(row["version"]) if row else 0

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Читает значение по ключу; нераспознанный JSON возвращается как строка."""
        with self._transaction() as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if not row:
            return default
        try:
            return json.loads(row["value"])
        except (TypeError, json.JSONDecodeError):
            return row["value"]

    def set_setting(self, key: str, value: Any) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO settings(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, json.dumps(value)),
            )

    def load_preferences(self) -> dict[str, Any]:
        """Возвращает сохраненные настройки расписания; поврежденная запись дает `{}`."""
        raw = self.get_setting(PREFERENCES_KEY, {})
        if not isinstance(raw, dict):
            logger.warning("Stored preferences are not an object, falling back to defaults")
            return {}
        return raw

    def save_preferences(self, values: Mapping[str, Any]) -> None:
        self.set_setting(PREFERENCES_KEY, dict(values))
