from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Callable, Mapping

from PyQt6.QtCore import QObject, pyqtSignal

from restmode.data.storage import Storage


logger = logging.getLogger(__name__)

# Keys that hold a duration or a count and must stay strictly positive.
POSITIVE_KEYS = (
    "work_duration_minutes",
    "pause_after_minutes",
    "reset_after_minutes",
    "short_break_seconds",
    "long_break_seconds",
    "long_break_interval",
    "countdown_seconds",
)


class SettingsError(ValueError):
    """Raised when a settings value is rejected."""


@dataclass(frozen=True)
class Settings:
    start_timer_on_launch: bool = True

    work_duration_minutes: int = 60
    pause_on_idle: bool = True
    pause_after_minutes: int = 1
    reset_on_idle: bool = True
    reset_after_minutes: int = 5

    short_break_seconds: int = 30
    long_breaks_enabled: bool = True
    long_break_seconds: int = 180
    long_break_interval: int = 3
    hide_skip_button: bool = False
    prevent_skipping: bool = True
    countdown_enabled: bool = True
    countdown_seconds: int = 5

    @property
    def work_duration_seconds(self) -> int:
        return self.work_duration_minutes * 60

    @property
    def pause_after_seconds(self) -> int:
        return self.pause_after_minutes * 60

    @property
    def reset_after_seconds(self) -> int:
        return self.reset_after_minutes * 60

    def validate(self) -> None:
        for field in fields(self):
            value = getattr(self, field.name)
            expected = type(getattr(Settings, field.name))
            # bool is a subclass of int, so check it explicitly both ways
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise SettingsError(f"{field.name} must be an integer, got {value!r}")
            if expected is bool and not isinstance(value, bool):
                raise SettingsError(f"{field.name} must be a boolean, got {value!r}")
        for key in POSITIVE_KEYS:
            if getattr(self, key) <= 0:
                raise SettingsError(f"{key} must be positive")

    def with_changes(self, **changes: Any) -> Settings:
        unknown = set(changes) - {field.name for field in fields(self)}
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")
        updated = replace(self, **changes)
        updated.validate()
        return updated

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> Settings:
        """Build settings from persisted data, keeping defaults for anything invalid."""
        settings = cls()
        if not isinstance(raw, Mapping):
            return settings
        known = {field.name for field in fields(cls)}
        for key, value in raw.items():
            if key not in known:
                logger.debug("Ignoring unknown persisted setting %r", key)
                continue
            try:
                settings = settings.with_changes(**{key: value})
            except SettingsError as exc:
                logger.warning("Ignoring persisted setting %s: %s", key, exc)
        return settings


class SettingsStore(QObject):
    settings_changed = pyqtSignal(str, object)

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()
        self._settings = settings or Settings()
        self._settings.validate()
        self._storage: Storage | None = None

    @property
    def current(self) -> Settings:
        return self._settings

    def subscribe(self, callback: Callable[[str, object], None]) -> None:
        self.settings_changed.connect(callback)

    def load_from_storage(self, storage: Storage) -> None:
        self._storage = storage
        loaded = Settings.from_mapping(storage.load_preferences())
        self._apply(loaded)

    def save_setting(self, key: str, value: Any) -> None:
        self.update(**{key: value})

    def update(self, **changes: Any) -> None:
        self._apply(self._settings.with_changes(**changes))

    def reset_to_defaults(self) -> None:
        self._apply(Settings())

    def _apply(self, updated: Settings) -> None:
        previous = self._settings
        self._settings = updated
        if self._storage:
            self._storage.save_preferences(updated.to_dict())
        for field in fields(updated):
            value = getattr(updated, field.name)
            if getattr(previous, field.name) != value:
                logger.info("Setting %s changed to %r", field.name, value)
                self.settings_changed.emit(field.name, value)
