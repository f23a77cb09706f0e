from __future__ import annotations

"""Звуковые сигналы перехода состояний с кэшированием эффектов в памяти."""

import logging
from pathlib import Path

from PyQt6.QtCore import QUrl
from PyQt6.QtMultimedia import QSoundEffect
from PyQt6.QtWidgets import QApplication

from restmode.core.scheduler import SoundKind


logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).resolve().parents[2] / "assets"


def get_asset_path(relative: str) -> Path:
    """Преобразует относительный путь внутри `assets/` в абсолютный."""
    return ASSETS_DIR / relative


def sound_path(kind: SoundKind) -> Path:
    return get_asset_path(f"sounds/{kind.value}.wav")


class SoundPlayer:
    """Проигрывает `assets/sounds/<kind>.wav`; без файла подает системный сигнал."""

    def __init__(self, volume: float = 0.8) -> None:
        self._volume = max(0.0, min(1.0, volume))
        self._effects: dict[SoundKind, QSoundEffect | None] = {}

    def play(self, kind: SoundKind) -> None:
        effect = self._load(kind)
        if effect is None:
            QApplication.beep()
            return
        effect.play()

    def _load(self, kind: SoundKind) -> QSoundEffect | None:
        if kind in self._effects:
            return self._effects[kind]

        path = sound_path(kind)
        if not path.exists():
            logger.debug("No sound file for %s, using system beep", kind.value)
            self._effects[kind] = None
            return None

        effect = QSoundEffect()
        effect.setSource(QUrl.fromLocalFile(str(path)))
        effect.setVolume(self._volume)
        if effect.status() == QSoundEffect.Status.Error:
            logger.warning("Could not load sound %s", path)
            self._effects[kind] = None
            return None

        self._effects[kind] = effect
        return effect
