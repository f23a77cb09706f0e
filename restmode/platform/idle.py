from __future__ import annotations

"""Время простоя пользователя (секунды с последнего ввода) для текущей ОС."""

import logging
import subprocess
import sys
from typing import Callable


logger = logging.getLogger(__name__)

_idle_impl: Callable[[], float] | None = None


def _mac_idle() -> Callable[[], float]:
    import ctypes
    import ctypes.util

    library = ctypes.util.find_library("CoreGraphics")
    if library is None:
        raise OSError("CoreGraphics not found")
    cg = ctypes.cdll.LoadLibrary(library)
    fn = cg.CGEventSourceSecondsSinceLastEventType
    fn.restype = ctypes.c_double
    fn.argtypes = [ctypes.c_int32, ctypes.c_uint32]
    # kCGEventSourceStateCombinedSessionState = 0, kCGAnyInputEventType = ~0
    return lambda: float(fn(0, 0xFFFFFFFF))


def _windows_idle() -> Callable[[], float]:
    import ctypes
    from ctypes import Structure, byref, c_uint, sizeof

    class LASTINPUTINFO(Structure):
        _fields_ = [("cbSize", c_uint), ("dwTime", c_uint)]

    windll = ctypes.windll  # type: ignore[attr-defined]

    def idle() -> float:
        info = LASTINPUTINFO()
        info.cbSize = sizeof(LASTINPUTINFO)
        if not windll.user32.GetLastInputInfo(byref(info)):
            raise OSError("GetLastInputInfo failed")
        return (windll.kernel32.GetTickCount() - info.dwTime) / 1000.0

    return idle


def _linux_idle() -> Callable[[], float]:
    def idle() -> float:
        result = subprocess.run(["xprintidle"], capture_output=True, text=True, timeout=2, check=True)
        return int(result.stdout.strip()) / 1000.0

    return idle


def _resolve_impl() -> Callable[[], float]:
    """Выбирает реализацию один раз; при ошибке простой считается нулевым."""
    global _idle_impl
    if _idle_impl is not None:
        return _idle_impl
    try:
        if sys.platform == "darwin":
            _idle_impl = _mac_idle()
        elif sys.platform == "win32":
            _idle_impl = _windows_idle()
        else:
            _idle_impl = _linux_idle()
    except (OSError, AttributeError) as exc:
        logger.warning("Idle detection unavailable: %s", exc)
        _idle_impl = lambda: 0.0
    return _idle_impl


def get_idle_seconds() -> float:
    """Секунды без ввода; 0.0, если определить не удалось."""
    impl = _resolve_impl()
    try:
        return max(0.0, impl())
    except (OSError, ValueError, subprocess.SubprocessError) as exc:
        logger.debug("Idle query failed: %s", exc)
        return 0.0
