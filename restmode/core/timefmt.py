from __future__ import annotations

import math


def format_countdown(seconds: int) -> str:
    """Break overlay format, e.g. ``05:00``."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def format_menu_time(seconds: int) -> str:
    """Menu bar format, e.g. ``59:07`` or ``4:05``."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def seconds_until(timestamp: float, now: float) -> int:
    return max(0, math.ceil(timestamp - now))
