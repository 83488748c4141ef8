"""
Timer backends for playback and autosave
Core classes take a factory so the Qt event loop can be swapped out in tests
"""

from typing import Callable
from PyQt6.QtCore import QTimer


class Timer:
    """Minimal timer interface used by the core"""

    def start(self, interval_ms: int):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    def is_active(self) -> bool:
        raise NotImplementedError


TimerFactory = Callable[[Callable[[], None]], Timer]


class QtRepeatingTimer(Timer):
    """Fires ``callback`` every interval until stopped"""

    def __init__(self, callback: Callable[[], None]):
        self._timer = QTimer()
        self._timer.setSingleShot(False)
        self._timer.timeout.connect(callback)

    def start(self, interval_ms: int):
        self._timer.start(max(1, int(interval_ms)))

    def stop(self):
        self._timer.stop()

    def is_active(self) -> bool:
        return self._timer.isActive()


class QtSingleShotTimer(Timer):
    """Fires ``callback`` once; starting again restarts the countdown"""

    def __init__(self, callback: Callable[[], None]):
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(callback)

    def start(self, interval_ms: int):
        self._timer.start(max(0, int(interval_ms)))

    def stop(self):
        self._timer.stop()

    def is_active(self) -> bool:
        return self._timer.isActive()
