"""
Coalescing autosave
Bursts of edits produce a single write once the editor has been quiet for a while
"""

import logging
from typing import Callable, Optional
from .config import AUTOSAVE_DELAY_MS
from .sprite import Sprite
from .timers import Timer, TimerFactory, QtSingleShotTimer

logger = logging.getLogger(__name__)


class AutosaveScheduler:
    """
    Trailing-edge debounce around a save function

    Every ``schedule`` call restarts one single-shot timer; the pending sprite is
    written when it fires. ``flush`` writes right away.
    """

    def __init__(self, save_func: Callable[[Sprite], bool],
                 delay_ms: int = AUTOSAVE_DELAY_MS,
                 timer_factory: TimerFactory = QtSingleShotTimer):
        self.save_func = save_func
        self.delay_ms = delay_ms
        self._timer: Timer = timer_factory(self._on_timeout)
        self._pending: Optional[Sprite] = None
        self.save_count = 0

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def schedule(self, sprite: Sprite):
        # A different sprite would otherwise be dropped
        if self._pending is not None and self._pending is not sprite:
            self.flush()
        self._pending = sprite
        self._timer.stop()
        self._timer.start(self.delay_ms)

    def flush(self) -> bool:
        """Write the pending sprite now; True if something was saved"""
        self._timer.stop()
        sprite = self._pending
        self._pending = None
        if sprite is None:
            return False

        saved = self.save_func(sprite)
        self.save_count += 1
        if not saved:
            logger.warning("Autosave of sprite %r failed", sprite.name)
        return bool(saved)

    def discard(self, sprite: Sprite):
        """Drop a pending save of ``sprite``, e.g. after it was deleted"""
        if self._pending is sprite:
            self.cancel()

    def cancel(self):
        self._timer.stop()
        self._pending = None

    def _on_timeout(self):
        self.flush()
