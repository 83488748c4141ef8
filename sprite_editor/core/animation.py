"""
Animation controller
Owns the current frame pointer, keeps the working layer stack and the sprite's
frame list in sync, and drives playback
"""

import logging
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Optional
from PIL import Image
from .config import (
    MIN_FRAME_RATE, MAX_FRAME_RATE, DEFAULT_FRAME_RATE, PLAYBACK_MODES,
    DEFAULT_PLAYBACK_MODE, THUMBNAIL_SIZE,
)
from .exporter import SpriteExporter
from .layer_stack import LayerStack
from .layer_system import Frame, Layer
from .sprite import Sprite
from .timers import Timer, TimerFactory, QtRepeatingTimer
from .utils import clamp, round_half_up

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    IDLE = "idle"
    SWITCHING_FRAME = "switching_frame"
    IMPORTING = "importing"


class AnimationController:
    """
    Frame management and playback for the current sprite

    The working layer stack always shows exactly one frame. Every operation
    that changes which frame is shown first writes the stack back into the
    frame it came from.
    """

    def __init__(self, sprite_provider: Callable[[], Optional[Sprite]],
                 layer_stack: LayerStack,
                 on_render: Optional[Callable[[], None]] = None,
                 on_change: Optional[Callable[[Sprite], None]] = None,
                 on_notify: Optional[Callable[[str, str], None]] = None,
                 timer_factory: TimerFactory = QtRepeatingTimer):
        self.sprite_provider = sprite_provider
        self.layer_stack = layer_stack
        self.on_render = on_render
        self.on_change = on_change
        self.on_notify = on_notify
        self.timer_factory = timer_factory

        self._current_frame_index = 0
        self.is_playing = False
        self.frame_rate = DEFAULT_FRAME_RATE
        self.playback_mode = DEFAULT_PLAYBACK_MODE
        self.direction = 1
        self.state = ControllerState.IDLE
        self._timer: Optional[Timer] = None

    # ----- Queries -----
    @property
    def current_frame_index(self) -> int:
        return self._current_frame_index

    @property
    def frame_duration_ms(self) -> float:
        return 1000 / self.frame_rate

    def get_current_sprite(self) -> Optional[Sprite]:
        return self.sprite_provider()

    def get_current_frame(self) -> Optional[Frame]:
        sprite = self.get_current_sprite()
        if sprite is None or not sprite.frames:
            return None
        if 0 <= self._current_frame_index < len(sprite.frames):
            return sprite.frames[self._current_frame_index]
        return sprite.frames[0]

    def get_frame_count(self) -> int:
        sprite = self.get_current_sprite()
        if sprite is None:
            return 0
        return len(sprite.frames)

    def is_busy(self) -> bool:
        return self.state is not ControllerState.IDLE

    @contextmanager
    def importing(self):
        """Block stack saves while sprites are being imported"""
        previous = self.state
        self.state = ControllerState.IMPORTING
        try:
            yield self
        finally:
            self.state = previous

    def reset(self):
        """Point at the first frame of a freshly selected sprite"""
        self.stop()
        self._current_frame_index = 0

    # ----- Sync between stack and frames -----
    def initialize_sprite_frames(self, sprite: Sprite):
        """Repair a live sprite so it has frames matching its size"""
        sprite.initialize_frames()
        if sprite.ensure_frame_dimensions():
            logger.warning("Sprite %r needed frame repairs", sprite.name)

    def save_layer_stack_to_current_frame(self, notify: bool = True) -> bool:
        """Write the working stack into the current frame; ``notify`` fires on_change"""
        if self.is_busy():
            logger.debug("Ignoring save while %s", self.state.value)
            return False

        sprite = self.get_current_sprite()
        frame = self.get_current_frame()
        if sprite is None or frame is None:
            return False

        stack = self.layer_stack
        if not stack.has_valid_pixel_data():
            logger.warning("Layer stack has no valid pixel data, frame %r not saved", frame.name)
            return False

        frame.layers = [layer.copy() for layer in stack.layers]
        frame.active_layer_index = stack.active_layer_index
        frame.width = stack.width
        frame.height = stack.height
        sprite.touch()

        if notify and self.on_change:
            self.on_change(sprite)
        return True

    def load_frame_into_layer_stack(self, frame: Frame):
        """Repair ``frame`` and show it in the working stack"""
        stack = self.layer_stack
        previous = self.state
        self.state = ControllerState.SWITCHING_FRAME
        try:
            with stack.restoring():
                try:
                    sprite = self.get_current_sprite()
                    if sprite is not None and (frame.width != sprite.width or frame.height != sprite.height):
                        logger.warning("Frame %r size does not match sprite, fixing", frame.name)
                        frame.width = sprite.width
                        frame.height = sprite.height
                    if frame.repair():
                        logger.warning("Frame %r was repaired on load", frame.name)
                    stack.replace_layers([layer.copy() for layer in frame.layers],
                                         frame.active_layer_index, frame.width, frame.height)
                except Exception:
                    logger.exception("Failed to load frame %r, using an empty layer", frame.name)
                    stack.replace_layers([Layer.empty(frame.width, frame.height)], 0,
                                         frame.width, frame.height)
            stack.reset_history()
        finally:
            self.state = previous
        self._render()

    def set_current_frame(self, index: int) -> bool:
        sprite = self.get_current_sprite()
        if sprite is None or not sprite.frames:
            return False
        if self.state is ControllerState.SWITCHING_FRAME:
            return False

        self.save_layer_stack_to_current_frame()
        self._current_frame_index = clamp(index, 0, len(sprite.frames) - 1)
        self.load_frame_into_layer_stack(sprite.frames[self._current_frame_index])
        return True

    # ----- Frame operations -----
    def add_frame(self, insert_after: Optional[int] = None) -> Optional[Frame]:
        sprite = self.get_current_sprite()
        if sprite is None:
            return None

        self.save_layer_stack_to_current_frame()

        count = len(sprite.frames)
        frame = Frame.empty(sprite.width, sprite.height, name=f"Frame {count + 1}")
        if insert_after is not None and insert_after >= -1:
            index = min(insert_after + 1, count)
        else:
            index = count
        sprite.frames.insert(index, frame)
        self._current_frame_index = index

        self.load_frame_into_layer_stack(frame)
        self._mark_modified(sprite)
        return frame

    def duplicate_frame(self) -> Optional[Frame]:
        sprite = self.get_current_sprite()
        source = self.get_current_frame()
        if sprite is None or source is None:
            return None

        self.save_layer_stack_to_current_frame()

        frame = source.copy(keep_ids=False)
        frame.name = f"{source.name} Copy"
        index = next(i for i, f in enumerate(sprite.frames) if f is source) + 1
        sprite.frames.insert(index, frame)
        self._current_frame_index = index

        self.load_frame_into_layer_stack(frame)
        self._mark_modified(sprite)
        return frame

    def delete_frame(self, index: Optional[int] = None) -> bool:
        sprite = self.get_current_sprite()
        if sprite is None:
            return False

        if index is None:
            index = self._current_frame_index
        if len(sprite.frames) <= 1:
            self._notify("Cannot delete the last frame", "warning")
            return False
        if index < 0 or index >= len(sprite.frames):
            return False

        self.save_layer_stack_to_current_frame()
        del sprite.frames[index]

        if self._current_frame_index >= len(sprite.frames):
            self._current_frame_index = len(sprite.frames) - 1
        elif self._current_frame_index > index:
            self._current_frame_index -= 1

        self.load_frame_into_layer_stack(sprite.frames[self._current_frame_index])
        self._mark_modified(sprite)
        return True

    def move_frame(self, from_index: int, to_index: int) -> bool:
        sprite = self.get_current_sprite()
        if sprite is None:
            return False

        count = len(sprite.frames)
        if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
            return False

        self.save_layer_stack_to_current_frame()

        frame = sprite.frames.pop(from_index)
        sprite.frames.insert(to_index, frame)

        current = self._current_frame_index
        if current == from_index:
            self._current_frame_index = to_index
        elif from_index < current <= to_index:
            self._current_frame_index = current - 1
        elif from_index > current >= to_index:
            self._current_frame_index = current + 1

        self._mark_modified(sprite)
        self._render()
        return True

    def get_frame_thumbnail(self, index: int, size: int = THUMBNAIL_SIZE) -> Optional[Image.Image]:
        sprite = self.get_current_sprite()
        if sprite is None or not 0 <= index < len(sprite.frames):
            return None
        return SpriteExporter.thumbnail(sprite.frames[index], size)

    # ----- Playback -----
    def play(self):
        if self.is_playing or self.get_frame_count() <= 1:
            return

        self.is_playing = True
        if self._timer is None:
            self._timer = self.timer_factory(self.tick)
        self._timer.start(round_half_up(self.frame_duration_ms))
        logger.debug("Playback started at %d fps (%s)", self.frame_rate, self.playback_mode)

    def stop(self):
        if self._timer is not None:
            self._timer.stop()
        self.is_playing = False
        self.direction = 1

    def toggle_playback(self):
        if self.is_playing:
            self.stop()
        else:
            self.play()

    def tick(self):
        """Advance one frame according to the playback mode"""
        sprite = self.get_current_sprite()
        if sprite is None or len(sprite.frames) <= 1:
            self.stop()
            return

        count = len(sprite.frames)
        current = self._current_frame_index
        if self.playback_mode == "loop":
            next_index = (current + self.direction + count) % count
        elif self.playback_mode == "once":
            next_index = current + self.direction
            if next_index >= count or next_index < 0:
                self.stop()
                return
        else:
            next_index = current + self.direction
            if next_index >= count:
                self.direction = -1
                next_index = count - 2
            elif next_index < 0:
                self.direction = 1
                next_index = 1

        self.set_current_frame(next_index)

    def set_frame_rate(self, fps: int):
        self.frame_rate = int(clamp(int(fps), MIN_FRAME_RATE, MAX_FRAME_RATE))
        if self.is_playing:
            self.stop()
            self.play()

    def set_playback_mode(self, mode: str) -> bool:
        if mode not in PLAYBACK_MODES:
            return False
        self.playback_mode = mode
        return True

    # ----- Helpers -----
    def _mark_modified(self, sprite: Sprite):
        sprite.touch()
        if self.on_change:
            self.on_change(sprite)

    def _render(self):
        if self.on_render:
            self.on_render()

    def _notify(self, message: str, level: str = "info"):
        if self.on_notify:
            self.on_notify(message, level)
