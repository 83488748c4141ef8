"""
Editor session
Ties the sprite list, working layer stack, animation controller, storage,
export and autosave together behind one object the UI talks to
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Union
from .animation import AnimationController
from .autosave import AutosaveScheduler
from .config import (
    AUTOSAVE_DELAY_MS, DEFAULT_SPRITE_WIDTH, DEFAULT_SPRITE_HEIGHT, EditorSettings,
)
from .errors import ExportError
from .exporter import SpriteExporter
from .layer_stack import LayerStack
from .sprite import Sprite
from .storage import SpriteStorage
from .timers import TimerFactory, QtRepeatingTimer, QtSingleShotTimer
from .utils import new_id

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class SpriteEditor:
    """
    One editing session

    Drawing goes to ``layer_stack``; frame navigation and playback go through
    ``animation``. Every change ends in a coalesced write to ``storage``.
    """

    def __init__(self, storage: Optional[SpriteStorage] = None,
                 exporter: Optional[SpriteExporter] = None,
                 settings: Optional[EditorSettings] = None,
                 on_render: Optional[Callable[[], None]] = None,
                 on_notify: Optional[Callable[[str, str], None]] = None,
                 playback_timer_factory: TimerFactory = QtRepeatingTimer,
                 autosave_timer_factory: TimerFactory = QtSingleShotTimer,
                 autosave_delay_ms: int = AUTOSAVE_DELAY_MS):
        self.storage = storage or SpriteStorage()
        self.exporter = exporter or SpriteExporter()
        self.settings = settings or EditorSettings()
        self.on_render = on_render
        self.on_notify = on_notify

        self.sprites: List[Sprite] = []
        self.current_sprite: Optional[Sprite] = None

        self.layer_stack = LayerStack(DEFAULT_SPRITE_WIDTH, DEFAULT_SPRITE_HEIGHT,
                                      on_change=self._on_stack_change)
        self.autosave = AutosaveScheduler(self._persist, autosave_delay_ms, autosave_timer_factory)
        self.animation = AnimationController(
            lambda: self.current_sprite,
            self.layer_stack,
            on_render=self._render,
            on_change=self._on_sprite_change,
            on_notify=self._notify,
            timer_factory=playback_timer_factory
        )
        self.animation.set_frame_rate(self.settings.frame_rate)
        self.animation.set_playback_mode(self.settings.playback_mode)

    # ----- Sprite list -----
    def load_sprites(self) -> List[Sprite]:
        """Load stored sprites; start with a blank one if there are none"""
        self.sprites = self.storage.load_sprites()
        if not self.sprites:
            self.create_new_sprite()
        else:
            self.set_current_sprite(self.sprites[0])
        logger.info("Loaded %d sprites", len(self.sprites))
        return self.sprites

    def create_new_sprite(self, width: int = DEFAULT_SPRITE_WIDTH, height: int = DEFAULT_SPRITE_HEIGHT,
                          name: Optional[str] = None) -> Sprite:
        sprite = Sprite.create(width, height, name or f"Sprite {len(self.sprites) + 1}")
        self.sprites.append(sprite)
        self.set_current_sprite(sprite)
        self.autosave.schedule(sprite)
        return sprite

    def set_current_sprite(self, sprite: Sprite):
        """Switch editing to ``sprite``, saving the outgoing one first"""
        if self.current_sprite is not None and self.current_sprite is not sprite:
            self.animation.save_layer_stack_to_current_frame()
            self.autosave.flush()

        if not any(s is sprite for s in self.sprites):
            self.sprites.append(sprite)

        self.animation.reset()
        self.current_sprite = sprite
        self.animation.initialize_sprite_frames(sprite)
        self.animation.load_frame_into_layer_stack(sprite.frames[0])

    def delete_sprite(self, index: int) -> bool:
        if len(self.sprites) <= 1:
            self._notify("Cannot delete the last sprite", "warning")
            return False
        if index < 0 or index >= len(self.sprites):
            return False

        sprite = self.sprites.pop(index)
        self.autosave.discard(sprite)
        if sprite is self.current_sprite:
            self.current_sprite = None
            self.set_current_sprite(self.sprites[min(index, len(self.sprites) - 1)])
        self.storage.delete_sprite(sprite.id)
        self._notify(f"Deleted {sprite.name}", "info")
        return True

    def duplicate_sprite(self, index: Optional[int] = None) -> Optional[Sprite]:
        if index is None:
            source = self.current_sprite
        elif 0 <= index < len(self.sprites):
            source = self.sprites[index]
        else:
            source = None
        if source is None:
            return None

        if source is self.current_sprite:
            self.animation.save_layer_stack_to_current_frame(notify=False)
        copy = source.clone()
        self.sprites.append(copy)
        self.set_current_sprite(copy)
        self.autosave.schedule(copy)
        return copy

    # ----- Editing -----
    def save_layers_to_sprite(self) -> bool:
        """Write the working stack into the current frame and schedule a save"""
        return self.animation.save_layer_stack_to_current_frame()

    def undo(self) -> bool:
        return self.layer_stack.undo()

    def redo(self) -> bool:
        return self.layer_stack.redo()

    def resize_canvas(self, width: int, height: int, maintain_aspect_ratio: bool = False) -> bool:
        sprite = self.current_sprite
        if sprite is None:
            return False

        self.animation.save_layer_stack_to_current_frame(notify=False)
        if not sprite.resize(width, height, nearest_neighbor=True,
                             maintain_aspect_ratio=maintain_aspect_ratio):
            self._notify("Invalid canvas size", "error")
            return False

        self._reload_current_frame()
        self.autosave.schedule(sprite)
        self._notify(f"Canvas resized to {sprite.width}x{sprite.height}", "success")
        return True

    def crop_to_selection(self, left: int, top: int, right: int, bottom: int) -> bool:
        sprite = self.current_sprite
        if sprite is None:
            return False

        self.animation.save_layer_stack_to_current_frame(notify=False)
        if not sprite.crop(left, top, right, bottom):
            self._notify("Invalid selection for cropping", "warning")
            return False

        self._reload_current_frame()
        self.autosave.schedule(sprite)
        self._notify(f"Cropped to {sprite.width}x{sprite.height}", "success")
        return True

    # ----- Export -----
    def _sprite_for_export(self) -> Sprite:
        if self.current_sprite is None:
            raise ExportError("No sprite to export")
        self.animation.save_layer_stack_to_current_frame(notify=False)
        return self.current_sprite

    def export_png(self, output_path: PathLike, scale: int = 1) -> Path:
        self._sprite_for_export()
        return self.exporter.export_png(self.animation.get_current_frame(), output_path, scale)

    def export_svg(self, output_path: PathLike, scale: int = 1) -> Path:
        self._sprite_for_export()
        return self.exporter.export_svg(self.animation.get_current_frame(), output_path, scale)

    def export_animated_svg(self, output_path: PathLike) -> Path:
        sprite = self._sprite_for_export()
        return self.exporter.export_animated_svg(sprite, output_path, self.animation.frame_rate)

    def export_gif(self, output_path: PathLike, scale: int = 1, loop: bool = True) -> Path:
        sprite = self._sprite_for_export()
        return self.exporter.export_gif(sprite, output_path, self.animation.frame_rate, scale, loop)

    def export_frames(self, directory: PathLike, scale: int = 1) -> List[Path]:
        sprite = self._sprite_for_export()
        return self.exporter.export_frames_as_pngs(sprite, directory, scale)

    def export_sprites(self, output_path: PathLike) -> Path:
        if self.current_sprite is not None:
            self.animation.save_layer_stack_to_current_frame(notify=False)
        return self.storage.export_sprites(self.sprites, output_path)

    def import_sprites(self, input_path: PathLike) -> List[Sprite]:
        """Add the sprites of a bundle file; ids clashing with loaded sprites are replaced"""
        if self.current_sprite is not None:
            self.animation.save_layer_stack_to_current_frame(notify=False)

        with self.animation.importing():
            imported = self.storage.import_sprites(input_path)
            existing = {sprite.id for sprite in self.sprites}
            for sprite in imported:
                if sprite.id in existing:
                    sprite.id = new_id()
                existing.add(sprite.id)
                self.animation.initialize_sprite_frames(sprite)
                self.sprites.append(sprite)
                self.storage.save_sprite(sprite)

        if imported:
            self.set_current_sprite(imported[0])
            self._notify(f"Imported {len(imported)} sprites", "success")
        else:
            self._notify("No sprites found in file", "warning")
        return imported

    def close(self):
        """Stop playback and write everything still pending"""
        self.animation.stop()
        if self.current_sprite is not None:
            self.animation.save_layer_stack_to_current_frame()
        self.autosave.flush()

        self.settings.frame_rate = self.animation.frame_rate
        self.settings.playback_mode = self.animation.playback_mode
        self.storage.save_settings(self.settings)

    # ----- Callbacks -----
    def _reload_current_frame(self):
        frame = self.animation.get_current_frame()
        if frame is not None:
            self.animation.load_frame_into_layer_stack(frame)

    def _persist(self, sprite: Sprite) -> bool:
        if sprite is self.current_sprite:
            self.animation.save_layer_stack_to_current_frame(notify=False)
        return self.storage.save_sprite(sprite)

    def _on_stack_change(self):
        self._render()
        if self.current_sprite is not None:
            self.autosave.schedule(self.current_sprite)

    def _on_sprite_change(self, sprite: Sprite):
        self.autosave.schedule(sprite)

    def _render(self):
        if self.on_render:
            self.on_render()

    def _notify(self, message: str, level: str = "info"):
        log = logger.warning if level in ("warning", "error") else logger.info
        log(message)
        if self.on_notify:
            self.on_notify(message, level)
