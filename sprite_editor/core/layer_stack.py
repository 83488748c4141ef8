"""
Working layer stack
The editable, in-memory view of one frame's layers with snapshot undo/redo
"""

import logging
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional, Sequence, Any
from .compositor import LayerCompositor
from .config import MAX_HISTORY_SIZE, LARGE_SPRITE_PIXELS, LARGE_SPRITE_HISTORY_SIZE
from .layer_system import Layer
from .utils import (
    PixelGrid, clamp, create_empty_grid, is_valid_grid, scale_grid_nearest, crop_grid,
)

logger = logging.getLogger(__name__)


class LayerStack:
    """
    Ordered layers (bottom to top) being edited, plus the active layer pointer

    Drawing mutates layer grids in place. Structural operations record a
    snapshot so they can be undone; pixel drawing is recorded once per
    batch (start_batch_operation / end_batch_operation).
    """

    def __init__(self, width: int, height: int,
                 on_change: Optional[Callable[[], None]] = None):
        self.width = width
        self.height = height
        self.layers: List[Layer] = []
        self.active_layer_index = 0
        self.on_change = on_change

        self.batch_mode = False
        self._restoring = False
        self._history: List[Dict[str, Any]] = []
        self._history_index = -1
        self.max_history_size = self._history_limit()

        self.layers.append(Layer.empty(width, height))
        self._save_to_history()

    def _history_limit(self) -> int:
        if self.width * self.height > LARGE_SPRITE_PIXELS:
            return LARGE_SPRITE_HISTORY_SIZE
        return MAX_HISTORY_SIZE

    @property
    def is_restoring(self) -> bool:
        return self._restoring

    @contextmanager
    def restoring(self):
        """Suppress history recording, change notifications and drawing"""
        previous = self._restoring
        self._restoring = True
        try:
            yield self
        finally:
            self._restoring = previous

    # ----- History -----
    def _snapshot(self) -> Dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "active_layer_index": self.active_layer_index,
            "layers": [layer.copy() for layer in self.layers],
        }

    def _save_to_history(self):
        if self._restoring:
            return

        # Drop redo states
        del self._history[self._history_index + 1:]
        self._history.append(self._snapshot())
        self._history_index += 1

        if len(self._history) > self.max_history_size:
            self._history.pop(0)
            self._history_index -= 1

    def _restore(self, state: Dict[str, Any]):
        with self.restoring():
            self.width = state["width"]
            self.height = state["height"]
            self.layers = [layer.copy() for layer in state["layers"]]
            self.active_layer_index = clamp(state["active_layer_index"], 0, len(self.layers) - 1)
        self._notify_change()

    def reset_history(self):
        """Forget all undo states; the current stack becomes the only one"""
        self.max_history_size = self._history_limit()
        self._history = [self._snapshot()]
        self._history_index = 0

    def can_undo(self) -> bool:
        return self._history_index > 0

    def can_redo(self) -> bool:
        return self._history_index < len(self._history) - 1

    def undo(self) -> bool:
        if not self.can_undo():
            return False
        self._history_index -= 1
        self._restore(self._history[self._history_index])
        return True

    def redo(self) -> bool:
        if not self.can_redo():
            return False
        self._history_index += 1
        self._restore(self._history[self._history_index])
        return True

    def start_batch_operation(self):
        self.batch_mode = True

    def end_batch_operation(self):
        self.batch_mode = False
        self._save_to_history()
        self._notify_change()

    def _notify_change(self):
        if self.batch_mode or self._restoring:
            return
        if self.on_change:
            self.on_change()

    # ----- Access -----
    def get_active_layer(self) -> Optional[Layer]:
        return self.get_layer(self.active_layer_index)

    def get_layer(self, index: int) -> Optional[Layer]:
        if 0 <= index < len(self.layers):
            return self.layers[index]
        return None

    def _in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def set_pixel(self, x: int, y: int, color: Sequence[int],
                  layer_index: Optional[int] = None) -> bool:
        """Write one pixel; refused on locked layers, out of bounds and while restoring"""
        if self._restoring:
            return False
        layer = self.get_layer(self.active_layer_index if layer_index is None else layer_index)
        if layer is None or layer.locked:
            return False
        if not self._in_bounds(x, y):
            return False

        layer.pixels[y][x] = [int(c) for c in color[:4]]
        self._notify_change()
        return True

    def get_pixel(self, x: int, y: int, layer_index: Optional[int] = None) -> List[int]:
        layer = self.get_layer(self.active_layer_index if layer_index is None else layer_index)
        if layer is None or not self._in_bounds(x, y):
            return [0, 0, 0, 0]
        return list(layer.pixels[y][x])

    def get_composite_pixel(self, x: int, y: int) -> List[int]:
        if not self._in_bounds(x, y):
            return [0, 0, 0, 0]
        return list(LayerCompositor.composite_layers_at(self.layers, x, y))

    def get_composite_image_data(self) -> PixelGrid:
        return LayerCompositor.composite_layers(self.layers, self.width, self.height)

    def has_valid_pixel_data(self) -> bool:
        if not self.layers:
            return False
        return all(is_valid_grid(layer.pixels, self.width, self.height) for layer in self.layers)

    # ----- Layer operations -----
    def add_layer(self, name: Optional[str] = None, insert_at: Optional[int] = None) -> Layer:
        layer = Layer.empty(self.width, self.height, name=name or f"Layer {len(self.layers) + 1}")

        if insert_at is not None and 0 <= insert_at <= len(self.layers):
            self.layers.insert(insert_at, layer)
            if insert_at <= self.active_layer_index:
                self.active_layer_index += 1
        else:
            self.layers.append(layer)
            self.active_layer_index = len(self.layers) - 1

        self._save_to_history()
        self._notify_change()
        return layer

    def delete_layer(self, index: int) -> bool:
        if len(self.layers) <= 1:
            return False
        if index < 0 or index >= len(self.layers):
            return False

        del self.layers[index]
        if self.active_layer_index >= len(self.layers):
            self.active_layer_index = len(self.layers) - 1
        elif self.active_layer_index > index:
            self.active_layer_index -= 1

        self._save_to_history()
        self._notify_change()
        return True

    def duplicate_layer(self, index: int) -> Optional[Layer]:
        source = self.get_layer(index)
        if source is None:
            return None

        layer = source.copy(keep_id=False)
        layer.name = f"{source.name} Copy"
        layer.locked = False
        self.layers.insert(index + 1, layer)
        self.active_layer_index = index + 1

        self._save_to_history()
        self._notify_change()
        return layer

    def move_layer(self, from_index: int, to_index: int) -> bool:
        count = len(self.layers)
        if not (0 <= from_index < count and 0 <= to_index < count) or from_index == to_index:
            return False

        layer = self.layers.pop(from_index)
        self.layers.insert(to_index, layer)

        current = self.active_layer_index
        if current == from_index:
            self.active_layer_index = to_index
        elif from_index < current <= to_index:
            self.active_layer_index = current - 1
        elif from_index > current >= to_index:
            self.active_layer_index = current + 1

        self._save_to_history()
        self._notify_change()
        return True

    def merge_down(self, index: int) -> bool:
        """Blend layer ``index`` into the one below it and remove it"""
        if index <= 0 or index >= len(self.layers):
            return False

        upper = self.layers[index]
        lower = self.layers[index - 1]
        if lower.locked:
            return False

        for y in range(self.height):
            upper_row = upper.pixels[y]
            lower_row = lower.pixels[y]
            for x in range(self.width):
                pixel = upper_row[x]
                if pixel[3] == 0:
                    continue
                lower_row[x] = list(LayerCompositor.merge_pixels(lower_row[x], pixel, upper.opacity))

        logger.debug("Merging layer %r into %r", upper.name, lower.name)
        lower.name = f"{lower.name} + {upper.name}"
        del self.layers[index]
        if self.active_layer_index >= index:
            self.active_layer_index = max(0, self.active_layer_index - 1)

        self._save_to_history()
        self._notify_change()
        return True

    def set_layer_visibility(self, index: int, visible: bool) -> bool:
        layer = self.get_layer(index)
        if layer is None:
            return False
        layer.visible = bool(visible)
        self._notify_change()
        return True

    def set_layer_opacity(self, index: int, opacity: float) -> bool:
        layer = self.get_layer(index)
        if layer is None:
            return False
        layer.opacity = float(clamp(opacity, 0.0, 1.0))
        self._notify_change()
        return True

    def set_layer_name(self, index: int, name: str) -> bool:
        layer = self.get_layer(index)
        if layer is None or not name or not name.strip():
            return False
        layer.name = name.strip()
        self._notify_change()
        return True

    def set_layer_locked(self, index: int, locked: bool) -> bool:
        layer = self.get_layer(index)
        if layer is None:
            return False
        layer.locked = bool(locked)
        self._notify_change()
        return True

    def set_active_layer(self, index: int) -> bool:
        if self.get_layer(index) is None:
            return False
        self.active_layer_index = index
        self._notify_change()
        return True

    def clear_layer(self, index: Optional[int] = None) -> bool:
        layer = self.get_layer(self.active_layer_index if index is None else index)
        if layer is None or layer.locked:
            return False
        layer.pixels = create_empty_grid(self.width, self.height)
        self._save_to_history()
        self._notify_change()
        return True

    def fill_layer(self, color: Sequence[int], index: Optional[int] = None) -> bool:
        layer = self.get_layer(self.active_layer_index if index is None else index)
        if layer is None or layer.locked:
            return False
        fill = [int(c) for c in color[:4]]
        layer.pixels = [[list(fill) for _ in range(self.width)] for _ in range(self.height)]
        self._save_to_history()
        self._notify_change()
        return True

    def resize(self, new_width: int, new_height: int, nearest_neighbor: bool = False) -> bool:
        """Resize every layer; rescales with nearest_neighbor, otherwise crops/extends"""
        if new_width <= 0 or new_height <= 0:
            return False

        for layer in self.layers:
            if nearest_neighbor:
                layer.pixels = scale_grid_nearest(
                    layer.pixels, self.width, self.height, new_width, new_height)
            else:
                layer.pixels = crop_grid(layer.pixels, 0, 0, new_width, new_height)

        self.width = new_width
        self.height = new_height
        self._save_to_history()
        self._notify_change()
        return True

    def replace_layers(self, layers: List[Layer], active_layer_index: int,
                       width: int, height: int):
        """Swap in another frame's layers; the caller owns the list passed in"""
        self.width = width
        self.height = height
        self.layers = layers if layers else [Layer.empty(width, height)]
        self.active_layer_index = clamp(active_layer_index, 0, len(self.layers) - 1)
        self._notify_change()

    def __len__(self):
        return len(self.layers)

    def __repr__(self):
        return f"LayerStack(layers={len(self.layers)}, size={self.width}x{self.height})"
