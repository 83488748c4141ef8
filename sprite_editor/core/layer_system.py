"""
Layer system for multi-layer pixel frames
Each frame owns an ordered stack of layers (bottom to top), each holding a pixel grid
"""

import logging
from typing import List, Optional, Any, Dict
from dataclasses import dataclass, field
from .utils import (
    PixelGrid, new_id, clamp, clone_grid, create_empty_grid, repair_grid,
)

logger = logging.getLogger(__name__)

BLEND_NORMAL = "normal"
DEFAULT_LAYER_NAME = "Background"


@dataclass
class Layer:
    """
    Represents a single layer in a frame

    Attributes:
        pixels: Pixel grid, ``height`` rows of ``width`` [r, g, b, a] pixels
        name: Layer name for identification
        visible: Whether layer is visible
        opacity: Opacity (0.0-1.0)
        locked: Locked layers refuse drawing
        blend_mode: Blend mode, only "normal" is supported
        id: Stable identifier
    """
    pixels: PixelGrid
    name: str = DEFAULT_LAYER_NAME
    visible: bool = True
    opacity: float = 1.0
    locked: bool = False
    blend_mode: str = BLEND_NORMAL
    id: str = field(default_factory=new_id)

    @classmethod
    def empty(cls, width: int, height: int, name: str = DEFAULT_LAYER_NAME) -> 'Layer':
        return cls(pixels=create_empty_grid(width, height), name=name)

    def copy(self, keep_id: bool = True) -> 'Layer':
        """Create a deep copy of this layer"""
        return Layer(
            pixels=clone_grid(self.pixels),
            name=self.name,
            visible=self.visible,
            opacity=self.opacity,
            locked=self.locked,
            blend_mode=self.blend_mode,
            id=self.id if keep_id else new_id()
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "visible": self.visible,
            "opacity": self.opacity,
            "locked": self.locked,
            "blendMode": self.blend_mode,
            "pixels": clone_grid(self.pixels),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], width: int, height: int) -> 'Layer':
        """Build a layer from persisted data, repairing anything malformed"""
        pixels, repaired = repair_grid(data.get("pixels"), width, height)
        if repaired:
            logger.warning("Layer %r had malformed pixel data, repaired", data.get("name"))

        opacity = data.get("opacity")
        if isinstance(opacity, bool) or not isinstance(opacity, (int, float)):
            opacity = 1.0

        return cls(
            pixels=pixels,
            name=data.get("name") or "Layer",
            visible=data.get("visible") is not False,
            opacity=float(clamp(opacity, 0.0, 1.0)),
            locked=bool(data.get("locked", False)),
            blend_mode=data.get("blendMode") or BLEND_NORMAL,
            id=str(data.get("id") or new_id())
        )


@dataclass
class Frame:
    """
    One still image of an animation, made of stacked layers

    Attributes:
        width: Frame width in pixels (kept equal to the sprite's)
        height: Frame height in pixels
        layers: Layers in this frame (bottom to top order)
        active_layer_index: Index of the layer being edited
        name: Frame name for identification
        id: Stable identifier
    """
    width: int
    height: int
    layers: List[Layer] = field(default_factory=list)
    active_layer_index: int = 0
    name: str = "Frame"
    id: str = field(default_factory=new_id)

    @classmethod
    def empty(cls, width: int, height: int, name: str = "Frame 1") -> 'Frame':
        """A frame holding one transparent Background layer"""
        return cls(width=width, height=height, layers=[Layer.empty(width, height)], name=name)

    def get_layer(self, index: int) -> Optional[Layer]:
        """Get layer by index"""
        if 0 <= index < len(self.layers):
            return self.layers[index]
        return None

    def copy(self, keep_ids: bool = True) -> 'Frame':
        """Create a deep copy of this frame; new ids for frame and layers unless keep_ids"""
        return Frame(
            width=self.width,
            height=self.height,
            layers=[layer.copy(keep_id=keep_ids) for layer in self.layers],
            active_layer_index=self.active_layer_index,
            name=self.name,
            id=self.id if keep_ids else new_id()
        )

    def repair(self) -> bool:
        """
        Bring this frame back to a renderable state in place.

        Guarantees at least one layer, every grid sized to the frame and an
        active layer index within range. Returns True if anything changed.
        """
        repaired = False
        valid_layers = [layer for layer in self.layers if isinstance(layer, Layer)] \
            if isinstance(self.layers, list) else []

        if not valid_layers:
            logger.warning("Frame %r has no valid layers, creating default layer", self.name)
            self.layers = [Layer.empty(self.width, self.height)]
            self.active_layer_index = 0
            return True

        if len(valid_layers) != len(self.layers):
            repaired = True
        self.layers = valid_layers

        for layer in self.layers:
            pixels, fixed = repair_grid(layer.pixels, self.width, self.height)
            if fixed:
                logger.warning("Layer %r in frame %r had malformed pixels, repaired",
                               layer.name, self.name)
                layer.pixels = pixels
                repaired = True
            if not isinstance(layer.opacity, (int, float)) or isinstance(layer.opacity, bool):
                layer.opacity = 1.0
                repaired = True
            elif not 0.0 <= layer.opacity <= 1.0:
                layer.opacity = float(clamp(layer.opacity, 0.0, 1.0))
                repaired = True

        index = self.active_layer_index
        if isinstance(index, bool) or not isinstance(index, int):
            index = 0
        index = clamp(index, 0, len(self.layers) - 1)
        if type(self.active_layer_index) is not int or index != self.active_layer_index:
            self.active_layer_index = index
            repaired = True

        return repaired

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "activeLayerIndex": self.active_layer_index,
            "layers": [layer.to_dict() for layer in self.layers],
        }

    @classmethod
    def from_dict(cls, data: Any, width: int, height: int, name: str = "Frame 1") -> 'Frame':
        """
        Build a frame from persisted data sized to ``width`` x ``height``.

        Never raises: missing or broken layers are replaced by a transparent
        Background layer, malformed grids are repaired row by row.
        """
        if not isinstance(data, dict):
            logger.warning("Frame data is not an object, creating empty frame")
            return cls.empty(width, height, name=name)

        layers_data = data.get("layers")
        layers = []
        if isinstance(layers_data, list):
            layers = [Layer.from_dict(item, width, height)
                      for item in layers_data if isinstance(item, dict)]

        frame = cls(
            width=width,
            height=height,
            layers=layers,
            active_layer_index=data.get("activeLayerIndex", 0),
            name=data.get("name") or name,
            id=str(data.get("id") or new_id())
        )
        frame.repair()
        return frame

    def __len__(self):
        return len(self.layers)

    def __repr__(self):
        return f"Frame(name={self.name!r}, layers={len(self.layers)}, size={self.width}x{self.height})"
