"""
Sprite - the top-level editable asset
An ordered sequence of frames sharing one canvas size
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from .layer_system import Frame, Layer
from .utils import (
    new_id, now_iso, coerce_timestamp, create_empty_grid, scale_grid_nearest, crop_grid,
    round_half_up,
)

logger = logging.getLogger(__name__)


@dataclass
class Sprite:
    """
    Attributes:
        width: Canvas width shared by every frame
        height: Canvas height shared by every frame
        frames: Animation sequence (at least one frame)
        name: Display name
        id: Stable identifier
        created_at: ISO-8601 creation timestamp
        modified_at: ISO-8601 timestamp of the last change
    """
    width: int
    height: int
    frames: List[Frame] = field(default_factory=list)
    name: str = "Untitled"
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=now_iso)
    modified_at: str = field(default_factory=now_iso)

    @classmethod
    def create(cls, width: int, height: int, name: str = "Untitled") -> 'Sprite':
        if width <= 0 or height <= 0:
            raise ValueError(f"Sprite size must be positive, got {width}x{height}")
        return cls(width=width, height=height, frames=[Frame.empty(width, height)], name=name)

    @property
    def is_animated(self) -> bool:
        return len(self.frames) > 1

    def touch(self):
        self.modified_at = now_iso()

    def initialize_frames(self, fallback_layers: Optional[List[Layer]] = None) -> List[Frame]:
        """Make sure the sprite has at least one frame, building it from fallback layers if given"""
        if not self.frames:
            logger.warning("Sprite %r has no frames, creating one", self.name)
            layers = [layer.copy() for layer in fallback_layers] if fallback_layers else []
            frame = Frame(width=self.width, height=self.height, layers=layers, name="Frame 1")
            frame.repair()
            self.frames = [frame]
        return self.frames

    def ensure_frame_dimensions(self) -> bool:
        """Force every frame to the sprite size and repair it; returns True if anything changed"""
        changed = False
        for frame in self.frames:
            if frame.width != self.width or frame.height != self.height:
                logger.warning("Frame %r is %dx%d, sprite is %dx%d",
                               frame.name, frame.width, frame.height, self.width, self.height)
                frame.width = self.width
                frame.height = self.height
                changed = True
            if frame.repair():
                changed = True
        return changed

    # ----- Canvas operations -----
    def resize(self, new_width: int, new_height: int, nearest_neighbor: bool = True,
               maintain_aspect_ratio: bool = False) -> bool:
        """
        Resize every layer of every frame.

        With ``nearest_neighbor`` pixels are rescaled, otherwise the canvas is
        cropped/extended from the top-left corner.
        """
        if new_width <= 0 or new_height <= 0:
            return False

        if maintain_aspect_ratio:
            aspect = self.width / self.height
            if new_width / new_height > aspect:
                new_width = max(1, round_half_up(new_height * aspect))
            else:
                new_height = max(1, round_half_up(new_width / aspect))

        for frame in self.frames:
            for layer in frame.layers:
                if nearest_neighbor:
                    layer.pixels = scale_grid_nearest(
                        layer.pixels, frame.width, frame.height, new_width, new_height)
                else:
                    layer.pixels = crop_grid(layer.pixels, 0, 0, new_width, new_height)
            frame.width = new_width
            frame.height = new_height

        self.width = new_width
        self.height = new_height
        self.touch()
        return True

    def crop(self, left: int, top: int, right: int, bottom: int) -> bool:
        """Crop every frame to the inclusive rectangle; refuses selections outside the canvas"""
        new_width = right - left + 1
        new_height = bottom - top + 1
        if new_width <= 0 or new_height <= 0:
            return False
        if left < 0 or top < 0 or right >= self.width or bottom >= self.height:
            return False

        for frame in self.frames:
            for layer in frame.layers:
                layer.pixels = crop_grid(layer.pixels, left, top, new_width, new_height)
            frame.width = new_width
            frame.height = new_height

        self.width = new_width
        self.height = new_height
        self.touch()
        return True

    def clone(self, new_name: Optional[str] = None) -> 'Sprite':
        return Sprite(
            width=self.width,
            height=self.height,
            frames=[frame.copy(keep_ids=False) for frame in self.frames],
            name=new_name or f"{self.name} Copy"
        )

    # ----- Serialization -----
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "width": self.width,
            "height": self.height,
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
            "frames": [frame.to_dict() for frame in self.frames],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sprite':
        """
        Build a sprite from persisted data.

        Accepts the current frame-based shape as well as older files that stored
        a top-level ``layers`` list or a single ``pixels`` grid. Dimensions are
        required; everything else is repaired.
        """
        width = data.get("width")
        height = data.get("height")
        if isinstance(width, bool) or isinstance(height, bool) \
                or not isinstance(width, int) or not isinstance(height, int) \
                or width <= 0 or height <= 0:
            raise ValueError(f"Invalid sprite dimensions: {width!r}x{height!r}")

        sprite = cls(
            width=width,
            height=height,
            name=data.get("name") or "Untitled",
            id=str(data.get("id") or new_id()),
            created_at=coerce_timestamp(data.get("createdAt")),
            modified_at=coerce_timestamp(data.get("modifiedAt"))
        )

        frames_data = data.get("frames")
        if isinstance(frames_data, list) and frames_data:
            sprite.frames = [
                Frame.from_dict(item, width, height, name=f"Frame {i + 1}")
                for i, item in enumerate(frames_data)
            ]
            return sprite

        # Older shapes: a layer list or a single pixel grid
        layers_data = data.get("layers")
        if not isinstance(layers_data, list) or not layers_data:
            pixels = data.get("pixels")
            layers_data = [{"name": "Layer 1", "pixels": pixels}] if pixels is not None else []

        fallback = [Layer.from_dict(item, width, height)
                    for item in layers_data if isinstance(item, dict)]
        if not fallback:
            fallback = [Layer(pixels=create_empty_grid(width, height))]
        sprite.initialize_frames(fallback)
        return sprite

    def __repr__(self):
        return f"Sprite(name={self.name!r}, size={self.width}x{self.height}, frames={len(self.frames)})"
