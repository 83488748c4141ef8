"""
Layer compositing
Flattens a frame's layer stack into a single RGBA raster with source-over blending.
Rendering, thumbnails and every export format go through this module.
"""

from typing import Iterable, List, Sequence, Tuple
from PIL import Image
from .layer_system import Frame, Layer
from .utils import PixelGrid, round_half_up

RGBA = Tuple[int, int, int, int]


def blend_over(dst: Sequence[int], src: Sequence[int], opacity: float = 1.0) -> RGBA:
    """
    Blend ``src`` over ``dst`` (Porter-Duff source-over)

    Channel values are rounded after the blend, so accumulating a stack one
    layer at a time rounds once per layer.
    """
    src_a = (src[3] / 255) * opacity
    dst_a = dst[3] / 255
    out_a = src_a + dst_a * (1 - src_a)
    if out_a <= 0:
        return (0, 0, 0, 0)

    inv = dst_a * (1 - src_a)
    return (
        round_half_up((src[0] * src_a + dst[0] * inv) / out_a),
        round_half_up((src[1] * src_a + dst[1] * inv) / out_a),
        round_half_up((src[2] * src_a + dst[2] * inv) / out_a),
        round_half_up(out_a * 255),
    )


class LayerCompositor:
    """Handles compositing multiple layers into a single image"""

    @staticmethod
    def merge_pixels(lower: Sequence[int], upper: Sequence[int], opacity: float = 1.0) -> RGBA:
        """Blend one pixel onto another; transparent ``upper`` leaves ``lower`` as is"""
        if upper[3] == 0:
            return (int(lower[0]), int(lower[1]), int(lower[2]), int(lower[3]))
        return blend_over(lower, upper, opacity)

    @staticmethod
    def composite_layers_at(layers: Iterable[Layer], x: int, y: int) -> RGBA:
        result: RGBA = (0, 0, 0, 0)
        for layer in layers:
            if not layer.visible:
                continue
            pixel = layer.pixels[y][x]
            if pixel[3] == 0:
                continue
            result = blend_over(result, pixel, layer.opacity)
        return result

    @staticmethod
    def composite_pixel(frame: Frame, x: int, y: int) -> RGBA:
        """
        Composite the visible layers of a frame at one coordinate

        Args:
            frame: The frame to sample
            x, y: Pixel coordinate; out-of-bounds returns transparent

        Returns:
            (r, g, b, a) tuple
        """
        if x < 0 or x >= frame.width or y < 0 or y >= frame.height:
            return (0, 0, 0, 0)
        return LayerCompositor.composite_layers_at(frame.layers, x, y)

    @staticmethod
    def composite_layers(layers: List[Layer], width: int, height: int) -> PixelGrid:
        visible = [layer for layer in layers if layer.visible]
        at = LayerCompositor.composite_layers_at
        return [[list(at(visible, x, y)) for x in range(width)] for y in range(height)]

    @staticmethod
    def composite_frame(frame: Frame) -> PixelGrid:
        """Composite all layers in a frame into a single pixel grid"""
        return LayerCompositor.composite_layers(frame.layers, frame.width, frame.height)

    @staticmethod
    def to_image(grid: PixelGrid, width: int, height: int) -> Image.Image:
        """Pack a composited grid into an RGBA Pillow image"""
        data = bytearray(width * height * 4)
        i = 0
        for row in grid:
            for r, g, b, a in row:
                data[i] = r
                data[i + 1] = g
                data[i + 2] = b
                data[i + 3] = a
                i += 4
        return Image.frombytes('RGBA', (width, height), bytes(data))

    @staticmethod
    def frame_to_image(frame: Frame) -> Image.Image:
        grid = LayerCompositor.composite_frame(frame)
        return LayerCompositor.to_image(grid, frame.width, frame.height)
