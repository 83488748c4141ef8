import math
import uuid
from datetime import datetime, timezone
from typing import Any, List, Tuple
from PIL import Image

Pixel = List[int]
PixelGrid = List[List[Pixel]]

TRANSPARENT: Tuple[int, int, int, int] = (0, 0, 0, 0)


def ensure_rgba(image: Image.Image) -> Image.Image:
    if image.mode != 'RGBA':
        return image.convert('RGBA')
    return image


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def coerce_timestamp(value: Any) -> str:
    """ISO timestamp from stored data; epoch milliseconds are converted, anything else unreadable becomes now"""
    if isinstance(value, str) and value:
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            pass
    return now_iso()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value, lo, hi):
    return max(lo, min(hi, value))


def create_empty_grid(width: int, height: int) -> PixelGrid:
    return [[[0, 0, 0, 0] for _ in range(width)] for _ in range(height)]


def clone_grid(grid: PixelGrid) -> PixelGrid:
    """Deep copy a pixel grid; every grid copy in the editor goes through here"""
    return [[list(pixel) for pixel in row] for row in grid]


def is_valid_grid(grid: Any, width: int, height: int) -> bool:
    if not isinstance(grid, list) or len(grid) != height:
        return False
    return all(isinstance(row, list) and len(row) == width for row in grid)


def _coerce_channel(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return clamp(int(round_half_up(value)), 0, 255)


def repair_pixel(pixel: Any) -> Pixel:
    if not isinstance(pixel, (list, tuple)) or len(pixel) != 4:
        return [0, 0, 0, 0]
    return [_coerce_channel(c) for c in pixel]


def repair_grid(grid: Any, width: int, height: int) -> Tuple[PixelGrid, bool]:
    """
    Return a well-formed copy of ``grid`` sized ``width`` x ``height``.

    Malformed rows become transparent rows and malformed pixels become
    transparent pixels; the rest of the grid is kept. A grid that is not a
    list or has the wrong number of rows is replaced by an empty grid.

    Returns:
        Tuple of (repaired grid, whether anything had to be repaired)
    """
    if not isinstance(grid, list) or len(grid) != height:
        return create_empty_grid(width, height), True

    repaired = False
    result: PixelGrid = []
    for row in grid:
        if not isinstance(row, list) or len(row) != width:
            result.append([[0, 0, 0, 0] for _ in range(width)])
            repaired = True
            continue
        new_row = []
        for pixel in row:
            fixed = repair_pixel(pixel)
            if not repaired and (not isinstance(pixel, (list, tuple)) or list(pixel) != fixed):
                repaired = True
            new_row.append(fixed)
        result.append(new_row)
    return result, repaired


def scale_grid_nearest(grid: PixelGrid, old_width: int, old_height: int,
                       new_width: int, new_height: int) -> PixelGrid:
    """Nearest neighbour rescale of a well-formed grid"""
    result: PixelGrid = []
    for y in range(new_height):
        src_y = min(y * old_height // new_height, old_height - 1)
        row = []
        for x in range(new_width):
            src_x = min(x * old_width // new_width, old_width - 1)
            row.append(list(grid[src_y][src_x]))
        result.append(row)
    return result


def crop_grid(grid: PixelGrid, left: int, top: int, width: int, height: int) -> PixelGrid:
    """Copy a region out of a grid; cells outside the source become transparent"""
    result: PixelGrid = []
    for y in range(height):
        src_y = top + y
        src_row = grid[src_y] if 0 <= src_y < len(grid) else None
        row = []
        for x in range(width):
            src_x = left + x
            if src_row is not None and 0 <= src_x < len(src_row):
                row.append(list(src_row[src_x]))
            else:
                row.append([0, 0, 0, 0])
        result.append(row)
    return result
