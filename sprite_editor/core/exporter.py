"""
Sprite export
PNG, SVG, animated SVG and GIF output. Every format starts from the
composited frame so exports match what the editor shows.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Union
from PIL import Image
from .compositor import LayerCompositor
from .config import DEFAULT_FRAME_RATE, THUMBNAIL_SIZE
from .errors import ExportError
from .layer_system import Frame
from .sprite import Sprite
from .utils import ensure_rgba, round_half_up

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SVG_HEADER = '<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" ' \
             'viewBox="0 0 {vw} {vh}" style="image-rendering: pixelated;">'
TRANSPARENT_RECT = '<rect x="0" y="0" width="1" height="1" fill="rgba(0,0,0,0)"/>'


def svg_color(pixel: Sequence[int]) -> str:
    """CSS colour for one composited pixel: rgb() when opaque, rgba() otherwise"""
    r, g, b, a = pixel[0], pixel[1], pixel[2], pixel[3]
    if a == 255:
        return f"rgb({r},{g},{b})"
    return f"rgba({r},{g},{b},{a / 255:.3f})"


def _format_ms(value: float) -> str:
    return f"{value:g}"


class SpriteExporter:

    def __init__(self):
        self.color_count: int = 256
        self.optimize: bool = True
        self.disposal: int = 2

    # ----- Raster -----
    @staticmethod
    def frame_to_image(frame: Frame, scale: int = 1) -> Image.Image:
        """Composite a frame into an RGBA image, scaled by an integer factor"""
        if scale < 1:
            raise ValueError(f"Scale must be at least 1, got {scale}")
        image = LayerCompositor.frame_to_image(frame)
        if scale > 1:
            image = image.resize((frame.width * scale, frame.height * scale), Image.Resampling.NEAREST)
        return image

    @staticmethod
    def thumbnail(frame: Frame, size: int = THUMBNAIL_SIZE) -> Image.Image:
        """Fit a frame into a size x size transparent square, centred"""
        image = LayerCompositor.frame_to_image(frame)
        factor = min(size / frame.width, size / frame.height)
        new_size = (max(1, int(frame.width * factor)), max(1, int(frame.height * factor)))
        image = image.resize(new_size, Image.Resampling.NEAREST)

        canvas = Image.new('RGBA', (size, size), (0, 0, 0, 0))
        canvas.paste(image, ((size - new_size[0]) // 2, (size - new_size[1]) // 2))
        return canvas

    def export_png(self, frame: Frame, output_path: PathLike, scale: int = 1) -> Path:
        try:
            image = self.frame_to_image(frame, scale)
        except ValueError as e:
            raise ExportError(str(e)) from e

        output_file = Path(output_path)
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            image.save(output_file, format='PNG')
        except (OSError, ValueError) as e:
            raise ExportError(f"Failed to write PNG {output_file}: {e}") from e

        logger.info("Exported PNG %s (%dx%d)", output_file, image.width, image.height)
        return output_file

    def export_frames_as_pngs(self, sprite: Sprite, directory: PathLike, scale: int = 1) -> List[Path]:
        """Write each frame as <name>_<n>.png in ``directory``"""
        out_dir = Path(directory)
        stem = sprite.name or "sprite"
        paths = []
        for i, frame in enumerate(sprite.frames):
            paths.append(self.export_png(frame, out_dir / f"{stem}_{i + 1:03d}.png", scale))
        return paths

    # ----- SVG -----
    @staticmethod
    def frame_to_svg(frame: Frame, scale: int = 1) -> str:
        """One rect per visible composited pixel"""
        if scale < 1:
            raise ValueError(f"Scale must be at least 1, got {scale}")

        grid = LayerCompositor.composite_frame(frame)
        parts = [SVG_HEADER.format(w=frame.width * scale, h=frame.height * scale,
                                   vw=frame.width * scale, vh=frame.height * scale),
                 '<g shape-rendering="crispEdges">']

        has_visible = False
        for y, row in enumerate(grid):
            for x, pixel in enumerate(row):
                if pixel[3] == 0:
                    continue
                has_visible = True
                parts.append(f'<rect x="{x * scale}" y="{y * scale}" width="{scale}" '
                             f'height="{scale}" fill="{svg_color(pixel)}"/>')

        if not has_visible:
            parts.append(TRANSPARENT_RECT)
        parts.append('</g></svg>')
        return "".join(parts)

    def export_svg(self, frame: Frame, output_path: PathLike, scale: int = 1) -> Path:
        try:
            content = self.frame_to_svg(frame, scale)
        except ValueError as e:
            raise ExportError(str(e)) from e
        return self._write_text(output_path, content)

    @staticmethod
    def sprite_to_animated_svg(sprite: Sprite, frame_rate: int = DEFAULT_FRAME_RATE) -> str:
        """
        Animated SVG of all frames

        Every pixel visible in at least one frame gets a rect. Pixels whose
        colour changes between frames get a discrete fill animation spanning
        the whole loop.
        """
        if not sprite.frames:
            raise ValueError("Sprite has no frames")
        if frame_rate <= 0:
            raise ValueError(f"Frame rate must be positive, got {frame_rate}")

        grids = [LayerCompositor.composite_frame(frame) for frame in sprite.frames]
        total_ms = len(grids) * 1000 / frame_rate

        parts = [SVG_HEADER.format(w=sprite.width, h=sprite.height, vw=sprite.width, vh=sprite.height),
                 '<g shape-rendering="crispEdges">']
        has_visible = False
        for y in range(sprite.height):
            for x in range(sprite.width):
                pixels = [grid[y][x] for grid in grids]
                if not any(p[3] > 0 for p in pixels):
                    continue
                has_visible = True
                colors = [svg_color(p) if p[3] > 0 else "rgba(0,0,0,0)" for p in pixels]
                if len(set(colors)) == 1:
                    parts.append(f'<rect x="{x}" y="{y}" width="1" height="1" fill="{colors[0]}"/>')
                else:
                    parts.append(
                        f'<rect x="{x}" y="{y}" width="1" height="1" fill="{colors[0]}">'
                        f'<animate attributeName="fill" values="{";".join(colors)}" '
                        f'dur="{_format_ms(total_ms)}ms" calcMode="discrete" repeatCount="indefinite"/>'
                        f'</rect>'
                    )

        if not has_visible:
            parts.append(TRANSPARENT_RECT)
        parts.append('</g></svg>')
        return "".join(parts)

    def export_animated_svg(self, sprite: Sprite, output_path: PathLike,
                            frame_rate: int = DEFAULT_FRAME_RATE) -> Path:
        try:
            content = self.sprite_to_animated_svg(sprite, frame_rate)
        except ValueError as e:
            raise ExportError(str(e)) from e
        return self._write_text(output_path, content)

    # ----- GIF -----
    def _to_gif_frame(self, image: Image.Image) -> Image.Image:
        """Palette image with alpha < 128 mapped to the transparent index 255"""
        image = ensure_rgba(image)
        alpha = image.split()[3]
        frame_img = image.convert('RGB').convert('P', palette=Image.Palette.ADAPTIVE,
                                                colors=self.color_count - 1)
        mask = Image.eval(alpha, lambda a: 255 if a < 128 else 0)
        frame_img.paste(255, mask)
        frame_img.info['transparency'] = 255
        return frame_img

    def export_gif(self, sprite: Sprite, output_path: PathLike,
                   frame_rate: int = DEFAULT_FRAME_RATE, scale: int = 1, loop: bool = True) -> Path:
        """
        Encode every frame of ``sprite`` as an animated GIF

        Args:
            sprite: Sprite to export
            output_path: Destination file
            frame_rate: Frames per second, each frame lasts 1000 / frame_rate ms
            scale: Integer nearest neighbour scale factor
            loop: Loop forever when True, play once otherwise

        Returns:
            Path of the written file
        """
        if not sprite.frames:
            raise ExportError("Sprite has no frames, cannot generate GIF")
        if frame_rate <= 0:
            raise ExportError(f"Frame rate must be positive, got {frame_rate}")

        try:
            frames = [self._to_gif_frame(self.frame_to_image(frame, scale)) for frame in sprite.frames]
        except ValueError as e:
            raise ExportError(str(e)) from e

        duration = round_half_up(1000 / frame_rate)
        self.save_gif(frames, [duration] * len(frames), output_path, loop)
        logger.info("Exported GIF %s (%d frames, %d ms/frame)", output_path, len(frames), duration)
        return Path(output_path)

    def save_gif(self, frames: List[Image.Image], durations: List[int],
                 output_path: PathLike, loop: bool = True):
        if not frames:
            raise ExportError("Frame list is empty")

        output_file = Path(output_path)
        save_kwargs = {
            'format': 'GIF',
            'save_all': True,
            'append_images': frames[1:],
            'duration': durations,
            'optimize': self.optimize,
            'disposal': self.disposal
        }
        if loop:
            save_kwargs['loop'] = 0

        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            frames[0].save(output_file, **save_kwargs)
        except (OSError, ValueError) as e:
            raise ExportError(f"Failed to write GIF {output_file}: {e}") from e

    @staticmethod
    def get_gif_info(gif_path: PathLike) -> dict:
        """
        Get information about a GIF file

        Returns:
            Dictionary with frame count, size, durations, loop and transparency
        """
        try:
            with Image.open(gif_path) as gif:
                loop = gif.info.get('loop')
                has_transparency = 'transparency' in gif.info
                durations = []
                for frame_index in range(gif.n_frames):
                    gif.seek(frame_index)
                    durations.append(gif.info.get('duration', 100))

                return {
                    'frame_count': gif.n_frames,
                    'size': (gif.width, gif.height),
                    'durations_ms': durations,
                    'total_duration_ms': sum(durations),
                    'loop': loop,
                    'has_transparency': has_transparency,
                    'file_size_bytes': Path(gif_path).stat().st_size
                }
        except OSError as e:
            raise ExportError(f"Failed to read GIF info: {e}") from e

    # ----- Helpers -----
    @staticmethod
    def _write_text(output_path: PathLike, content: str) -> Path:
        output_file = Path(output_path)
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.write_text(content, encoding="utf-8")
        except OSError as e:
            raise ExportError(f"Failed to write {output_file}: {e}") from e
        logger.info("Exported %s", output_file)
        return output_file
