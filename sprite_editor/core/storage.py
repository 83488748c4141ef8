"""
Sprite storage - JSON files on disk
One <id>.json file per sprite, plus bundle export/import for sharing sprites
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from .config import SPRITES_DIR, SETTINGS_FILE, EditorSettings
from .errors import SpriteFormatError
from .sprite import Sprite
from .utils import now_iso

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class SpriteStorage:
    """
    Persists sprites as JSON documents

    Reads are forgiving: a file that cannot be parsed yields a placeholder
    sprite instead of stopping the whole load.
    """

    BUNDLE_VERSION = "2.0"

    def __init__(self, directory: Optional[PathLike] = None,
                 settings_file: Optional[PathLike] = None):
        self.directory = Path(directory) if directory is not None else SPRITES_DIR
        self.settings_file = Path(settings_file) if settings_file is not None else SETTINGS_FILE

    def _path_for(self, sprite_id: str) -> Path:
        return self.directory / f"{sprite_id}.json"

    # ----- Sprites -----
    def save_sprite(self, sprite: Sprite) -> bool:
        path = self._path_for(sprite.id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(sprite.to_dict(), f, ensure_ascii=False)
            tmp_path.replace(path)
        except OSError as e:
            logger.error("Failed to save sprite %r to %s: %s", sprite.name, path, e)
            return False

        logger.debug("Saved sprite %r (%d frames)", sprite.name, len(sprite.frames))
        return True

    def load_sprite(self, sprite_id: str) -> Optional[Sprite]:
        path = self._path_for(sprite_id)
        if not path.exists():
            return None
        return self._read_sprite_file(path)

    def load_sprites(self) -> List[Sprite]:
        """Load every stored sprite, oldest first"""
        if not self.directory.exists():
            return []

        sprites = [self._read_sprite_file(path) for path in sorted(self.directory.glob("*.json"))]
        sprites.sort(key=lambda s: s.created_at)
        return sprites

    def _read_sprite_file(self, path: Path) -> Sprite:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError("sprite file does not contain an object")
            return Sprite.from_dict(data)
        except (OSError, ValueError) as e:
            logger.warning("Could not read sprite file %s: %s", path, e)
            sprite = Sprite.create(16, 16, name="Corrupted Sprite")
            sprite.id = path.stem
            return sprite

    def delete_sprite(self, sprite_id: str) -> bool:
        path = self._path_for(sprite_id)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Failed to delete sprite file %s: %s", path, e)
            return False
        return True

    def clear(self) -> int:
        """Delete all stored sprites; returns how many files were removed"""
        if not self.directory.exists():
            return 0
        removed = 0
        for path in self.directory.glob("*.json"):
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.error("Failed to delete sprite file %s: %s", path, e)
        return removed

    # ----- Bundles -----
    def export_sprites(self, sprites: List[Sprite], output_path: PathLike) -> Path:
        bundle = {
            "version": self.BUNDLE_VERSION,
            "createdAt": now_iso(),
            "sprites": [sprite.to_dict() for sprite in sprites],
        }
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w', encoding='utf-8') as f:
            json.dump(bundle, f, indent=2, ensure_ascii=False)
        logger.info("Exported %d sprites to %s", len(sprites), output_file)
        return output_file

    @staticmethod
    def parse_bundle(data: Any) -> List[Sprite]:
        """
        Sprites from a bundle document

        Accepts a bundle object with a ``sprites`` list or a bare list of
        sprite objects. Entries that cannot be read are skipped.
        """
        if isinstance(data, dict):
            items = data.get("sprites")
        else:
            items = data
        if not isinstance(items, list):
            raise SpriteFormatError("Invalid file format: no sprite list found")

        sprites = []
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                logger.warning("Skipping bundle entry %d: not an object", i)
                continue
            try:
                sprites.append(Sprite.from_dict(item))
            except ValueError as e:
                logger.warning("Skipping bundle entry %d: %s", i, e)
        return sprites

    def import_sprites(self, input_path: PathLike) -> List[Sprite]:
        try:
            with open(input_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise SpriteFormatError(f"Could not read {input_path}: {e}") from e
        return self.parse_bundle(data)

    # ----- Settings -----
    def save_settings(self, settings: EditorSettings) -> bool:
        return settings.save(self.settings_file)

    def load_settings(self) -> EditorSettings:
        return EditorSettings.load(self.settings_file)

    def get_storage_info(self) -> Dict[str, Any]:
        files = list(self.directory.glob("*.json")) if self.directory.exists() else []
        return {
            "directory": str(self.directory),
            "sprite_count": len(files),
            "total_bytes": sum(p.stat().st_size for p in files),
        }
