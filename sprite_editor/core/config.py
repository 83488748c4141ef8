"""
Application configuration
Centralises names, paths and runtime defaults, plus the persisted editor settings.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, asdict, fields
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

APP_NAME = "SpriteEditor"
APP_VERSION = "1.0.0"

# Data directory (sprites, settings, logs); SPRITE_EDITOR_HOME overrides it
DATA_DIR = Path(os.environ.get("SPRITE_EDITOR_HOME", Path.home() / ".sprite_editor"))
SPRITES_DIR = DATA_DIR / "sprites"
LOG_DIR = DATA_DIR / "logs"
SETTINGS_FILE = DATA_DIR / "settings.json"

DEFAULT_SPRITE_WIDTH = 16
DEFAULT_SPRITE_HEIGHT = 16

AUTOSAVE_DELAY_MS = 500

MIN_FRAME_RATE = 1
MAX_FRAME_RATE = 60
DEFAULT_FRAME_RATE = 12
PLAYBACK_MODES = ("loop", "once", "pingpong")
DEFAULT_PLAYBACK_MODE = "loop"

THUMBNAIL_SIZE = 64
MAX_HISTORY_SIZE = 50
# Sprites with more pixels than this keep a shorter undo history
LARGE_SPRITE_PIXELS = 100_000
LARGE_SPRITE_HISTORY_SIZE = 20

DEFAULT_PALETTE = [
    "#000000", "#ffffff", "#ff0000", "#00ff00",
    "#0000ff", "#ffff00", "#ff00ff", "#00ffff",
    "#800000", "#008000", "#000080", "#808000",
    "#800080", "#008080", "#c0c0c0", "#808080",
]


@dataclass
class EditorSettings:
    """User preferences persisted between sessions"""
    brush_size: int = 1
    brush_opacity: int = 100
    bucket_tolerance: int = 10
    show_grid: bool = False
    zoom_level: int = 1
    primary_color: str = "#000000"
    secondary_color: str = "#ffffff"
    color_palette: List[str] = field(default_factory=lambda: list(DEFAULT_PALETTE))
    frame_rate: int = DEFAULT_FRAME_RATE
    playback_mode: str = DEFAULT_PLAYBACK_MODE

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EditorSettings':
        known = {f.name for f in fields(cls)}
        settings = cls(**{k: v for k, v in data.items() if k in known})
        settings.frame_rate = max(MIN_FRAME_RATE, min(MAX_FRAME_RATE, int(settings.frame_rate)))
        if settings.playback_mode not in PLAYBACK_MODES:
            settings.playback_mode = DEFAULT_PLAYBACK_MODE
        return settings

    @classmethod
    def load(cls, path: Path = SETTINGS_FILE) -> 'EditorSettings':
        """Load settings from JSON, falling back to defaults on missing or unreadable files"""
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return cls()
        except (OSError, ValueError) as e:
            logger.warning("Could not read settings from %s: %s", path, e)
            return cls()

        if not isinstance(data, dict):
            logger.warning("Settings file %s does not hold an object, using defaults", path)
            return cls()

        try:
            return cls.from_dict(data)
        except (TypeError, ValueError) as e:
            logger.warning("Invalid settings in %s: %s", path, e)
            return cls()

    def save(self, path: Path = SETTINGS_FILE) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            logger.error("Failed to save settings to %s: %s", path, e)
            return False
