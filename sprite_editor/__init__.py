"""Sprite Editor - Pixel Animation Editor

Multi-frame, multi-layer pixel sprite editing with live compositing,
playback and PNG/SVG/GIF export.
"""

__version__ = '1.0.0'

from . import core
from . import widgets

__all__ = ['core', 'widgets']
