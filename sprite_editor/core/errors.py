class SpriteEditorError(Exception):
    """Base class for errors raised at the editor's IO and export edges."""


class ExportError(SpriteEditorError):
    """Raised when a frame or sprite cannot be exported."""


class SpriteFormatError(SpriteEditorError):
    """Raised when an imported sprite bundle cannot be understood."""
