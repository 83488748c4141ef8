from .frame_preview_widget import FramePreviewWidget

__all__ = [
    'FramePreviewWidget',
]
