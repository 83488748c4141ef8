from .utils import *
from .errors import SpriteEditorError, ExportError, SpriteFormatError
from .layer_system import Layer, Frame
from .sprite import Sprite
from .compositor import LayerCompositor, blend_over
from .layer_stack import LayerStack
from .exporter import SpriteExporter
from .animation import AnimationController, ControllerState
from .autosave import AutosaveScheduler
from .storage import SpriteStorage
from .config import EditorSettings
from .editor import SpriteEditor

__all__ = [
    'SpriteEditorError',
    'ExportError',
    'SpriteFormatError',
    'Layer',
    'Frame',
    'Sprite',
    'LayerCompositor',
    'blend_over',
    'LayerStack',
    'SpriteExporter',
    'AnimationController',
    'ControllerState',
    'AutosaveScheduler',
    'SpriteStorage',
    'EditorSettings',
    'SpriteEditor',
]
