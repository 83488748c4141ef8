import os
import typing as t
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from sprite_editor.core.layer_stack import LayerStack
from sprite_editor.core.layer_system import Frame, Layer
from sprite_editor.core.sprite import Sprite
from sprite_editor.core.storage import SpriteStorage
from sprite_editor.core.utils import create_empty_grid


class ManualTimer:
    """Stands in for a Qt timer; tests call fire() instead of running an event loop"""

    def __init__(self, callback, single_shot=False):
        self.callback = callback
        self.single_shot = single_shot
        self.interval = None
        self.active = False
        self.start_count = 0

    def start(self, interval_ms):
        self.interval = interval_ms
        self.active = True
        self.start_count += 1

    def stop(self):
        self.active = False

    def is_active(self):
        return self.active

    def fire(self):
        if not self.active:
            return
        if self.single_shot:
            self.active = False
        self.callback()


def _timer_factory(single_shot):
    created: t.List[ManualTimer] = []

    def factory(callback):
        timer = ManualTimer(callback, single_shot=single_shot)
        created.append(timer)
        return timer

    factory.created = created
    return factory


@pytest.fixture()
def repeating_timers():
    return _timer_factory(single_shot=False)


@pytest.fixture()
def single_shot_timers():
    return _timer_factory(single_shot=True)


def solid_layer(width, height, color, name="Layer", opacity=1.0, visible=True):
    return Layer(
        pixels=[[list(color) for _ in range(width)] for _ in range(height)],
        name=name,
        opacity=opacity,
        visible=visible
    )


def make_sprite(width=4, height=4, frame_count=1, name="Test Sprite"):
    """Sprite whose frame i has pixel (0, 0) set to (i * 10, 0, 0, 255)"""
    sprite = Sprite.create(width, height, name)
    sprite.frames = []
    for i in range(frame_count):
        layer = Layer(pixels=create_empty_grid(width, height))
        layer.pixels[0][0] = [i * 10, 0, 0, 255]
        sprite.frames.append(Frame(width=width, height=height, layers=[layer], name=f"Frame {i + 1}"))
    return sprite


@pytest.fixture()
def sprite_factory():
    return make_sprite


@pytest.fixture()
def layer_factory():
    return solid_layer


@pytest.fixture()
def storage(tmp_path):
    return SpriteStorage(tmp_path / "sprites", tmp_path / "settings.json")


@pytest.fixture()
def stack():
    return LayerStack(4, 4)
