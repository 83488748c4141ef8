import pytest
from sprite_editor.core.config import EditorSettings
from sprite_editor.core.editor import SpriteEditor
from sprite_editor.core.errors import ExportError, SpriteFormatError
from sprite_editor.core.exporter import SpriteExporter

RED = [255, 0, 0, 255]
GREEN = [0, 255, 0, 255]


class Session:
    def __init__(self, storage, repeating_timers, single_shot_timers, settings=None):
        self.renders = []
        self.notes = []
        self.editor = SpriteEditor(
            storage=storage,
            settings=settings,
            on_render=lambda: self.renders.append(True),
            on_notify=lambda message, level: self.notes.append((message, level)),
            playback_timer_factory=repeating_timers,
            autosave_timer_factory=single_shot_timers
        )
        self.storage = storage
        self.playback_timers = repeating_timers.created
        self.autosave_timer = single_shot_timers.created[0]


@pytest.fixture()
def session(storage, repeating_timers, single_shot_timers):
    return Session(storage, repeating_timers, single_shot_timers)


def test_first_start_creates_blank_sprite(session):
    sprites = session.editor.load_sprites()
    assert len(sprites) == 1
    sprite = session.editor.current_sprite
    assert sprite.name == "Sprite 1"
    assert (sprite.width, sprite.height) == (16, 16)
    assert session.editor.autosave.has_pending

    session.autosave_timer.fire()
    assert [s.id for s in session.storage.load_sprites()] == [sprite.id]


def test_settings_applied_to_playback(storage, repeating_timers, single_shot_timers):
    settings = EditorSettings(frame_rate=30, playback_mode="once")
    editor = Session(storage, repeating_timers, single_shot_timers, settings).editor
    assert editor.animation.frame_rate == 30
    assert editor.animation.playback_mode == "once"


def test_drawing_is_autosaved_once(session):
    editor = session.editor
    editor.load_sprites()
    session.autosave_timer.fire()
    saves = editor.autosave.save_count

    for x in range(4):
        editor.layer_stack.set_pixel(x, 1, RED)
    assert editor.autosave.save_count == saves

    session.autosave_timer.fire()
    assert editor.autosave.save_count == saves + 1
    stored = session.storage.load_sprite(editor.current_sprite.id)
    assert stored.frames[0].layers[0].pixels[1][3] == RED
    assert session.renders


def test_frame_switch_keeps_drawing(session):
    editor = session.editor
    editor.load_sprites()
    editor.layer_stack.set_pixel(0, 0, RED)
    editor.animation.add_frame()
    editor.layer_stack.set_pixel(2, 2, GREEN)
    editor.animation.set_current_frame(0)

    frames = editor.current_sprite.frames
    assert frames[0].layers[0].pixels[0][0] == RED
    assert frames[1].layers[0].pixels[2][2] == GREEN
    assert frames[0].layers[0].pixels[2][2] == [0, 0, 0, 0]
    assert editor.layer_stack.get_pixel(0, 0) == RED


def test_switching_sprites_flushes_outgoing(session):
    editor = session.editor
    editor.load_sprites()
    first = editor.current_sprite
    editor.layer_stack.set_pixel(5, 5, RED)

    second = editor.create_new_sprite(8, 8, "Second")
    stored = session.storage.load_sprite(first.id)
    assert stored.frames[0].layers[0].pixels[5][5] == RED
    assert editor.current_sprite is second
    assert editor.layer_stack.width == 8
    assert editor.layer_stack.get_pixel(5, 5) == [0, 0, 0, 0]


def test_delete_sprite(session):
    editor = session.editor
    editor.load_sprites()
    assert editor.delete_sprite(0) is False
    assert ("Cannot delete the last sprite", "warning") in session.notes

    first = editor.current_sprite
    second = editor.create_new_sprite()
    session.autosave_timer.fire()
    assert session.storage.load_sprite(second.id) is not None

    assert editor.delete_sprite(1) is True
    assert editor.current_sprite is first
    assert session.storage.load_sprite(second.id) is None
    assert not editor.autosave.has_pending


def test_duplicate_sprite(session):
    editor = session.editor
    editor.load_sprites()
    editor.layer_stack.set_pixel(1, 1, RED)
    source = editor.current_sprite

    copy = editor.duplicate_sprite()
    assert copy.name == "Sprite 1 Copy"
    assert copy.id != source.id
    assert editor.current_sprite is copy
    assert copy.frames[0].layers[0].pixels[1][1] == RED
    assert copy.frames[0].id != source.frames[0].id


def test_undo_redo_stroke(session):
    editor = session.editor
    editor.load_sprites()
    stack = editor.layer_stack
    stack.start_batch_operation()
    stack.set_pixel(3, 3, RED)
    stack.set_pixel(4, 3, RED)
    stack.end_batch_operation()

    assert editor.undo() is True
    assert stack.get_pixel(3, 3) == [0, 0, 0, 0]
    assert editor.redo() is True
    assert stack.get_pixel(4, 3) == RED


def test_resize_and_crop(session):
    editor = session.editor
    editor.load_sprites()

    assert editor.resize_canvas(8, 4) is True
    assert ("Canvas resized to 8x4", "success") in session.notes
    assert (editor.layer_stack.width, editor.layer_stack.height) == (8, 4)

    assert editor.resize_canvas(8, 2, maintain_aspect_ratio=True) is True
    assert (editor.current_sprite.width, editor.current_sprite.height) == (4, 2)

    assert editor.crop_to_selection(3, 1, 1, 0) is False
    assert ("Invalid selection for cropping", "warning") in session.notes
    assert editor.crop_to_selection(1, 0, 2, 1) is True
    assert (editor.layer_stack.width, editor.layer_stack.height) == (2, 2)


def test_playback_advances_frames(session):
    editor = session.editor
    editor.load_sprites()
    editor.animation.add_frame()
    editor.animation.add_frame()
    assert editor.animation.current_frame_index == 2

    editor.animation.play()
    timer = session.playback_timers[0]
    assert timer.interval == 83
    timer.fire()
    assert editor.animation.current_frame_index == 0
    timer.fire()
    assert editor.animation.current_frame_index == 1


def test_export_gif_uses_frame_rate(session, tmp_path):
    editor = session.editor
    editor.load_sprites()
    editor.animation.set_frame_rate(10)
    editor.layer_stack.set_pixel(0, 0, RED)
    editor.animation.add_frame()
    editor.layer_stack.set_pixel(1, 1, GREEN)

    path = editor.export_gif(tmp_path / "anim.gif", scale=2)
    info = SpriteExporter.get_gif_info(path)
    assert info["frame_count"] == 2
    assert info["size"] == (32, 32)
    assert info["durations_ms"] == [100, 100]


def test_export_current_frame(session, tmp_path):
    editor = session.editor
    editor.load_sprites()
    editor.layer_stack.set_pixel(0, 0, RED)

    png = editor.export_png(tmp_path / "frame.png")
    svg = editor.export_svg(tmp_path / "frame.svg")
    animated = editor.export_animated_svg(tmp_path / "anim.svg")
    frames = editor.export_frames(tmp_path / "frames")

    assert png.exists()
    assert 'fill="rgb(255,0,0)"' in svg.read_text(encoding="utf-8")
    assert animated.exists()
    assert len(frames) == 1


def test_export_without_sprite(session, tmp_path):
    with pytest.raises(ExportError):
        session.editor.export_png(tmp_path / "nothing.png")


def test_bundle_roundtrip_replaces_clashing_ids(session, tmp_path):
    editor = session.editor
    editor.load_sprites()
    existing = editor.current_sprite
    bundle = editor.export_sprites(tmp_path / "bundle.json")

    imported = editor.import_sprites(bundle)
    assert len(imported) == 1
    assert imported[0].id != existing.id
    assert len(editor.sprites) == 2
    assert editor.current_sprite is imported[0]
    assert session.storage.load_sprite(imported[0].id) is not None
    assert ("Imported 1 sprites", "success") in session.notes


def test_import_bad_file(session, tmp_path):
    session.editor.load_sprites()
    path = tmp_path / "bad.json"
    path.write_text('{"version": "2.0"}', encoding="utf-8")
    with pytest.raises(SpriteFormatError):
        session.editor.import_sprites(path)
    assert not session.editor.animation.is_busy()


def test_close_writes_sprite_and_settings(session):
    editor = session.editor
    editor.load_sprites()
    editor.animation.set_frame_rate(24)
    editor.animation.set_playback_mode("pingpong")
    editor.layer_stack.set_pixel(6, 6, RED)

    editor.close()
    assert not editor.autosave.has_pending
    stored = session.storage.load_sprite(editor.current_sprite.id)
    assert stored.frames[0].layers[0].pixels[6][6] == RED
    settings = session.storage.load_settings()
    assert settings.frame_rate == 24
    assert settings.playback_mode == "pingpong"
