import json
import pytest
from sprite_editor.core.config import EditorSettings
from sprite_editor.core.errors import SpriteFormatError
from sprite_editor.core.sprite import Sprite
from sprite_editor.core.storage import SpriteStorage


def test_save_and_load_roundtrip(storage, sprite_factory):
    sprite = sprite_factory(frame_count=2)
    assert storage.save_sprite(sprite) is True
    assert (storage.directory / f"{sprite.id}.json").exists()

    loaded = storage.load_sprite(sprite.id)
    assert loaded.to_dict() == sprite.to_dict()


def test_load_missing_sprite(storage):
    assert storage.load_sprite("missing") is None
    assert storage.load_sprites() == []


def test_load_sprites_skips_nothing_on_corruption(storage, sprite_factory):
    sprite = sprite_factory()
    storage.save_sprite(sprite)
    (storage.directory / "broken.json").write_text("{not json", encoding="utf-8")

    sprites = storage.load_sprites()
    assert len(sprites) == 2
    names = {s.name for s in sprites}
    assert names == {"Test Sprite", "Corrupted Sprite"}


def test_load_repairs_malformed_frames(storage):
    storage.directory.mkdir(parents=True)
    data = {"id": "abc", "name": "Legacy", "width": 2, "height": 2,
            "frames": [{"layers": [{"pixels": [[1]]}]}]}
    (storage.directory / "abc.json").write_text(json.dumps(data), encoding="utf-8")

    sprite = storage.load_sprite("abc")
    assert sprite.name == "Legacy"
    assert sprite.frames[0].layers[0].pixels == [[[0, 0, 0, 0]] * 2] * 2


def test_numeric_timestamps_do_not_break_loading(storage, sprite_factory):
    first = sprite_factory(name="first")
    second = sprite_factory(name="second")
    storage.save_sprite(first)
    storage.save_sprite(second)

    path = storage.directory / f"{second.id}.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    data["createdAt"] = 1700000000000
    data["modifiedAt"] = None
    path.write_text(json.dumps(data), encoding="utf-8")

    sprites = storage.load_sprites()
    assert {s.name for s in sprites} == {"first", "second"}
    loaded = next(s for s in sprites if s.name == "second")
    assert loaded.created_at == "2023-11-14T22:13:20+00:00"
    assert isinstance(loaded.modified_at, str)


def test_save_failure_returns_false(tmp_path, sprite_factory):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    storage = SpriteStorage(blocker, tmp_path / "settings.json")
    assert storage.save_sprite(sprite_factory()) is False


def test_delete_and_clear(storage, sprite_factory):
    a, b = sprite_factory(name="a"), sprite_factory(name="b")
    storage.save_sprite(a)
    storage.save_sprite(b)
    assert storage.delete_sprite(a.id) is True
    assert storage.delete_sprite(a.id) is False
    assert storage.clear() == 1
    assert storage.load_sprites() == []


def test_bundle_export_import(storage, sprite_factory, tmp_path):
    sprites = [sprite_factory(name="one"), sprite_factory(frame_count=3, name="two")]
    path = storage.export_sprites(sprites, tmp_path / "bundle.json")

    with open(path, encoding="utf-8") as f:
        bundle = json.load(f)
    assert bundle["version"] == "2.0"
    assert "createdAt" in bundle
    assert len(bundle["sprites"]) == 2

    imported = storage.import_sprites(path)
    assert [s.name for s in imported] == ["one", "two"]
    assert len(imported[1].frames) == 3


def test_import_rejects_bundle_without_sprites(storage, tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"version": "2.0"}), encoding="utf-8")
    with pytest.raises(SpriteFormatError):
        storage.import_sprites(path)

    path.write_text("nonsense", encoding="utf-8")
    with pytest.raises(SpriteFormatError):
        storage.import_sprites(path)


def test_parse_bundle_skips_unreadable_entries(sprite_factory):
    good = sprite_factory().to_dict()
    sprites = SpriteStorage.parse_bundle([good, "junk", {"name": "no size"}])
    assert len(sprites) == 1


def test_settings_roundtrip(storage):
    settings = EditorSettings(frame_rate=24, playback_mode="pingpong", show_grid=True)
    assert storage.save_settings(settings) is True
    loaded = storage.load_settings()
    assert loaded.frame_rate == 24
    assert loaded.playback_mode == "pingpong"
    assert loaded.show_grid is True


def test_storage_info(storage, sprite_factory):
    storage.save_sprite(sprite_factory())
    info = storage.get_storage_info()
    assert info["sprite_count"] == 1
    assert info["total_bytes"] > 0
