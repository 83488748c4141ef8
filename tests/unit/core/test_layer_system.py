from sprite_editor.core.layer_system import Frame, Layer
from sprite_editor.core.utils import create_empty_grid


def test_frame_empty_has_background_layer():
    frame = Frame.empty(3, 2)
    assert frame.name == "Frame 1"
    assert len(frame) == 1
    assert frame.layers[0].name == "Background"
    assert frame.layers[0].pixels == create_empty_grid(3, 2)


def test_layer_copy_is_independent(layer_factory):
    layer = layer_factory(2, 2, (1, 2, 3, 255))
    same_id = layer.copy()
    new_id = layer.copy(keep_id=False)
    same_id.pixels[0][0][0] = 99
    assert layer.pixels[0][0][0] == 1
    assert same_id.id == layer.id
    assert new_id.id != layer.id


def test_frame_copy_new_ids(layer_factory):
    frame = Frame(width=2, height=2, layers=[layer_factory(2, 2, (1, 2, 3, 255))])
    copy = frame.copy(keep_ids=False)
    assert copy.id != frame.id
    assert copy.layers[0].id != frame.layers[0].id
    assert copy.layers[0].pixels == frame.layers[0].pixels


def test_frame_dict_roundtrip(layer_factory):
    top = layer_factory(2, 2, (0, 0, 255, 128), name="Top", opacity=0.5)
    top.locked = True
    frame = Frame(width=2, height=2, layers=[layer_factory(2, 2, (255, 0, 0, 255)), top],
                  active_layer_index=1, name="Walk")
    data = frame.to_dict()
    assert data["activeLayerIndex"] == 1
    assert data["layers"][1]["blendMode"] == "normal"
    assert Frame.from_dict(data, 2, 2).to_dict() == data


def test_frame_from_garbage_never_raises():
    for data in (None, "x", {}, {"layers": "nope"}, {"layers": [1, 2, None]}):
        frame = Frame.from_dict(data, 2, 2)
        assert len(frame.layers) == 1
        assert frame.layers[0].name == "Background"
        assert frame.active_layer_index == 0


def test_layer_from_dict_repairs_attributes():
    layer = Layer.from_dict({"pixels": [[[1, 2, 3]]], "opacity": "high"}, 1, 1)
    assert layer.name == "Layer"
    assert layer.visible is True
    assert layer.opacity == 1.0
    assert layer.locked is False
    assert layer.blend_mode == "normal"
    assert layer.id
    assert layer.pixels == [[[0, 0, 0, 0]]]


def test_layer_from_dict_clamps_opacity():
    layer = Layer.from_dict({"pixels": create_empty_grid(1, 1), "opacity": 3, "visible": False}, 1, 1)
    assert layer.opacity == 1.0
    assert layer.visible is False


def test_frame_repair_fixes_pixels_and_index():
    frame = Frame(width=2, height=2, layers=[Layer(pixels=[[1, 2]])], active_layer_index=7)
    assert frame.repair() is True
    assert frame.layers[0].pixels == create_empty_grid(2, 2)
    assert frame.active_layer_index == 0


def test_frame_repair_no_layers():
    frame = Frame(width=2, height=1, layers=[])
    assert frame.repair() is True
    assert frame.layers[0].pixels == create_empty_grid(2, 1)


def test_frame_repair_valid_frame_unchanged():
    frame = Frame.empty(2, 2)
    assert frame.repair() is False


def test_get_layer_out_of_range():
    frame = Frame.empty(1, 1)
    assert frame.get_layer(0) is frame.layers[0]
    assert frame.get_layer(1) is None
    assert frame.get_layer(-1) is None
