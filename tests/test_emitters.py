import os

import numpy as np
import pytest
from PIL import Image

from mapgen_lib import emitters
from mapgen_lib.analysis.distance import distance_field
from mapgen_lib.analysis.raster import rasterize
from mapgen_lib.schema import GeometryModel, NamedRect, Rect


@pytest.fixture
def grid():
    geometry = GeometryModel(
        width=32, height=24, rooms=(NamedRect(4, 4, 12, 12, "A"),), corridors=(Rect(16, 8, 12, 4),)
    )
    return rasterize(geometry, scale=4)


def _read(path):
    with Image.open(path) as img:
        return img.mode, np.array(img)


def test_mask_alpha_contract(grid, tmp_path):
    path = emitters.write_mask(grid, str(tmp_path / "out" / "collision-mask.png"))
    mode, arr = _read(path)
    assert mode == "RGBA"
    assert arr.shape == (6, 8, 4)
    assert (arr[grid.walkable] == 255).all()
    assert (arr[~grid.walkable] == 0).all()
    assert set(np.unique(arr[:, :, 3])) == {0, 255}


def test_overlay_is_inverse_of_mask(grid, tmp_path):
    path = emitters.write_overlay(grid, str(tmp_path / "overlay.png"), (10, 10, 18), 200)
    _, arr = _read(path)
    assert (arr[grid.walkable] == 0).all()
    assert (arr[~grid.walkable] == (10, 10, 18, 200)).all()


def test_overlay_at_map_resolution(grid, tmp_path):
    path = emitters.write_overlay(grid, str(tmp_path / "overlay.png"), size=(30, 22))
    _, arr = _read(path)
    assert arr.shape == (22, 30, 4)
    for y in range(0, 22, 3):
        for x in range(0, 30, 3):
            expected = 0 if grid.walkable[y // 4, x // 4] else 255
            assert arr[y, x, 3] == expected


def test_background_requires_uint8_rgba(tmp_path):
    with pytest.raises(ValueError):
        emitters.write_background(np.zeros((4, 4, 3), np.uint8), str(tmp_path / "bg.png"))
    with pytest.raises(ValueError):
        emitters.write_background(np.zeros((4, 4, 4), np.float32), str(tmp_path / "bg.png"))
    canvas = np.full((4, 5, 4), 77, np.uint8)
    path = emitters.write_background(canvas, str(tmp_path / "bg.png"))
    assert np.array_equal(_read(path)[1], canvas)


def test_write_failure_propagates(grid, tmp_path, mocker):
    mocker.patch("mapgen_lib.emitters.Image.Image.save", side_effect=OSError("disk full"))
    with pytest.raises(OSError):
        emitters.write_mask(grid, str(tmp_path / "mask.png"))


def test_debug_layers(grid, tmp_path):
    full = grid.upsample(32, 24)
    dist = distance_field(full.walkable, 5)
    content = np.zeros(grid.shape, dtype=bool)
    written = emitters.write_debug_layers(
        str(tmp_path / "debug"),
        grid,
        dist=dist,
        dist_cap=5,
        raw_content=content,
        refined_content=content,
    )
    assert set(written) == {"room_index", "distance", "content_raw", "content_refined"}
    for path in written.values():
        assert os.path.exists(path)
    _, dist_img = _read(written["distance"])
    assert dist_img[0, 0, 0] == 0
    assert dist_img[:, :, 0].max() == 255
