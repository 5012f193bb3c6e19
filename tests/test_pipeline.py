import os

import numpy as np
import pytest
from PIL import Image

from mapgen_lib.config import PipelineConfig
from mapgen_lib.constants import MAP_H, MAP_W
from mapgen_lib.layouts import SKELD
from mapgen_lib.pipeline import MapGenerator
from mapgen_lib.rendering.compositor import Fragment, Stage
from mapgen_lib.schema import CoordinateSpace, GeometryModel, NamedRect, Rect


@pytest.fixture
def geometry():
    return GeometryModel(
        width=64,
        height=48,
        rooms=(NamedRect(4, 4, 20, 20, "Reactor"),),
        corridors=(Rect(24, 8, 16, 8),),
    )


def _read(path):
    with Image.open(path) as img:
        return np.array(img)


def test_rects_run_writes_all_outputs(geometry, tmp_path):
    result = MapGenerator(PipelineConfig(), geometry).run(str(tmp_path))
    assert result.strategy == "rects"
    assert set(result.outputs) == {"mask", "overlay", "background"}

    mask = _read(result.outputs["mask"])
    overlay = _read(result.outputs["overlay"])
    background = _read(result.outputs["background"])
    assert mask.shape == (12, 16, 4)
    assert overlay.shape == (12, 16, 4)
    assert background.shape == (48, 64, 4)
    assert np.array_equal(mask[:, :, 3] == 255, result.mask_grid.walkable)
    assert np.array_equal(overlay[:, :, 3] == 0, result.mask_grid.walkable)
    assert (background[:, :, 3] == 255).all()


def test_walls_agree_with_mask(geometry, tmp_path):
    result = MapGenerator(PipelineConfig(), geometry).run(str(tmp_path))
    assert result.map_grid.space == CoordinateSpace.MAP
    ys, xs = np.nonzero(result.distance > 0)
    assert result.mask_grid.walkable[ys // 4, xs // 4].all()
    ys, xs = np.nonzero(result.distance == 0)
    assert not result.mask_grid.walkable[ys // 4, xs // 4].any()


def test_output_is_reproducible(geometry, tmp_path):
    a = MapGenerator(PipelineConfig(), geometry).run(str(tmp_path / "a"))
    b = MapGenerator(PipelineConfig(), geometry).run(str(tmp_path / "b"))
    assert np.array_equal(a.background, b.background)
    for name in ("mask", "overlay", "background"):
        with open(a.outputs[name], "rb") as fa, open(b.outputs[name], "rb") as fb:
            assert fa.read() == fb.read()


def test_overlay_at_map_resolution(geometry, tmp_path):
    cfg = PipelineConfig(overlay_resolution="map", overlay_alpha=128)
    result = MapGenerator(cfg, geometry).run(str(tmp_path))
    overlay = _read(result.outputs["overlay"])
    assert overlay.shape == (48, 64, 4)
    assert set(np.unique(overlay[:, :, 3])) == {0, 128}


def test_analysis_strategy_unions_detected_content(geometry, tmp_path):
    atlas = np.zeros((48, 64, 4), dtype=np.uint8)
    atlas[24:44, 40:60] = (60, 60, 70, 255)
    base_map = tmp_path / "atlas.png"
    Image.fromarray(atlas).save(str(base_map))

    cfg = PipelineConfig(strategy="analysis", min_component_size=10)
    generator = MapGenerator(cfg, geometry)
    result = generator.run(str(tmp_path / "out"), base_map=str(base_map), debug_layers=True)

    assert result.strategy == "analysis"
    rects_only = generator.rasterizer.rasterize(geometry)
    assert result.mask_grid.walkable[8, 12]
    assert not rects_only.walkable[8, 12]
    assert not (rects_only.walkable & ~result.mask_grid.walkable).any()
    for layer in ("room_index", "distance", "glow", "content_raw", "content_refined"):
        assert os.path.exists(result.outputs[layer])


def test_analysis_falls_back_without_base_map(geometry, tmp_path, caplog):
    cfg = PipelineConfig(strategy="analysis")
    result = MapGenerator(cfg, geometry).run(str(tmp_path), base_map=str(tmp_path / "gone.png"))
    assert result.strategy == "rects"
    assert "falling back" in caplog.text


def test_unknown_strategy_raises(geometry):
    with pytest.raises(ValueError):
        MapGenerator(PipelineConfig(), geometry).build_mask("magic")


def test_composite_background(geometry, tmp_path):
    assets = tmp_path / "assets"
    assets.mkdir()
    Image.fromarray(np.full((48, 64, 4), (50, 50, 50, 255), np.uint8)).save(
        str(assets / "base.png")
    )
    fragments = (
        Fragment("base", "base.png", 0, 0, stage=Stage.BACKGROUND, chroma_key=False),
        Fragment("doors", "base.png", 0, 0, stage=Stage.DECALS, optional=True),
        Fragment("missing", "nope.png", 10, 10),
    )
    cfg = PipelineConfig(background="composite")
    result = MapGenerator(cfg, geometry).run(
        str(tmp_path / "out"), fragments=fragments, assets_dir=str(assets)
    )
    assert result.composite.placed == ["base"]
    assert result.composite.skipped == [("missing", "missing")]
    # Space keeps the fragment colour; lights only reach walkable pixels.
    assert tuple(result.background[0, 0]) == (50, 50, 50, 255)
    assert result.background[14, 14, 0] > 50


def test_skeld_sizes(tmp_path):
    result = MapGenerator(PipelineConfig(), SKELD).run(str(tmp_path))
    assert result.mask_grid.shape == (468, 512)
    assert result.background.shape == (MAP_H, MAP_W, 4)
    assert _read(result.outputs["mask"]).shape == (468, 512, 4)
