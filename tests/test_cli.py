import configparser
import logging
import os

import numpy as np
import pytest
from PIL import Image

import mapgen
from mapgen_lib.schema import GeometryModel, NamedRect, Rect, save_json


@pytest.fixture(autouse=True)
def reset_loggers():
    yield
    root = logging.getLogger("mapgen")
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    root.setLevel(logging.NOTSET)


@pytest.fixture
def geometry_file(tmp_path):
    geometry = GeometryModel(
        width=48,
        height=32,
        rooms=(NamedRect(4, 4, 16, 16, "Admin"),),
        corridors=(Rect(20, 8, 20, 8),),
    )
    path = tmp_path / "layout.json"
    save_json(geometry, str(path))
    return str(path)


def test_generate_from_geometry_file(geometry_file, tmp_path):
    out = tmp_path / "public"
    assert mapgen.main(["-o", str(out), "--geometry", geometry_file, "-v"]) == 0
    for name in ("collision-mask.png", "space-overlay.png", "map-background.png"):
        assert (out / name).exists()
    with Image.open(out / "collision-mask.png") as img:
        assert img.size == (12, 8)


def test_debug_layers_flag(geometry_file, tmp_path):
    out = tmp_path / "public"
    assert mapgen.main(["-o", str(out), "--geometry", geometry_file, "--debug-layers"]) == 0
    assert (out / "debug" / "distance-field.png").exists()


def test_missing_geometry_file(tmp_path):
    assert mapgen.main(["-o", str(tmp_path), "--geometry", str(tmp_path / "none.json")]) == 1


def test_bad_config_exits_nonzero(geometry_file, tmp_path):
    cfg = tmp_path / "bad.cfg"
    cfg.write_text("[Walls]\nthickness = thick\n")
    args = ["-o", str(tmp_path), "--geometry", geometry_file, "--config", str(cfg)]
    assert mapgen.main(args) == 1


def test_write_failure_is_critical(geometry_file, tmp_path, mocker, caplog):
    mocker.patch("mapgen.MapGenerator.run", side_effect=OSError("read-only file system"))
    assert mapgen.main(["-o", str(tmp_path), "--geometry", geometry_file]) == 1
    assert "Could not write outputs" in caplog.text


def test_strategy_override_reaches_generator(geometry_file, tmp_path, mocker):
    generator = mocker.patch("mapgen.MapGenerator")
    args = ["-o", str(tmp_path), "--geometry", geometry_file, "--strategy", "analysis"]
    assert mapgen.main(args) == 0
    config = generator.call_args.args[0]
    assert config.strategy == "analysis"
    run_kwargs = generator.return_value.run.call_args.kwargs
    assert run_kwargs["base_map"] is None
    assert run_kwargs["fragments"] == ()


def test_default_layout_uses_base_map_under_assets(tmp_path, mocker):
    generator = mocker.patch("mapgen.MapGenerator")
    args = ["-o", str(tmp_path), "--assets-dir", str(tmp_path), "--include", "hull, doors"]
    assert mapgen.main(args) == 0
    run_kwargs = generator.return_value.run.call_args.kwargs
    assert run_kwargs["base_map"].startswith(str(tmp_path))
    assert run_kwargs["include"] == ["hull", "doors"]
    assert len(run_kwargs["fragments"]) > 0


def test_dump_config(tmp_path):
    target = tmp_path / "effective.cfg"
    assert mapgen.main(["--dump-config", str(target), "--background", "composite"]) == 0
    parser = configparser.ConfigParser()
    parser.read(str(target))
    assert parser["Output"]["background"] == "composite"
    assert parser["Canvas"]["mask_scale"] == "4"


def test_analyze_sprites(tmp_path, caplog):
    sheet = np.zeros((120, 120, 4), dtype=np.uint8)
    sheet[10:90, 10:60] = (255, 255, 255, 255)
    path = tmp_path / "sheet.png"
    Image.fromarray(sheet).save(str(path))
    assert mapgen.main(["--analyze-sprites", str(path), "-v"]) == 0
    assert "x=10, y=10, w=50, h=80" in caplog.text
    assert mapgen.main(["--analyze-sprites", os.path.join(str(tmp_path), "none.png")]) == 1


def test_extract_frames_writes_player_sprites(tmp_path):
    sheet = np.zeros((980, 160, 4), dtype=np.uint8)
    sheet[0:204, 2:154] = (200, 30, 30, 255)
    sheet[499:598, 13:105] = (30, 200, 30, 255)
    path = tmp_path / "crewmate.png"
    Image.fromarray(sheet).save(str(path))
    out = tmp_path / "public"

    assert mapgen.main(["--extract-frames", str(path), "-o", str(out)]) == 0
    sizes = {"idle": (152, 204), "walk1": (92, 99), "walk2": (84, 93), "walk3": (80, 105)}
    for name, size in sizes.items():
        with Image.open(out / "sprites" / f"{name}.png") as img:
            assert img.size == size
    with Image.open(out / "sprites" / "idle.png") as img:
        assert img.convert("RGBA").getpixel((0, 0)) == (200, 30, 30, 255)
    with Image.open(out / "sprites" / "walk1.png") as img:
        assert img.convert("RGBA").getpixel((91, 98)) == (30, 200, 30, 255)


def test_extract_frames_missing_sheet(tmp_path):
    missing = os.path.join(str(tmp_path), "none.png")
    assert mapgen.main(["--extract-frames", missing, "-o", str(tmp_path)]) == 1
    assert not (tmp_path / "sprites").exists()
