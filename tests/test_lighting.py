import numpy as np
import pytest

from mapgen_lib.layouts import SKELD
from mapgen_lib.rendering.lighting import (
    ROOM_RADIUS_FACTOR,
    Light,
    apply_lights,
    corridor_lights,
    place_lights,
)
from mapgen_lib.schema import GeometryModel, NamedRect, Rect


def test_corridor_lights_follow_the_long_axis():
    horizontal = corridor_lights(Rect(0, 0, 300, 40), 100, 50, 0.5)
    assert [light.x for light in horizontal] == [50.0, 150.0, 250.0]
    assert all(light.y == 20.0 for light in horizontal)

    vertical = corridor_lights(Rect(10, 0, 20, 50), 100, 50, 0.5)
    assert len(vertical) == 1
    assert (vertical[0].x, vertical[0].y) == (20.0, 25.0)


def test_zero_size_corridor_has_no_lights():
    assert corridor_lights(Rect(0, 0, 0, 100), 50, 10, 1.0) == []


def test_room_light_uses_union_centroid():
    geometry = GeometryModel(
        width=100,
        height=100,
        rooms=(NamedRect(0, 0, 20, 10, "L"), NamedRect(0, 0, 10, 20, "L")),
    )
    lights = place_lights(geometry, spacing=50, radius=10, intensity=0.5)
    assert len(lights) == 1
    light = lights[0]
    # Union of the two rects is an L of area 300; overlap counted once.
    expected = (200 * 10 + 200 * 5 - 100 * 5) / 300.0
    assert light.x == pytest.approx(expected)
    assert light.y == pytest.approx(expected)
    assert light.radius == 10 * ROOM_RADIUS_FACTOR


def test_every_skeld_room_gets_a_light():
    lights = place_lights(SKELD, spacing=120, radius=90, intensity=0.35)
    room_lights = [light for light in lights if light.radius == 90 * ROOM_RADIUS_FACTOR]
    assert len(room_lights) == len(SKELD.room_names())


def test_spacing_must_be_positive():
    with pytest.raises(ValueError):
        place_lights(SKELD, spacing=0, radius=10, intensity=1.0)


def test_apply_lights_only_touches_walkable_pixels():
    walkable = np.zeros((20, 20), dtype=bool)
    walkable[:, :10] = True
    canvas = np.zeros((20, 20, 3), dtype=np.float32)
    apply_lights(canvas, walkable, [Light(10.0, 10.0, 8.0, 1.0)], (100, 50, 0))
    assert (canvas[:, 10:] == 0).all()
    assert canvas[10, 9, 0] > canvas[10, 4, 0] > 0
    assert canvas[10, 9, 2] == 0
    assert canvas[0, 0].sum() == 0
