# --- mapgen_lib/rendering/lighting.py ---
import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from mapgen_lib.schema import GeometryModel, Rect

log = logging.getLogger("mapgen.light")

ROOM_RADIUS_FACTOR = 2.0


@dataclass(frozen=True)
class Light:
    """A point light in MAP space."""

    x: float
    y: float
    radius: float
    intensity: float


def _centerline_positions(start: float, length: float, spacing: float) -> List[float]:
    """Evenly spaced stops at a fixed interval, centred on the segment."""
    n = max(1, int(length // spacing))
    first = start + (length - (n - 1) * spacing) / 2.0
    return [first + k * spacing for k in range(n)]


def corridor_lights(rect: Rect, spacing: float, radius: float, intensity: float) -> List[Light]:
    if rect.w <= 0 or rect.h <= 0:
        return []
    if rect.w >= rect.h:
        cy = rect.y + rect.h / 2.0
        xs = _centerline_positions(rect.x, rect.w, spacing)
        return [Light(x, cy, radius, intensity) for x in xs]
    cx = rect.x + rect.w / 2.0
    ys = _centerline_positions(rect.y, rect.h, spacing)
    return [Light(cx, y, radius, intensity) for y in ys]


def place_lights(
    geometry: GeometryModel, spacing: float, radius: float, intensity: float
) -> List[Light]:
    """
    Lights along every corridor centreline plus one at each room's area-weighted
    centroid. A room built from overlapping rects is measured as their union, so
    overlaps are not counted twice.
    """
    if spacing <= 0:
        raise ValueError(f"Light spacing must be positive, got {spacing}")
    lights: List[Light] = []
    for rect in geometry.corridors:
        lights.extend(corridor_lights(rect, spacing, radius, intensity))
    n_corridor = len(lights)

    for name in geometry.room_names():
        shape = geometry.room_shape(name)
        if shape.is_empty:
            continue
        c = shape.centroid
        lights.append(Light(c.x, c.y, radius * ROOM_RADIUS_FACTOR, intensity))
        log.debug("Room light '%s' at (%.1f, %.1f).", name, c.x, c.y)

    log.info("Placed %d corridor and %d room lights.", n_corridor, len(lights) - n_corridor)
    return lights


def apply_lights(
    canvas: np.ndarray,
    walkable: np.ndarray,
    lights: Sequence[Light],
    color: Sequence[int],
) -> np.ndarray:
    """
    Adds each light's radial falloff to walkable pixels of a float RGB canvas,
    in place. Falloff is quadratic from full intensity at the centre to zero at
    the radius.
    """
    h, w = walkable.shape
    tint = np.asarray(color, dtype=np.float32)
    for light in lights:
        if light.radius <= 0 or light.intensity <= 0:
            continue
        x0 = max(0, int(np.floor(light.x - light.radius)))
        y0 = max(0, int(np.floor(light.y - light.radius)))
        x1 = min(w, int(np.ceil(light.x + light.radius)) + 1)
        y1 = min(h, int(np.ceil(light.y + light.radius)) + 1)
        if x1 <= x0 or y1 <= y0:
            continue
        yy, xx = np.mgrid[y0:y1, x0:x1]
        r = np.hypot(xx + 0.5 - light.x, yy + 0.5 - light.y)
        falloff = np.clip(1.0 - r / light.radius, 0.0, 1.0) ** 2 * light.intensity
        falloff *= walkable[y0:y1, x0:x1]
        canvas[y0:y1, x0:x1, :3] += falloff[:, :, None] * tint
    return canvas
