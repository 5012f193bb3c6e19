# --- mapgen_lib/analysis/distance.py ---
import logging

import numpy as np

log = logging.getLogger("mapgen.distance")


def _sweep_row(row: np.ndarray, idx: np.ndarray) -> np.ndarray:
    """
    In-row left-to-right relaxation row[x] = min(row[x], row[x-1] + 1).

    Unrolled, row[x] = min_k<=x (row[k] + x - k), which is a running minimum of
    row - idx shifted back by idx.
    """
    return np.minimum.accumulate(row - idx) + idx


def distance_field(walkable: np.ndarray, cap: int) -> np.ndarray:
    """
    Capped Chebyshev distance from every pixel to the nearest non-walkable pixel.

    Two-pass chamfer transform with unit weights on the 8-neighbourhood. The
    forward pass (top-left to bottom-right) relaxes against W, NW, N and NE; the
    backward pass (bottom-right to top-left) against E, SE, S and SW. Pixels
    outside the bitmap are not treated as walls.

    Args:
        walkable: Boolean bitmap, True where walkable.
        cap: Value assigned to pixels at least `cap` away from any wall.

    Returns:
        An int32 array; 0 on non-walkable pixels, 1 on walkable pixels touching a
        wall, and so on up to `cap`.
    """
    if cap < 0:
        raise ValueError(f"Distance cap must be non-negative, got {cap}")
    walkable = np.asarray(walkable, dtype=bool)
    h, w = walkable.shape
    dist = np.where(walkable, cap, 0).astype(np.int32)
    if dist.size == 0:
        return dist
    idx = np.arange(w, dtype=np.int32)

    log.debug("Distance field forward pass over %dx%d (cap %d).", w, h, cap)
    for y in range(h):
        row = dist[y]
        if y > 0:
            prev = dist[y - 1] + 1
            np.minimum(row, prev, out=row)
            np.minimum(row[1:], prev[:-1], out=row[1:])  # NW
            np.minimum(row[:-1], prev[1:], out=row[:-1])  # NE
        dist[y] = _sweep_row(row, idx)

    log.debug("Distance field backward pass.")
    for y in range(h - 1, -1, -1):
        row = dist[y]
        if y < h - 1:
            nxt = dist[y + 1] + 1
            np.minimum(row, nxt, out=row)
            np.minimum(row[:-1], nxt[1:], out=row[:-1])  # SE
            np.minimum(row[1:], nxt[:-1], out=row[1:])  # SW
        dist[y] = _sweep_row(row[::-1], idx)[::-1]

    return dist


def glow_field(walkable: np.ndarray, radius: int) -> np.ndarray:
    """
    Distance from each non-walkable pixel to the nearest walkable one.

    Values are exact up to radius; everything farther away reads radius + 1,
    so "glow <= radius" selects exactly the halo.
    """
    if radius < 0:
        raise ValueError(f"glow radius must be >= 0, got {radius}")
    return distance_field(~np.asarray(walkable, dtype=bool), radius + 1)


def wall_band(dist: np.ndarray, thickness: int) -> np.ndarray:
    """Walkable pixels that are rendered as wall."""
    return (dist >= 1) & (dist <= thickness)
