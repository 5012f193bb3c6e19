# --- mapgen_lib/rendering/patterns.py ---
"""
Tiling floor patterns and the coordinate hash used for per-pixel jitter.

Every function here is pure: it depends only on pixel coordinates, the tile
period and a seed, so output is reproducible and can be evaluated in any order.
Pattern functions return the weight (0..1) of the alternate floor colour.
"""
from typing import Callable, Dict

import numpy as np

_MASK32 = 0xFFFFFFFF


def hash2d(x, y, seed: int = 0) -> np.ndarray:
    """
    Integer hash of pixel coordinates to uint32.

    Computed in int64 with explicit 32-bit masking so that no intermediate
    product can overflow.
    """
    x = np.asarray(x, dtype=np.int64) & 0xFFFF
    y = np.asarray(y, dtype=np.int64) & 0xFFFF
    h = (x * 374761393 + y * 668265263 + (seed & 0xFFFF) * 2246822519) & _MASK32
    h = ((h ^ (h >> 13)) * 1274126177) & _MASK32
    h = ((h ^ (h >> 16)) * 668265261) & _MASK32
    h = h ^ (h >> 15)
    return h.astype(np.uint32)


def jitter(x, y, amplitude: int, seed: int = 0) -> np.ndarray:
    """Signed per-pixel offset in [-amplitude, amplitude]."""
    if amplitude <= 0:
        return np.zeros(np.broadcast(np.asarray(x), np.asarray(y)).shape, dtype=np.float32)
    h = hash2d(x, y, seed).astype(np.int64)
    return (h % (2 * amplitude + 1) - amplitude).astype(np.float32)


def checkerboard(x, y, period: int) -> np.ndarray:
    return (((x // period) + (y // period)) % 2).astype(np.float32)


def grid_lines(x, y, period: int) -> np.ndarray:
    lx, ly = x % period, y % period
    return ((lx == 0) | (ly == 0)).astype(np.float32)


def grating(x, y, period: int) -> np.ndarray:
    """Horizontal bars, with a darker seam every full period."""
    ly = y % period
    slat = max(2, period // 4)
    bars = ((ly % slat) == 0).astype(np.float32) * 0.7
    seam = (ly == 0).astype(np.float32) * 0.3
    return bars + seam + np.zeros_like(x, dtype=np.float32)


def diamond_lattice(x, y, period: int) -> np.ndarray:
    half = period / 2.0
    lx, ly = x % period, y % period
    d = np.abs(lx - half) + np.abs(ly - half)
    return (np.abs(d - half) < 1.0).astype(np.float32)


def staggered_hex(x, y, period: int) -> np.ndarray:
    """Offset-row cells: every other row of cells is shifted by half a period."""
    row = y // period
    sx = x + (row % 2) * (period // 2)
    lx, ly = sx % period, y % period
    edge = (lx == 0) | (ly == 0)
    # Chamfer the cell corners so the outline reads as a hexagon.
    corner = np.minimum(lx, period - lx) + np.minimum(ly, period - ly) < period // 4
    return (edge | corner).astype(np.float32)


def riveted_plating(x, y, period: int) -> np.ndarray:
    lx, ly = x % period, y % period
    seam = ((lx == 0) | (ly == 0)).astype(np.float32) * 0.6
    inset = min(3, period // 4)
    near_x = (lx == inset) | (lx == period - inset)
    near_y = (ly == inset) | (ly == period - inset)
    rivet = (near_x & near_y).astype(np.float32)
    return np.maximum(seam, rivet)


PATTERN_FUNCTIONS: Dict[str, Callable] = {
    "checkerboard": checkerboard,
    "grid_lines": grid_lines,
    "grating": grating,
    "diamond_lattice": diamond_lattice,
    "staggered_hex": staggered_hex,
    "riveted_plating": riveted_plating,
}


def pattern_weight(kind: str, x, y, period: int) -> np.ndarray:
    try:
        fn = PATTERN_FUNCTIONS[kind]
    except KeyError:
        raise ValueError(f"Unknown floor pattern '{kind}'") from None
    return fn(np.asarray(x), np.asarray(y), period)
