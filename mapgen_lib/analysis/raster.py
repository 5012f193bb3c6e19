# --- mapgen_lib/analysis/raster.py ---
import logging
import math
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from mapgen_lib.constants import CORRIDOR, NON_WALKABLE
from mapgen_lib.schema import CoordinateSpace, GeometryModel, Rect, mask_size

log = logging.getLogger("mapgen.raster")


@dataclass
class WalkabilityGrid:
    """A walkable bitmap and its parallel room-index map in one coordinate space."""

    walkable: np.ndarray  # bool, (h, w)
    room_index: np.ndarray  # int32, (h, w)
    space: CoordinateSpace
    scale: int

    @property
    def shape(self) -> Tuple[int, int]:
        return self.walkable.shape

    @property
    def walkable_count(self) -> int:
        return int(np.count_nonzero(self.walkable))

    def is_walkable(self, x: int, y: int) -> bool:
        """Point query in this grid's own coordinates; outside the grid is blocked."""
        h, w = self.walkable.shape
        if not (0 <= x < w and 0 <= y < h):
            return False
        return bool(self.walkable[y, x])

    def upsample(self, width: int, height: int) -> "WalkabilityGrid":
        """
        Expands a MASK-space grid to MAP space by repeating each cell scale x scale
        times, cropped to the canvas. Every MAP pixel inherits exactly the value of
        the MASK cell it maps to, so the two grids never disagree.
        """
        if self.space == CoordinateSpace.MAP:
            return self
        s = self.scale
        walkable = np.repeat(np.repeat(self.walkable, s, axis=0), s, axis=1)
        room_index = np.repeat(np.repeat(self.room_index, s, axis=0), s, axis=1)
        log.debug("Upsampled %s grid x%d to %dx%d.", self.space.value, s, width, height)
        return WalkabilityGrid(
            walkable=walkable[:height, :width].copy(),
            room_index=room_index[:height, :width].copy(),
            space=CoordinateSpace.MAP,
            scale=1,
        )


def rect_footprint(rect: Rect, scale: int, grid_w: int, grid_h: int) -> Tuple[int, int, int, int]:
    """Covered cells of a rectangle as (sx, sy, ex, ey), end-exclusive and clamped."""
    sx = max(0, math.floor(rect.x / scale))
    sy = max(0, math.floor(rect.y / scale))
    ex = min(grid_w, math.ceil((rect.x + rect.w) / scale))
    ey = min(grid_h, math.ceil((rect.y + rect.h) / scale))
    return sx, sy, ex, ey


class WalkabilityRasterizer:
    """Turns the geometry model into a dense walkable bitmap and room-index map."""

    def __init__(self, scale: int = 1):
        if scale < 1:
            raise ValueError(f"Mask scale must be a positive integer, got {scale}")
        self.scale = scale

    def _mark(self, grid: WalkabilityGrid, rects: Iterable[Rect], index_for) -> int:
        grid_h, grid_w = grid.shape
        marked = 0
        for i, rect in enumerate(rects):
            sx, sy, ex, ey = rect_footprint(rect, self.scale, grid_w, grid_h)
            if ex <= sx or ey <= sy:
                log.debug("Rect %s covers no cells, skipping.", rect)
                continue
            grid.walkable[sy:ey, sx:ex] = True
            window = grid.room_index[sy:ey, sx:ex]
            window[window == NON_WALKABLE] = index_for(i)
            marked += 1
        return marked

    def rasterize(self, geometry: GeometryModel) -> WalkabilityGrid:
        grid_w, grid_h = mask_size(geometry.width, geometry.height, self.scale)
        space = CoordinateSpace.MAP if self.scale == 1 else CoordinateSpace.MASK
        log.info(
            "Rasterizing %d room and %d corridor rects into %dx%d %s grid (1/%d).",
            len(geometry.rooms),
            len(geometry.corridors),
            grid_w,
            grid_h,
            space.value,
            self.scale,
        )
        grid = WalkabilityGrid(
            walkable=np.zeros((grid_h, grid_w), dtype=bool),
            room_index=np.full((grid_h, grid_w), NON_WALKABLE, dtype=np.int32),
            space=space,
            scale=self.scale,
        )
        # Rooms first so they keep ownership wherever a corridor overlaps them.
        rooms = self._mark(grid, geometry.rooms, lambda i: i)
        corridors = self._mark(grid, geometry.corridors, lambda i: CORRIDOR)
        total = grid.walkable.size
        log.info(
            "Walkable: %d / %d cells (%.1f%%) from %d rooms, %d corridors.",
            grid.walkable_count,
            total,
            100.0 * grid.walkable_count / total if total else 0.0,
            rooms,
            corridors,
        )
        return grid


def rasterize(geometry: GeometryModel, scale: int = 1) -> WalkabilityGrid:
    """Convenience wrapper around WalkabilityRasterizer."""
    return WalkabilityRasterizer(scale).rasterize(geometry)


def union_mask(grid: WalkabilityGrid, extra: np.ndarray) -> WalkabilityGrid:
    """
    ORs an auxiliary bitmap into a grid. Cells that only the auxiliary bitmap marks
    are tagged as corridor; existing cells keep their owner.
    """
    if extra.shape != grid.walkable.shape:
        raise ValueError(
            f"Cannot union a {extra.shape} bitmap into a {grid.walkable.shape} grid"
        )
    extra = extra.astype(bool)
    added = extra & ~grid.walkable
    room_index = grid.room_index.copy()
    room_index[added] = CORRIDOR
    log.info("Union added %d cells from auxiliary mask.", int(np.count_nonzero(added)))
    return WalkabilityGrid(
        walkable=grid.walkable | extra,
        room_index=room_index,
        space=grid.space,
        scale=grid.scale,
    )
