# --- mapgen_lib/rendering/texture.py ---
import logging
from dataclasses import dataclass
from typing import Dict, List

import cv2
import noise
import numpy as np

from mapgen_lib.analysis.raster import WalkabilityGrid
from mapgen_lib.constants import CORRIDOR
from mapgen_lib.schema import CoordinateSpace, GeometryModel
from mapgen_lib.styles import RoomStyle, StyleTable
from .patterns import hash2d, jitter, pattern_weight

log = logging.getLogger("mapgen.texture")

NEBULA_LATTICE = 32


@dataclass(frozen=True)
class WallParams:
    thickness: int = 12
    margin: int = 6
    fade: int = 3
    glow_radius: int = 10
    trim_strength: float = 0.45
    occlusion: float = 0.18

    @property
    def cap(self) -> int:
        return self.thickness + self.margin


def _lerp(a: np.ndarray, b: np.ndarray, t: np.ndarray) -> np.ndarray:
    return a + (b - a) * t


def _rgb(color) -> np.ndarray:
    return np.asarray(color, dtype=np.float32)


class TextureSynthesizer:
    """
    Paints the procedural background from the walkable grid, the distance field
    and the style table. Output depends only on its inputs and the seed.
    """

    def __init__(
        self,
        styles: StyleTable,
        geometry: GeometryModel,
        params: WallParams = WallParams(),
        seed: int = 1337,
    ):
        self.styles = styles
        self.geometry = geometry
        self.params = params
        self.seed = seed

    def _style_groups(self, grid: WalkabilityGrid) -> Dict[RoomStyle, np.ndarray]:
        """Walkable pixels grouped by the style they are painted with."""
        names = [r.name for r in self.geometry.rooms]
        groups: Dict[RoomStyle, np.ndarray] = {}
        present = np.unique(grid.room_index[grid.walkable])
        for idx in present:
            if idx == CORRIDOR or not (0 <= idx < len(names)):
                style = self.styles.corridor
            else:
                style = self.styles.for_room(names[idx])
            sel = grid.walkable & (grid.room_index == idx)
            if style in groups:
                groups[style] |= sel
            else:
                groups[style] = sel
        return groups

    def render_floor(self, grid: WalkabilityGrid, xx, yy, out, trim_out):
        for style, sel in self._style_groups(grid).items():
            x, y = xx[sel], yy[sel]
            weight = pattern_weight(style.pattern, x, y, style.period)[:, None]
            color = _lerp(_rgb(style.floor), _rgb(style.floor_alt), weight)
            color += jitter(x, y, 3, self.seed)[:, None]
            out[sel] = color
            trim_out[sel] = _rgb(style.trim)
            log.debug(
                "Floor '%s' (period %d): %d px.", style.pattern, style.period, x.size
            )

    def render_walls(self, dist, xx, yy, floor, trim, out):
        """Three shading tiers across the band, trim towards the floor, faded seam."""
        p = self.params
        walls = self.styles.walls
        band = (dist >= 1) & (dist <= p.thickness)
        if not band.any():
            return
        d = dist[band].astype(np.float32)
        f = ((d - 1.0) / max(p.thickness - 1, 1))[:, None]

        outer, mid, inner = _rgb(walls.outer), _rgb(walls.mid), _rgb(walls.inner)
        color = np.where(
            f < 0.5,
            _lerp(outer, mid, np.clip(f * 2.0, 0.0, 1.0)),
            _lerp(mid, inner, np.clip(f * 2.0 - 1.0, 0.0, 1.0)),
        )
        color = _lerp(color, trim[band], f * p.trim_strength)

        fade = np.clip((d - (p.thickness - p.fade)) / (p.fade + 1.0), 0.0, 1.0)[:, None]
        color = _lerp(color, floor[band], fade)
        color += jitter(xx[band], yy[band], 2, self.seed + 7)[:, None]
        out[band] = color

        # Ambient occlusion just inside the band edge.
        near = (dist > p.thickness) & (dist < p.cap)
        if near.any():
            k = (p.cap - dist[near]).astype(np.float32) / max(p.margin, 1)
            out[near] *= (1.0 - p.occlusion * k)[:, None]
        log.debug("Wall band: %d px, occlusion ring: %d px.", d.size, int(near.sum()))

    def _nebula(self, h: int, w: int) -> np.ndarray:
        """Low-frequency Perlin field in 0..1, sampled coarsely and resized."""
        gh, gw = h // NEBULA_LATTICE + 2, w // NEBULA_LATTICE + 2
        base = self.seed % 256
        lattice = np.empty((gh, gw), dtype=np.float32)
        for j in range(gh):
            for i in range(gw):
                lattice[j, i] = noise.pnoise2(i * 0.15, j * 0.15, octaves=3, base=base)
        field = cv2.resize(lattice, (w, h), interpolation=cv2.INTER_LINEAR)
        return np.clip((field + 1.0) * 0.5, 0.0, 1.0)

    def render_space(self, walkable, glow, xx, yy, out):
        """Deep-space gradient, nebula, starfield and hull glow on non-walkable pixels."""
        space = self.styles.space
        h, w = walkable.shape
        empty = ~walkable
        if not empty.any():
            return

        t = ((xx + yy).astype(np.float32) / max(w + h - 2, 1))[:, :, None]
        sky = _lerp(_rgb(space.top), _rgb(space.bottom), t)
        neb = np.clip(self._nebula(h, w) * 1.6 - 0.5, 0.0, 1.0)[:, :, None] * 0.35
        sky = _lerp(sky, _rgb(space.nebula), neb)

        stars = hash2d(xx, yy, self.seed + 101) % 10000
        sky[stars < 6] = _rgb(space.star_bright)
        sky[(stars >= 6) & (stars < 30)] = _rgb(space.star_dim)

        r = self.params.glow_radius
        if r > 0:
            halo = empty & (glow >= 1) & (glow <= r)
            level = ((r + 1 - glow[halo]).astype(np.float32) / r)[:, None]
            sky[halo] += _rgb(space.hull_glow) * level * 0.6
            log.debug("Hull glow: %d px within %d px of the hull.", int(halo.sum()), r)

        out[empty] = sky[empty]

    def render(self, grid: WalkabilityGrid, dist: np.ndarray, glow: np.ndarray) -> np.ndarray:
        """
        Renders the background as a float32 RGB canvas (values nominally 0..255).

        Args:
            grid: MAP-space walkable grid.
            dist: Distance field of grid.walkable, capped at params.cap.
            glow: Glow field from glow_field(walkable, params.glow_radius).
        """
        if grid.space != CoordinateSpace.MAP:
            raise ValueError("Texture synthesis needs a MAP-space grid")
        h, w = grid.shape
        log.info("Synthesizing %dx%d procedural background...", w, h)
        yy, xx = np.indices((h, w), dtype=np.int32)
        canvas = np.zeros((h, w, 3), dtype=np.float32)
        trim = np.zeros((h, w, 3), dtype=np.float32)

        self.render_floor(grid, xx, yy, canvas, trim)
        floor = canvas.copy()
        self.render_walls(dist, xx, yy, floor, trim, canvas)
        self.render_space(grid.walkable, glow, xx, yy, canvas)
        return canvas


def to_rgba(canvas: np.ndarray) -> np.ndarray:
    """Float RGB canvas to opaque uint8 RGBA."""
    h, w = canvas.shape[:2]
    out = np.empty((h, w, 4), dtype=np.uint8)
    out[:, :, :3] = np.clip(np.rint(canvas[:, :, :3]), 0, 255).astype(np.uint8)
    out[:, :, 3] = 255
    return out


def to_float(rgba: np.ndarray) -> np.ndarray:
    """uint8 RGBA canvas back to float RGB for additive passes."""
    return rgba[:, :, :3].astype(np.float32)


def style_legend(styles: StyleTable, names: List[str]) -> str:
    """A plain-text table of room styles, for verbose runs."""
    lines = [f"{'Room':<16} {'Pattern':<16} {'Period':>6}  Floor"]
    for name in names:
        s = styles.for_room(name)
        lines.append(f"{name:<16} {s.pattern:<16} {s.period:>6}  {s.floor}")
    c = styles.corridor
    lines.append(f"{'(corridor)':<16} {c.pattern:<16} {c.period:>6}  {c.floor}")
    return "\n".join(lines)
