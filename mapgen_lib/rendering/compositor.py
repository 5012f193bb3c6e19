# --- mapgen_lib/rendering/compositor.py ---
import logging
import os
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from mapgen_lib.schema import Rect

log = logging.getLogger("mapgen.composite")


class Stage(IntEnum):
    """Compositing layers, painted in ascending order."""

    BACKGROUND = 0
    WALLS = 1
    ROOMS = 2
    DECALS = 3
    EXTRAS = 4


@dataclass(frozen=True)
class KeyColor:
    """An artifact colour range; a pixel matches when every channel is in range."""

    name: str
    r: Tuple[int, int]
    g: Tuple[int, int]
    b: Tuple[int, int]

    def matches(self, rgb: np.ndarray) -> np.ndarray:
        r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
        return (
            (r >= self.r[0]) & (r <= self.r[1])
            & (g >= self.g[0]) & (g <= self.g[1])
            & (b >= self.b[0]) & (b <= self.b[1])
        )


# Sprite-sheet transparency keys, watermark colours and atlas border colours.
KEY_COLORS: Tuple[KeyColor, ...] = (
    KeyColor("magenta", (200, 255), (0, 80), (200, 255)),
    KeyColor("pink", (220, 255), (81, 170), (180, 255)),
    KeyColor("purple", (100, 199), (0, 60), (160, 255)),
    KeyColor("orange", (220, 255), (100, 180), (0, 60)),
    KeyColor("red", (200, 255), (0, 50), (0, 50)),
    KeyColor("cyan", (0, 60), (200, 255), (200, 255)),
    KeyColor("blue", (0, 60), (0, 90), (200, 255)),
)


@dataclass(frozen=True)
class Fragment:
    """
    One external texture placed on the canvas.

    Either `scale` or both `width` and `height` set the target size. `crop` is a
    rectangle in source-image pixels applied before anything else.
    """

    name: str
    file: str
    x: int
    y: int
    scale: float = 1.0
    width: Optional[int] = None
    height: Optional[int] = None
    crop: Optional[Rect] = None
    stage: Stage = Stage.ROOMS
    chroma_key: bool = True
    optional: bool = False


@dataclass
class CompositeReport:
    placed: List[str] = field(default_factory=list)
    skipped: List[Tuple[str, str]] = field(default_factory=list)


def crop(img: np.ndarray, rect: Rect) -> np.ndarray:
    """Crops to `rect`, clamped to the image. May return an empty array."""
    h, w = img.shape[:2]
    x0, y0 = max(0, rect.x), max(0, rect.y)
    x1, y1 = min(w, rect.x + rect.w), min(h, rect.y + rect.h)
    if x1 <= x0 or y1 <= y0:
        return img[0:0, 0:0].copy()
    return img[y0:y1, x0:x1].copy()


def chroma_key(img: np.ndarray, keys: Sequence[KeyColor] = KEY_COLORS) -> np.ndarray:
    """Returns a copy with the alpha of every artifact-coloured pixel zeroed."""
    out = img.copy()
    rgb = out[:, :, :3].astype(np.int16)
    hit = np.zeros(out.shape[:2], dtype=bool)
    for key in keys:
        hit |= key.matches(rgb)
    out[hit, 3] = 0
    log.debug("Chroma key cleared %d px.", int(hit.sum()))
    return out


def content_bounds(img: np.ndarray) -> Rect:
    """Bounding box of pixels with non-zero alpha; zero-size when there are none."""
    ys, xs = np.nonzero(img[:, :, 3] > 0)
    if xs.size == 0:
        return Rect(0, 0, 0, 0)
    x0, y0 = int(xs.min()), int(ys.min())
    return Rect(x0, y0, int(xs.max()) - x0 + 1, int(ys.max()) - y0 + 1)


def scale_bilinear(img: np.ndarray, dst_w: int, dst_h: int) -> np.ndarray:
    """
    Bilinear resample of an RGBA image. Destination pixel (x, y) samples source
    position (x * src_w / dst_w, y * src_h / dst_h), clamping the far neighbour
    at the last row/column.
    """
    src_h, src_w = img.shape[:2]
    if (dst_w, dst_h) == (src_w, src_h):
        return img.copy()
    sx = np.arange(dst_w, dtype=np.float64) * (src_w / dst_w)
    sy = np.arange(dst_h, dtype=np.float64) * (src_h / dst_h)
    x0 = np.floor(sx).astype(np.intp)
    y0 = np.floor(sy).astype(np.intp)
    x1 = np.minimum(x0 + 1, src_w - 1)
    y1 = np.minimum(y0 + 1, src_h - 1)
    fx = (sx - x0)[None, :, None]
    fy = (sy - y0)[:, None, None]

    src = img.astype(np.float32)
    v00 = src[y0][:, x0]
    v10 = src[y0][:, x1]
    v01 = src[y1][:, x0]
    v11 = src[y1][:, x1]
    top = v00 + (v10 - v00) * fx
    bot = v01 + (v11 - v01) * fx
    out = top + (bot - top) * fy
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def over(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """
    The "over" operator on float RGBA (colour 0..255, alpha 0..1, straight alpha).

    out_a = sa + da * (1 - sa)
    out_c = (sc * sa + dc * da * (1 - sa)) / out_a, or dc where out_a == 0
    """
    sa = src[..., 3:4]
    da = dst[..., 3:4]
    out_a = sa + da * (1.0 - sa)
    num = src[..., :3] * sa + dst[..., :3] * da * (1.0 - sa)
    out_c = np.divide(num, out_a, out=dst[..., :3].copy(), where=out_a > 0)
    return np.concatenate([out_c, out_a], axis=-1)


def composite_over(dst: np.ndarray, src: np.ndarray, ox: int, oy: int) -> np.ndarray:
    """Alpha-composites uint8 RGBA `src` onto `dst` at (ox, oy), in place, clipped."""
    dh, dw = dst.shape[:2]
    sh, sw = src.shape[:2]
    x0, y0 = max(0, ox), max(0, oy)
    x1, y1 = min(dw, ox + sw), min(dh, oy + sh)
    if x1 <= x0 or y1 <= y0:
        log.debug("Fragment at (%d, %d) lies outside the canvas.", ox, oy)
        return dst

    s = src[y0 - oy : y1 - oy, x0 - ox : x1 - ox].astype(np.float32)
    d = dst[y0:y1, x0:x1].astype(np.float32)
    s[..., 3] /= 255.0
    d[..., 3] /= 255.0
    out = over(s, d)
    out[..., 3] *= 255.0
    dst[y0:y1, x0:x1] = np.clip(np.rint(out), 0, 255).astype(np.uint8)
    return dst


def load_rgba(path: str) -> np.ndarray:
    with Image.open(path) as img:
        return np.array(img.convert("RGBA"))


class FragmentCompositor:
    """Places external texture fragments on a canvas in stage order."""

    def __init__(self, assets_dir: str, include: Optional[Iterable[str]] = None):
        self.assets_dir = assets_dir
        self.include = set(include or ())

    def prepare(self, fragment: Fragment, src: np.ndarray) -> Optional[np.ndarray]:
        """Crop, key, auto-crop and scale one fragment. None when it degenerates."""
        if fragment.crop is not None:
            src = crop(src, fragment.crop)
            if src.size == 0:
                log.warning("SKIP: '%s' crop region has zero area.", fragment.name)
                return None
            log.debug("'%s' cropped to %dx%d.", fragment.name, src.shape[1], src.shape[0])

        if fragment.chroma_key:
            src = chroma_key(src)

        bounds = content_bounds(src)
        if bounds.w == 0 or bounds.h == 0:
            log.warning("SKIP: '%s' has no visible content.", fragment.name)
            return None
        src = crop(src, bounds)

        if fragment.width is not None and fragment.height is not None:
            dst_w, dst_h = int(fragment.width), int(fragment.height)
        else:
            dst_w = int(round(src.shape[1] * fragment.scale))
            dst_h = int(round(src.shape[0] * fragment.scale))
        if dst_w < 1 or dst_h < 1:
            log.warning(
                "SKIP: '%s' scaled size too small (%dx%d).", fragment.name, dst_w, dst_h
            )
            return None
        return scale_bilinear(src, dst_w, dst_h)

    def selected(self, fragments: Sequence[Fragment]) -> List[Fragment]:
        """Fragments to use, in stage order; optional ones must be allow-listed."""
        chosen = [f for f in fragments if not f.optional or f.name in self.include]
        return sorted(chosen, key=lambda f: f.stage)

    def compose(self, canvas: np.ndarray, fragments: Sequence[Fragment]) -> CompositeReport:
        report = CompositeReport()
        for fragment in self.selected(fragments):
            path = os.path.join(self.assets_dir, fragment.file)
            if not os.path.exists(path):
                log.warning("SKIP: %s not found (%s).", fragment.name, path)
                report.skipped.append((fragment.name, "missing"))
                continue
            try:
                src = load_rgba(path)
            except OSError as e:
                log.warning("SKIP: could not read %s: %s", path, e)
                report.skipped.append((fragment.name, "unreadable"))
                continue

            log.info(
                "[%s] %s: %dx%d", fragment.stage.name.lower(), fragment.name, src.shape[1], src.shape[0]
            )
            prepared = self.prepare(fragment, src)
            if prepared is None:
                report.skipped.append((fragment.name, "degenerate"))
                continue
            composite_over(canvas, prepared, fragment.x, fragment.y)
            log.info(
                "    %dx%d placed at (%d, %d)",
                prepared.shape[1],
                prepared.shape[0],
                fragment.x,
                fragment.y,
            )
            report.placed.append(fragment.name)

        log.info(
            "Composited %d fragments, skipped %d.", len(report.placed), len(report.skipped)
        )
        return report
