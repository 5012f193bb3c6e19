# --- mapgen_lib/analysis/sprites.py ---
import logging
from dataclasses import dataclass
from typing import Dict, List

import cv2
import numpy as np

from mapgen_lib.schema import Rect

log = logging.getLogger("mapgen.sprites")


@dataclass(frozen=True)
class SpriteBounds:
    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> int:
        return self.w * self.h


def find_sprite_bounds(
    rgba: np.ndarray, alpha_threshold: int = 10, gap: int = 2
) -> List[SpriteBounds]:
    """
    Locates individual sprites on a sheet.

    Opaque pixels are dilated by `gap` so that parts separated by a thin seam
    merge into one component; components are then labelled 4-connected on the
    dilated grid. Each box is measured on the original opaque pixels only, so the
    dilation never inflates the reported bounds.

    Returns:
        Bounding boxes sorted by area, largest first.
    """
    opaque = (rgba[:, :, 3] > alpha_threshold).astype(np.uint8)
    if gap > 0:
        kernel = np.ones((2 * gap + 1, 2 * gap + 1), dtype=np.uint8)
        merged = cv2.dilate(opaque, kernel, borderType=cv2.BORDER_CONSTANT, borderValue=0)
    else:
        merged = opaque
    num, labels = cv2.connectedComponents(merged, connectivity=4)

    bounds = []
    for label in range(1, num):
        ys, xs = np.nonzero((labels == label) & (opaque > 0))
        if xs.size == 0:
            continue
        x0, x1, y0, y1 = int(xs.min()), int(xs.max()), int(ys.min()), int(ys.max())
        bounds.append(SpriteBounds(x=x0, y=y0, w=x1 - x0 + 1, h=y1 - y0 + 1))

    bounds.sort(key=lambda b: b.area, reverse=True)
    log.info("Found %d sprite components.", len(bounds))
    return bounds


def walking_frame_candidates(
    bounds: List[SpriteBounds],
    min_w: int = 40,
    max_w: int = 100,
    min_h: int = 50,
    max_h: int = 130,
) -> List[SpriteBounds]:
    """Boxes with the size and aspect of a side-view character frame, top to bottom."""
    candidates = [
        b
        for b in bounds
        if min_w <= b.w <= max_w and min_h <= b.h <= max_h and 0.4 <= b.w / b.h <= 1.2
    ]
    return sorted(candidates, key=lambda b: b.y)


def extract_frames(rgba: np.ndarray, frames: Dict[str, Rect]) -> Dict[str, np.ndarray]:
    """Crops named frames out of a sheet; frames are clamped to the sheet."""
    h, w = rgba.shape[:2]
    out = {}
    for name, r in frames.items():
        x0, y0 = max(0, r.x), max(0, r.y)
        x1, y1 = min(w, r.x + r.w), min(h, r.y + r.h)
        if x1 <= x0 or y1 <= y0:
            log.warning("Frame '%s' lies outside the %dx%d sheet, skipping.", name, w, h)
            continue
        out[name] = rgba[y0:y1, x0:x1].copy()
        log.debug("Frame '%s': %dx%d", name, x1 - x0, y1 - y0)
    return out
