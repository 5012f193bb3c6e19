# --- mapgen_lib/analysis/morphology.py ---
import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

log = logging.getLogger("mapgen.morph")


def content_mask(
    rgba: np.ndarray, brightness_threshold: int = 200, alpha_threshold: int = 10
) -> np.ndarray:
    """
    Classifies source-image pixels as map content: opaque enough and darker than
    the brightness threshold (bright pixels are glare, labels and sky).
    """
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise ValueError(f"Expected an RGBA image, got shape {rgba.shape}")
    rgb = np.ascontiguousarray(rgba[:, :, :3])
    luma = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
    mask = (rgba[:, :, 3] > alpha_threshold) & (luma < brightness_threshold)
    log.debug(
        "Content mask: %d / %d pixels (brightness < %d, alpha > %d).",
        int(np.count_nonzero(mask)),
        mask.size,
        brightness_threshold,
        alpha_threshold,
    )
    return mask


def downsample_mask(mask: np.ndarray, scale: int, coverage: float = 0.5) -> np.ndarray:
    """
    Reduces a MAP-space bitmap to MASK space. A cell is set when at least
    `coverage` of its (possibly partial) block is set.
    """
    if scale == 1:
        return mask.astype(bool)
    h, w = mask.shape
    gh, gw = -(-h // scale), -(-w // scale)
    padded = np.zeros((gh * scale, gw * scale), dtype=np.float32)
    padded[:h, :w] = mask
    counts = padded.reshape(gh, scale, gw, scale).sum(axis=(1, 3))

    # Edge blocks may be partial; compare against their real pixel count.
    rows = np.minimum(scale, h - np.arange(gh) * scale)
    cols = np.minimum(scale, w - np.arange(gw) * scale)
    block_area = np.outer(rows, cols).astype(np.float32)
    return counts >= coverage * block_area


def _kernel(radius: int) -> np.ndarray:
    return np.ones((2 * radius + 1, 2 * radius + 1), dtype=np.uint8)


def erode(mask: np.ndarray, radius: int) -> np.ndarray:
    """Keeps a pixel only if its whole Chebyshev neighbourhood of `radius` is set."""
    if radius <= 0:
        return mask.astype(bool)
    src = mask.astype(np.uint8)
    # Outside the canvas counts as empty, so content touching the edge erodes too.
    out = cv2.erode(src, _kernel(radius), borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return out.astype(bool)


def dilate(mask: np.ndarray, radius: int) -> np.ndarray:
    """Sets a pixel if any pixel within Chebyshev `radius` is set."""
    if radius <= 0:
        return mask.astype(bool)
    src = mask.astype(np.uint8)
    out = cv2.dilate(src, _kernel(radius), borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return out.astype(bool)


def remove_small_components(mask: np.ndarray, min_size: int) -> np.ndarray:
    """Clears every 4-connected component with fewer than `min_size` pixels."""
    src = mask.astype(np.uint8)
    if min_size <= 1 or not src.any():
        return mask.astype(bool)
    num, labels, stats, _ = cv2.connectedComponentsWithStats(src, connectivity=4)
    areas = stats[:, cv2.CC_STAT_AREA]
    keep = areas >= min_size
    keep[0] = False  # background label
    removed = int(np.count_nonzero(~keep[1:]))
    log.debug(
        "Component filter: %d components, %d below %d px removed.", num - 1, removed, min_size
    )
    return keep[labels]


@dataclass(frozen=True)
class RefineParams:
    erode_radius: int = 1
    dilate_radius: int = 2
    min_component_size: int = 40


class MaskRefiner:
    """Cleans an auto-detected content mask: opening, then debris removal."""

    def __init__(self, params: Optional[RefineParams] = None):
        self.params = params or RefineParams()
        if self.params.dilate_radius < self.params.erode_radius:
            raise ValueError(
                "Dilation radius (%d) must not be smaller than erosion radius (%d)"
                % (self.params.dilate_radius, self.params.erode_radius)
            )

    def refine(self, mask: np.ndarray) -> np.ndarray:
        p = self.params
        log.info(
            "Refining content mask: erode r=%d, dilate r=%d, min component %d px.",
            p.erode_radius,
            p.dilate_radius,
            p.min_component_size,
        )
        before = int(np.count_nonzero(mask))
        out = erode(mask, p.erode_radius)
        out = dilate(out, p.dilate_radius)
        out = remove_small_components(out, p.min_component_size)
        log.info("Content mask: %d -> %d pixels.", before, int(np.count_nonzero(out)))
        return out


def refine(
    mask: np.ndarray, erode_radius: int = 1, dilate_radius: int = 2, min_component_size: int = 40
) -> np.ndarray:
    """Convenience wrapper around MaskRefiner."""
    return MaskRefiner(RefineParams(erode_radius, dilate_radius, min_component_size)).refine(mask)
