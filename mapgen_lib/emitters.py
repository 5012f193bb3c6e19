# --- mapgen_lib/emitters.py ---
import logging
import os
from typing import Dict, Optional, Sequence

import cv2
import numpy as np
from PIL import Image

from mapgen_lib.analysis.raster import WalkabilityGrid
from mapgen_lib.constants import NON_WALKABLE, SPACE_TINT

log = logging.getLogger("mapgen.emit")


def mask_image(walkable: np.ndarray) -> np.ndarray:
    """Walkable cells opaque white, everything else fully transparent."""
    h, w = walkable.shape
    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[walkable] = (255, 255, 255, 255)
    return out


def overlay_image(
    walkable: np.ndarray, color: Sequence[int] = SPACE_TINT, alpha: int = 255
) -> np.ndarray:
    """The inverse of the mask: non-walkable cells tinted, walkable cells clear."""
    h, w = walkable.shape
    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[~walkable] = (color[0], color[1], color[2], alpha)
    return out


def _save_png(rgba: np.ndarray, path: str) -> str:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    Image.fromarray(np.ascontiguousarray(rgba)).save(path, "PNG")
    log.info("  -> %s: %dx%d", os.path.basename(path), rgba.shape[1], rgba.shape[0])
    return path


def write_mask(grid: WalkabilityGrid, path: str) -> str:
    """Writes the collision mask. The runtime reads only the alpha channel."""
    return _save_png(mask_image(grid.walkable), path)


def write_overlay(
    grid: WalkabilityGrid,
    path: str,
    color: Sequence[int] = SPACE_TINT,
    alpha: int = 255,
    size: Optional[tuple] = None,
) -> str:
    """
    Writes the space overlay at the grid's resolution, or expanded to `size`
    (width, height) with nearest-neighbour sampling so edges stay aligned.
    """
    walkable = grid.walkable
    if size is not None and size != (walkable.shape[1], walkable.shape[0]):
        s = grid.scale
        walkable = np.repeat(np.repeat(walkable, s, axis=0), s, axis=1)[: size[1], : size[0]]
    return _save_png(overlay_image(walkable, color, alpha), path)


def write_background(canvas: np.ndarray, path: str) -> str:
    if canvas.dtype != np.uint8 or canvas.ndim != 3 or canvas.shape[2] != 4:
        raise ValueError("Background canvas must be uint8 RGBA")
    return _save_png(canvas, path)


def _scaled_gray(values: np.ndarray, top: int) -> np.ndarray:
    top = max(int(top), 1)
    gray = (np.clip(values, 0, top).astype(np.float32) * (255.0 / top)).astype(np.uint8)
    rgba = np.empty(values.shape + (4,), dtype=np.uint8)
    rgba[:, :, :3] = gray[:, :, None]
    rgba[:, :, 3] = 255
    return rgba


def _room_colors(room_index: np.ndarray) -> np.ndarray:
    """False-colour room-index map; corridors grey, non-walkable black."""
    h, w = room_index.shape
    hsv = np.zeros((h, w, 3), dtype=np.uint8)
    rooms = room_index >= 0
    hsv[..., 0] = np.where(rooms, (room_index * 37) % 180, 0).astype(np.uint8)
    hsv[..., 1] = np.where(rooms, 200, 0).astype(np.uint8)
    hsv[..., 2] = np.where(room_index == NON_WALKABLE, 0, 220).astype(np.uint8)
    rgb = cv2.cvtColor(hsv, cv2.COLOR_HSV2RGB)
    rgba = np.empty((h, w, 4), dtype=np.uint8)
    rgba[:, :, :3] = rgb
    rgba[:, :, 3] = 255
    return rgba


def write_debug_layers(
    debug_dir: str,
    grid: WalkabilityGrid,
    dist: Optional[np.ndarray] = None,
    dist_cap: int = 1,
    glow: Optional[np.ndarray] = None,
    glow_cap: int = 1,
    raw_content: Optional[np.ndarray] = None,
    refined_content: Optional[np.ndarray] = None,
) -> Dict[str, str]:
    """Writes intermediate layers for inspection; returns layer name -> path."""
    log.info("Writing debug layers to %s", debug_dir)
    written = {
        "room_index": _save_png(
            _room_colors(grid.room_index), os.path.join(debug_dir, "room-index.png")
        )
    }
    if dist is not None:
        written["distance"] = _save_png(
            _scaled_gray(dist, dist_cap), os.path.join(debug_dir, "distance-field.png")
        )
    if glow is not None:
        written["glow"] = _save_png(
            _scaled_gray(glow, glow_cap), os.path.join(debug_dir, "glow-field.png")
        )
    if raw_content is not None:
        written["content_raw"] = _save_png(
            mask_image(raw_content), os.path.join(debug_dir, "content-raw.png")
        )
    if refined_content is not None:
        written["content_refined"] = _save_png(
            mask_image(refined_content), os.path.join(debug_dir, "content-refined.png")
        )
    return written


def write_frames(frames: Dict[str, np.ndarray], out_dir: str) -> Dict[str, str]:
    """Writes each cropped sprite frame as <name>.png; returns frame name -> path."""
    log.info("Writing %d sprite frame(s) to %s", len(frames), out_dir)
    return {
        name: _save_png(rgba, os.path.join(out_dir, f"{name}.png"))
        for name, rgba in frames.items()
    }
