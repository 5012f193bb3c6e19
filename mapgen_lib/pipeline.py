# --- mapgen_lib/pipeline.py ---
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence

import numpy as np

from mapgen_lib import emitters
from mapgen_lib.analysis.distance import distance_field, glow_field
from mapgen_lib.analysis.morphology import (
    MaskRefiner,
    RefineParams,
    content_mask,
    downsample_mask,
)
from mapgen_lib.analysis.raster import WalkabilityGrid, WalkabilityRasterizer, union_mask
from mapgen_lib.config import PipelineConfig
from mapgen_lib.constants import DEBUG_DIR, SPACE_TINT
from mapgen_lib.rendering.compositor import (
    CompositeReport,
    Fragment,
    FragmentCompositor,
    load_rgba,
)
from mapgen_lib.rendering.lighting import apply_lights, place_lights
from mapgen_lib.rendering.texture import TextureSynthesizer, WallParams, to_float, to_rgba
from mapgen_lib.schema import GeometryModel
from mapgen_lib.styles import StyleTable, default_style_table

log = logging.getLogger("mapgen.main")


@dataclass
class GenerationResult:
    mask_grid: WalkabilityGrid
    map_grid: WalkabilityGrid
    distance: np.ndarray
    background: np.ndarray
    strategy: str
    outputs: Dict[str, str] = field(default_factory=dict)
    composite: Optional[CompositeReport] = None


class MapGenerator:
    """Orchestrates one generation run: mask, fields, textures, outputs."""

    def __init__(
        self,
        config: PipelineConfig,
        geometry: GeometryModel,
        styles: Optional[StyleTable] = None,
    ):
        self.config = config
        self.geometry = geometry
        self.styles = styles or default_style_table()
        self.rasterizer = WalkabilityRasterizer(config.mask_scale)
        self.refiner = MaskRefiner(
            RefineParams(config.erode_radius, config.dilate_radius, config.min_component_size)
        )
        self.wall_params = WallParams(
            thickness=config.wall_thickness,
            margin=config.wall_margin,
            fade=config.wall_fade,
            glow_radius=config.glow_radius,
        )
        self.debug_layers: Dict[str, np.ndarray] = {}

    def _analysis_mask(self, base_map: Optional[str]) -> Optional[np.ndarray]:
        """Refined MASK-space content bitmap from the base atlas, or None."""
        if not base_map or not os.path.exists(base_map):
            log.warning(
                "Base map not found (%s); falling back to the rectangle strategy.", base_map
            )
            return None
        cfg = self.config
        log.info("Detecting map content in %s", base_map)
        rgba = load_rgba(base_map)
        h, w = self.geometry.height, self.geometry.width
        # The atlas is laid out on the map canvas; pad or crop it to fit.
        canvas = np.zeros((h, w, 4), dtype=np.uint8)
        ch, cw = min(h, rgba.shape[0]), min(w, rgba.shape[1])
        canvas[:ch, :cw] = rgba[:ch, :cw]

        raw = content_mask(canvas, cfg.brightness_threshold, cfg.alpha_threshold)
        raw = downsample_mask(raw, cfg.mask_scale, cfg.coverage)
        refined = self.refiner.refine(raw)
        self.debug_layers["content_raw"] = raw
        self.debug_layers["content_refined"] = refined
        return refined

    def build_mask(self, strategy: str, base_map: Optional[str] = None):
        """The MASK-space walkable grid and the strategy actually used."""
        grid = self.rasterizer.rasterize(self.geometry)
        if strategy == "analysis":
            refined = self._analysis_mask(base_map)
            if refined is not None:
                return union_mask(grid, refined), "analysis"
            return grid, "rects"
        if strategy != "rects":
            raise ValueError(f"Unknown mask strategy '{strategy}'")
        return grid, "rects"

    def render_background(
        self,
        map_grid: WalkabilityGrid,
        dist: np.ndarray,
        glow: np.ndarray,
        fragments: Sequence[Fragment] = (),
        assets_dir: Optional[str] = None,
        include: Iterable[str] = (),
    ):
        cfg = self.config
        synth = TextureSynthesizer(self.styles, self.geometry, self.wall_params, cfg.seed)
        canvas = to_rgba(synth.render(map_grid, dist, glow))

        report = None
        if cfg.background == "composite":
            compositor = FragmentCompositor(assets_dir or ".", include)
            report = compositor.compose(canvas, fragments)

        lights = place_lights(
            self.geometry, cfg.light_spacing, cfg.light_radius, cfg.light_intensity
        )
        lit = apply_lights(to_float(canvas), map_grid.walkable, lights, self.styles.space.light)
        return to_rgba(lit), report

    def run(
        self,
        output_dir: str,
        fragments: Sequence[Fragment] = (),
        assets_dir: Optional[str] = None,
        base_map: Optional[str] = None,
        include: Iterable[str] = (),
        debug_layers: bool = False,
    ) -> GenerationResult:
        cfg = self.config
        log.info(
            "Generating map: %dx%d canvas, mask 1/%d, strategy '%s', background '%s'.",
            self.geometry.width,
            self.geometry.height,
            cfg.mask_scale,
            cfg.strategy,
            cfg.background,
        )
        mask_grid, strategy = self.build_mask(cfg.strategy, base_map)
        map_grid = mask_grid.upsample(self.geometry.width, self.geometry.height)

        log.info("Building distance fields (cap %d, glow %d)...", cfg.distance_cap, cfg.glow_radius)
        dist = distance_field(map_grid.walkable, cfg.distance_cap)
        glow = glow_field(map_grid.walkable, cfg.glow_radius)

        background, report = self.render_background(
            map_grid, dist, glow, fragments, assets_dir, include
        )

        outputs = {
            "mask": emitters.write_mask(mask_grid, os.path.join(output_dir, cfg.mask_file)),
            "overlay": emitters.write_overlay(
                mask_grid,
                os.path.join(output_dir, cfg.overlay_file),
                SPACE_TINT,
                cfg.overlay_alpha,
                size=(self.geometry.width, self.geometry.height)
                if cfg.overlay_resolution == "map"
                else None,
            ),
            "background": emitters.write_background(
                background, os.path.join(output_dir, cfg.background_file)
            ),
        }
        if debug_layers:
            outputs.update(
                emitters.write_debug_layers(
                    os.path.join(output_dir, DEBUG_DIR),
                    mask_grid,
                    dist=dist,
                    dist_cap=cfg.distance_cap,
                    glow=glow,
                    glow_cap=cfg.glow_radius + 1,
                    raw_content=self.debug_layers.get("content_raw"),
                    refined_content=self.debug_layers.get("content_refined"),
                )
            )

        return GenerationResult(
            mask_grid=mask_grid,
            map_grid=map_grid,
            distance=dist,
            background=background,
            strategy=strategy,
            outputs=outputs,
            composite=report,
        )
