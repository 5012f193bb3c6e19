# --- mapgen.py ---
import argparse
import dataclasses
import logging
import os
import sys

from mapgen_lib import layouts, schema
from mapgen_lib.analysis.sprites import (
    extract_frames,
    find_sprite_bounds,
    walking_frame_candidates,
)
from mapgen_lib.config import BACKGROUNDS, STRATEGIES, ConfigService, settings_to_config
from mapgen_lib.constants import SPRITES_DIR
from mapgen_lib.emitters import write_frames
from mapgen_lib.log_utils import setup_logging
from mapgen_lib.pipeline import MapGenerator
from mapgen_lib.rendering.compositor import load_rgba
from mapgen_lib.rendering.texture import style_legend
from mapgen_lib.styles import default_style_table


def run_sprite_analysis(sheet_path: str, top: int = 40) -> bool:
    """Logs the largest sprite components of a sheet and likely walking frames."""
    log = logging.getLogger("mapgen.sprites")
    if not os.path.exists(sheet_path):
        log.error("Sprite sheet not found: %s", sheet_path)
        return False
    rgba = load_rgba(sheet_path)
    log.info("Image: %dx%d", rgba.shape[1], rgba.shape[0])
    bounds = find_sprite_bounds(rgba)
    lines = [f"Found {len(bounds)} components. Top {min(top, len(bounds))} by area:"]
    lines += [
        f"  {i}: x={b.x}, y={b.y}, w={b.w}, h={b.h}, area={b.area}"
        for i, b in enumerate(bounds[:top])
    ]
    lines.append("Potential side-view walking frames:")
    lines += [
        f"  {i}: x={b.x}, y={b.y}, w={b.w}, h={b.h}"
        for i, b in enumerate(walking_frame_candidates(bounds))
    ]
    log.info("\n%s", "\n".join(lines), extra={"raw": True})
    return True


def run_frame_extraction(sheet_path: str, out_dir: str) -> bool:
    """Crops the player frames out of a sprite sheet into out_dir."""
    log = logging.getLogger("mapgen.sprites")
    if not os.path.exists(sheet_path):
        log.error("Sprite sheet not found: %s", sheet_path)
        return False
    rgba = load_rgba(sheet_path)
    frames = extract_frames(rgba, layouts.PLAYER_FRAMES)
    try:
        written = write_frames(frames, out_dir)
    except OSError as e:
        log.critical("Could not write sprite frames to %s: %s", out_dir, e)
        return False
    log.info("Extracted %d / %d frames.", len(written), len(layouts.PLAYER_FRAMES))
    return True


def get_cli_args(argv=None):
    """Configures and parses command-line arguments."""
    p = argparse.ArgumentParser(
        description="Builds the collision mask, space overlay and rendered "
        "background of a rectangle-based map."
    )
    p.add_argument("-o", "--output", default="public", help="Output directory.")
    p.add_argument(
        "--layout",
        default="skeld",
        choices=sorted(layouts.LAYOUTS),
        help="Built-in layout to generate (default: skeld).",
    )
    p.add_argument("--geometry", metavar="FILE", help="Load the layout from a JSON file.")
    p.add_argument("--config", metavar="FILE", help="Read settings from an INI file.")
    p.add_argument(
        "--strategy",
        choices=STRATEGIES,
        help="Mask strategy: plain rectangles, or content analysis of the base map "
        "unioned with the rectangles.",
    )
    p.add_argument(
        "--background",
        choices=BACKGROUNDS,
        help="Procedural background only, or with texture fragments composited on top.",
    )
    p.add_argument(
        "--assets-dir", metavar="DIR", default=".", help="Root directory of texture fragments."
    )
    p.add_argument(
        "--base-map",
        metavar="FILE",
        help="Source atlas for the analysis strategy (default: the layout's base map "
        "under --assets-dir).",
    )
    p.add_argument(
        "--include",
        metavar="NAMES",
        help="Comma-separated optional fragments to composite (e.g. hull,doors).",
    )
    # Logging arguments
    g_log = p.add_argument_group("Logging & Output")
    g_log.add_argument("-v", "--verbose", action="store_true", help="Enable INFO logging.")
    g_log.add_argument(
        "--debug-layers",
        action="store_true",
        help="Also write intermediate layers (distance field, room index, content masks).",
    )
    g_log.add_argument("--color-logs", action="store_true", help="Enable colored logging.")
    g_log.add_argument("--log-file", metavar="FILE", help="Redirect log output to a file.")
    g_log.add_argument(
        "-d",
        "--debug",
        nargs="?",
        const="all",
        dest="debug_topics",
        metavar="TOPICS",
        help="Enable DEBUG logging (all,geometry,raster,distance,morph,texture,light,"
        "composite,emit,config,sprites).",
    )
    # Utilities
    g_util = p.add_argument_group("Utilities")
    g_util.add_argument(
        "--analyze-sprites",
        metavar="SHEET",
        help="Report sprite bounding boxes of a sheet and exit.",
    )
    g_util.add_argument(
        "--extract-frames",
        metavar="SHEET",
        help="Crop the player idle and walk frames of a sheet into "
        f"<output>/{SPRITES_DIR} and exit.",
    )
    g_util.add_argument(
        "--dump-config", metavar="FILE", help="Write the effective settings to FILE and exit."
    )
    return p.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point for the mapgen CLI."""
    args = get_cli_args(argv)
    log_level = logging.INFO if args.verbose else logging.WARNING
    if args.debug_topics:
        log_level = logging.DEBUG

    setup_logging(log_level, args.color_logs, args.debug_topics, args.log_file)
    log = logging.getLogger("mapgen.main")

    log.info("--- MAPGEN CLI Initialized ---")
    log.debug("Arguments received: %s", vars(args))

    if args.analyze_sprites:
        return 0 if run_sprite_analysis(args.analyze_sprites) else 1
    if args.extract_frames:
        out_dir = os.path.join(args.output, SPRITES_DIR)
        return 0 if run_frame_extraction(args.extract_frames, out_dir) else 1

    config_service = ConfigService(args.config)
    try:
        settings = config_service.get_settings()
        config = settings_to_config(settings)
    except ValueError as e:
        log.critical("Bad configuration: %s", e)
        return 1

    overrides = {}
    if args.strategy:
        overrides["strategy"] = args.strategy
    if args.background:
        overrides["background"] = args.background
    config = dataclasses.replace(config, **overrides)

    if args.dump_config:
        settings["Analysis"]["strategy"] = config.strategy
        settings["Output"]["background"] = config.background
        try:
            config_service.save_settings(settings, args.dump_config)
        except OSError as e:
            log.critical("Could not write settings to %s: %s", args.dump_config, e)
            return 1
        return 0

    if args.geometry:
        try:
            geometry = schema.load_json(args.geometry)
            log.info("Loaded layout from '%s'.", args.geometry)
        except FileNotFoundError:
            log.critical("Geometry file not found: %s", args.geometry)
            return 1
        except Exception as e:
            log.critical("Failed to load or parse geometry file: %s", e, exc_info=True)
            return 1
        fragments = ()
    else:
        geometry = layouts.get_layout(args.layout)
        fragments = layouts.FRAGMENT_TABLES.get(args.layout, ())

    base_map = args.base_map
    if base_map is None and not args.geometry:
        base_map = os.path.join(args.assets_dir, layouts.SKELD_BASE_MAP)
    include = [n.strip() for n in args.include.split(",")] if args.include else []

    styles = default_style_table()
    log.debug("Room styles:\n%s", style_legend(styles, geometry.room_names()), extra={"raw": True})

    generator = MapGenerator(config, geometry, styles)
    try:
        result = generator.run(
            args.output,
            fragments=fragments,
            assets_dir=args.assets_dir,
            base_map=base_map,
            include=include,
            debug_layers=args.debug_layers,
        )
    except OSError as e:
        log.critical("Could not write outputs: %s", e)
        return 1

    log.info("--- Generation Results ---")
    log.info(
        "Strategy '%s': %d / %d mask cells walkable.",
        result.strategy,
        result.mask_grid.walkable_count,
        result.mask_grid.walkable.size,
    )
    for name, path in result.outputs.items():
        log.info("%-16s %s", name, path)
    log.info("--- Processing complete. ---")
    return 0


if __name__ == "__main__":
    sys.exit(main())
