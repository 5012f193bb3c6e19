# --- mapgen_lib/config.py ---
import configparser
import logging
from dataclasses import dataclass
from typing import Optional

from mapgen_lib import constants

log = logging.getLogger("mapgen.config")

STRATEGIES = ("rects", "analysis")
BACKGROUNDS = ("procedural", "composite")
OVERLAY_RESOLUTIONS = ("mask", "map")


@dataclass(frozen=True)
class PipelineConfig:
    """Every tunable of a generation run, resolved and typed."""

    mask_scale: int = constants.MASK_SCALE
    wall_thickness: int = 12
    wall_margin: int = 6
    wall_fade: int = 3
    glow_radius: int = 10
    strategy: str = "rects"
    brightness_threshold: int = 200
    alpha_threshold: int = 10
    coverage: float = 0.5
    erode_radius: int = 1
    dilate_radius: int = 2
    min_component_size: int = 40
    light_spacing: float = 120.0
    light_radius: float = 90.0
    light_intensity: float = 0.35
    mask_file: str = constants.MASK_FILE
    overlay_file: str = constants.OVERLAY_FILE
    background_file: str = constants.BACKGROUND_FILE
    overlay_resolution: str = "mask"
    overlay_alpha: int = 255
    background: str = "procedural"
    seed: int = 1337

    @property
    def distance_cap(self) -> int:
        return self.wall_thickness + self.wall_margin


class ConfigService:
    """Reads and writes mapgen.cfg, applying defaults for anything missing."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        d = PipelineConfig()
        self.defaults = {
            "Canvas": {"mask_scale": d.mask_scale},
            "Walls": {
                "thickness": d.wall_thickness,
                "margin": d.wall_margin,
                "fade": d.wall_fade,
                "glow_radius": d.glow_radius,
            },
            "Analysis": {
                "strategy": d.strategy,
                "brightness_threshold": d.brightness_threshold,
                "alpha_threshold": d.alpha_threshold,
                "coverage": d.coverage,
                "erode_radius": d.erode_radius,
                "dilate_radius": d.dilate_radius,
                "min_component_size": d.min_component_size,
            },
            "Lighting": {
                "spacing": d.light_spacing,
                "radius": d.light_radius,
                "intensity": d.light_intensity,
            },
            "Output": {
                "mask_file": d.mask_file,
                "overlay_file": d.overlay_file,
                "background_file": d.background_file,
                "overlay_resolution": d.overlay_resolution,
                "overlay_alpha": d.overlay_alpha,
                "background": d.background,
            },
            "Render": {"seed": d.seed},
        }

    def get_settings(self) -> dict:
        """Reads settings from the config file, applying defaults if missing."""
        config = configparser.ConfigParser()
        for section, values in self.defaults.items():
            config[section] = {k: str(v) for k, v in values.items()}

        if self.config_path:
            if config.read(self.config_path):
                log.info("Loaded settings from %s", self.config_path)
            else:
                log.warning("Config file not found at %s. Using defaults.", self.config_path)
        return self._config_to_dict(config)

    def save_settings(self, settings: dict, path: Optional[str] = None):
        """Saves a dictionary of settings to the config file."""
        config = configparser.ConfigParser()
        for section, values in settings.items():
            config[section] = {k: str(v) for k, v in values.items()}

        target = path or self.config_path
        with open(target, "w") as configfile:
            config.write(configfile)
        log.info("Settings successfully saved to %s", target)

    def _config_to_dict(self, config: configparser.ConfigParser) -> dict:
        """Converts a ConfigParser object to a nested dictionary."""
        return {s: dict(config.items(s)) for s in config.sections()}

    def load(self) -> PipelineConfig:
        return settings_to_config(self.get_settings())


def _get(settings: dict, section: str, key: str, cast):
    raw = settings[section][key]
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"Invalid value for [{section}] {key}: {raw!r}") from None


def _choice(settings: dict, section: str, key: str, choices) -> str:
    value = settings[section][key].strip().lower()
    if value not in choices:
        raise ValueError(
            f"Invalid value for [{section}] {key}: {value!r} (expected one of {', '.join(choices)})"
        )
    return value


def settings_to_config(settings: dict) -> PipelineConfig:
    """Types and validates a nested settings dictionary."""
    cfg = PipelineConfig(
        mask_scale=_get(settings, "Canvas", "mask_scale", int),
        wall_thickness=_get(settings, "Walls", "thickness", int),
        wall_margin=_get(settings, "Walls", "margin", int),
        wall_fade=_get(settings, "Walls", "fade", int),
        glow_radius=_get(settings, "Walls", "glow_radius", int),
        strategy=_choice(settings, "Analysis", "strategy", STRATEGIES),
        brightness_threshold=_get(settings, "Analysis", "brightness_threshold", int),
        alpha_threshold=_get(settings, "Analysis", "alpha_threshold", int),
        coverage=_get(settings, "Analysis", "coverage", float),
        erode_radius=_get(settings, "Analysis", "erode_radius", int),
        dilate_radius=_get(settings, "Analysis", "dilate_radius", int),
        min_component_size=_get(settings, "Analysis", "min_component_size", int),
        light_spacing=_get(settings, "Lighting", "spacing", float),
        light_radius=_get(settings, "Lighting", "radius", float),
        light_intensity=_get(settings, "Lighting", "intensity", float),
        mask_file=settings["Output"]["mask_file"],
        overlay_file=settings["Output"]["overlay_file"],
        background_file=settings["Output"]["background_file"],
        overlay_resolution=_choice(settings, "Output", "overlay_resolution", OVERLAY_RESOLUTIONS),
        overlay_alpha=_get(settings, "Output", "overlay_alpha", int),
        background=_choice(settings, "Output", "background", BACKGROUNDS),
        seed=_get(settings, "Render", "seed", int),
    )
    if cfg.mask_scale < 1:
        raise ValueError(f"Invalid value for [Canvas] mask_scale: {cfg.mask_scale}")
    if not 0 <= cfg.overlay_alpha <= 255:
        raise ValueError(f"Invalid value for [Output] overlay_alpha: {cfg.overlay_alpha}")
    log.debug("Resolved configuration: %s", cfg)
    return cfg


def load_config(path: Optional[str] = None) -> PipelineConfig:
    return ConfigService(path).load()
