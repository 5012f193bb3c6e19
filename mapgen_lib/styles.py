# --- mapgen_lib/styles.py ---
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

log = logging.getLogger("mapgen.texture")

RGB = Tuple[int, int, int]

PATTERNS = (
    "checkerboard",
    "grid_lines",
    "grating",
    "diamond_lattice",
    "staggered_hex",
    "riveted_plating",
)


def hex_to_rgb(value: str) -> RGB:
    value = value.lstrip("#")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


@dataclass(frozen=True)
class RoomStyle:
    """Floor look of one room."""

    floor: RGB
    floor_alt: RGB
    trim: RGB
    pattern: str = "checkerboard"
    period: int = 32

    def __post_init__(self):
        if self.pattern not in PATTERNS:
            raise ValueError(f"Unknown floor pattern '{self.pattern}'")
        if self.period < 2:
            raise ValueError(f"Tile period must be at least 2, got {self.period}")

    @classmethod
    def from_hex(cls, floor, floor_alt, trim, pattern="checkerboard", period=32):
        return cls(hex_to_rgb(floor), hex_to_rgb(floor_alt), hex_to_rgb(trim), pattern, period)


@dataclass(frozen=True)
class WallPalette:
    outer: RGB
    mid: RGB
    inner: RGB


@dataclass(frozen=True)
class SpacePalette:
    top: RGB
    bottom: RGB
    nebula: RGB
    star_bright: RGB
    star_dim: RGB
    hull_glow: RGB
    light: RGB


@dataclass(frozen=True)
class StyleTable:
    """Immutable room-name -> style lookup with a corridor fallback."""

    rooms: Mapping[str, RoomStyle]
    corridor: RoomStyle
    walls: WallPalette
    space: SpacePalette

    def __post_init__(self):
        object.__setattr__(self, "rooms", MappingProxyType(dict(self.rooms)))

    def for_room(self, name: Optional[str]) -> RoomStyle:
        if name is None:
            return self.corridor
        style = self.rooms.get(name)
        if style is None:
            log.debug("No style for room '%s', using corridor style.", name)
            return self.corridor
        return style


def default_style_table() -> StyleTable:
    """Styles for the built-in layout."""
    rooms = {
        "Cafeteria": RoomStyle.from_hex("#5D6470", "#535A66", "#8FA3B8", "checkerboard", 48),
        "Weapons": RoomStyle.from_hex("#4B5563", "#3F4856", "#C9A227", "riveted_plating", 40),
        "Navigation": RoomStyle.from_hex("#3E4A5C", "#34404F", "#5FB3D9", "grid_lines", 24),
        "O2": RoomStyle.from_hex("#4F6152", "#445647", "#7FC48B", "diamond_lattice", 32),
        "Reactor": RoomStyle.from_hex("#4A4F5A", "#3C404A", "#D9694F", "grating", 16),
        "Upper Engine": RoomStyle.from_hex("#545454", "#474747", "#D98E3A", "riveted_plating", 36),
        "Lower Engine": RoomStyle.from_hex("#545454", "#474747", "#D98E3A", "riveted_plating", 36),
        "Security": RoomStyle.from_hex("#44484F", "#393D44", "#B85C5C", "grid_lines", 20),
        "MedBay": RoomStyle.from_hex("#6B7A80", "#5F6E74", "#6FD1C4", "staggered_hex", 28),
        "Electrical": RoomStyle.from_hex("#4D4A42", "#423F38", "#E0C341", "grating", 12),
        "Storage": RoomStyle.from_hex("#5A5346", "#4D473B", "#A8865A", "checkerboard", 40),
        "Admin": RoomStyle.from_hex("#565C6B", "#4A505E", "#9C8FD1", "diamond_lattice", 36),
        "Shields": RoomStyle.from_hex("#4E5766", "#434B59", "#6FA8DC", "staggered_hex", 32),
        "Communications": RoomStyle.from_hex("#505865", "#454C58", "#7FB8A4", "grid_lines", 28),
    }
    corridor = RoomStyle.from_hex("#4A505C", "#40464F", "#6E7785", "grating", 24)
    walls = WallPalette(
        outer=hex_to_rgb("#1C1F26"),
        mid=hex_to_rgb("#2E333D"),
        inner=hex_to_rgb("#434A57"),
    )
    space = SpacePalette(
        top=hex_to_rgb("#05060D"),
        bottom=hex_to_rgb("#0E1024"),
        nebula=hex_to_rgb("#2A1E4A"),
        star_bright=hex_to_rgb("#F2F4FF"),
        star_dim=hex_to_rgb("#8A90B0"),
        hull_glow=hex_to_rgb("#3C5A8C"),
        light=hex_to_rgb("#FFF1D6"),
    )
    return StyleTable(rooms=rooms, corridor=corridor, walls=walls, space=space)
