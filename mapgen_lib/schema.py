# --- mapgen_lib/schema.py ---
import json
import math
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Tuple

from shapely.geometry import box
from shapely.ops import unary_union


class CoordinateSpace(str, Enum):
    """The two pixel grids the pipeline works in."""

    MAP = "map"  # full-resolution canvas pixels
    MASK = "mask"  # canvas pixels downscaled by the mask scale factor


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle in map-pixel space (origin top-left)."""

    x: int
    y: int
    w: int
    h: int

    @property
    def area(self) -> int:
        return max(0, self.w) * max(0, self.h)

    def to_polygon(self):
        return box(self.x, self.y, self.x + self.w, self.y + self.h)


@dataclass(frozen=True)
class NamedRect(Rect):
    """A Rect tagged with the name of the room it belongs to."""

    name: str = ""


@dataclass(frozen=True)
class GeometryModel:
    """
    The declarative room/corridor layout. Read-only for every consumer.

    Rectangles are not validated; consumers clamp them to the canvas.
    """

    width: int
    height: int
    rooms: Tuple[NamedRect, ...] = field(default_factory=tuple)
    corridors: Tuple[Rect, ...] = field(default_factory=tuple)

    def room_names(self) -> List[str]:
        """Room names in declaration order, without duplicates."""
        return list(dict.fromkeys(r.name for r in self.rooms))

    def rects_for(self, name: str) -> List[NamedRect]:
        return [r for r in self.rooms if r.name == name]

    def room_shape(self, name: str):
        """The union polygon of every rectangle of a room."""
        return unary_union([r.to_polygon() for r in self.rects_for(name) if r.area > 0])


def map_to_mask(x: float, y: float, scale: int) -> Tuple[int, int]:
    """Converts a MAP-space pixel coordinate to the MASK cell that contains it."""
    return math.floor(x / scale), math.floor(y / scale)


def mask_to_map(mx: int, my: int, scale: int) -> Tuple[int, int]:
    """Top-left MAP-space pixel of a MASK cell."""
    return mx * scale, my * scale


def mask_size(width: int, height: int, scale: int) -> Tuple[int, int]:
    """Mask grid dimensions for a MAP canvas; partial cells are kept."""
    return math.ceil(width / scale), math.ceil(height / scale)


def geometry_to_dict(geometry: GeometryModel) -> Dict:
    return {
        "width": geometry.width,
        "height": geometry.height,
        "rooms": [asdict(r) for r in geometry.rooms],
        "corridors": [asdict(c) for c in geometry.corridors],
    }


def geometry_from_dict(data: Dict) -> GeometryModel:
    rooms = tuple(
        NamedRect(x=r["x"], y=r["y"], w=r["w"], h=r["h"], name=r["name"])
        for r in data.get("rooms", [])
    )
    corridors = tuple(
        Rect(x=c["x"], y=c["y"], w=c["w"], h=c["h"]) for c in data.get("corridors", [])
    )
    return GeometryModel(
        width=int(data["width"]), height=int(data["height"]), rooms=rooms, corridors=corridors
    )


def save_json(geometry: GeometryModel, output_path: str) -> None:
    """
    Serializes a GeometryModel to a JSON file.

    Args:
        geometry: The layout to serialize.
        output_path: The path to the output .json file.
    """
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(geometry_to_dict(geometry), f, indent=2)


def load_json(input_path: str) -> GeometryModel:
    """
    Deserializes a JSON file into a GeometryModel.

    Args:
        input_path: The path to the input .json file.

    Returns:
        The layout described by the file.
    """
    with open(input_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return geometry_from_dict(data)
