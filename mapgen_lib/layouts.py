# --- mapgen_lib/layouts.py ---
# Built-in layouts. Coordinates are MAP-space pixels on a 2048x1872 canvas and
# match the visual floor boundaries of the room textures, so walkable areas,
# rendered walls and collision all agree.
import logging
from typing import Dict, Tuple

from mapgen_lib.constants import MAP_H, MAP_W
from mapgen_lib.rendering.compositor import Fragment, Stage
from mapgen_lib.schema import GeometryModel, NamedRect, Rect

log = logging.getLogger("mapgen.geometry")

SKELD_ROOMS: Tuple[NamedRect, ...] = (
    # Two overlapping rects approximate the octagonal floor: the wide one covers
    # the body, the narrow one the top and bottom necks.
    NamedRect(650, 80, 650, 550, "Cafeteria"),
    NamedRect(700, 20, 560, 660, "Cafeteria"),
    NamedRect(1350, 10, 360, 350, "Weapons"),
    NamedRect(1710, 1260, 270, 290, "Navigation"),
    NamedRect(1770, 810, 220, 230, "O2"),
    NamedRect(20, 570, 270, 350, "Reactor"),
    NamedRect(100, 180, 350, 360, "Upper Engine"),
    NamedRect(100, 1100, 350, 360, "Lower Engine"),
    NamedRect(290, 700, 240, 250, "Security"),
    NamedRect(440, 180, 325, 295, "MedBay"),
    NamedRect(380, 700, 330, 320, "Electrical"),
    NamedRect(560, 1070, 430, 300, "Storage"),
    NamedRect(1010, 540, 355, 310, "Admin"),
    NamedRect(1070, 890, 320, 310, "Shields"),
    NamedRect(700, 1260, 340, 300, "Communications"),
)

SKELD_CORRIDORS: Tuple[Rect, ...] = (
    # Cafeteria south exits
    Rect(750, 670, 180, 80),
    Rect(1020, 670, 180, 80),
    # Upper horizontal corridor
    Rect(300, 440, 200, 80),
    Rect(500, 440, 200, 80),
    Rect(420, 440, 600, 100),
    Rect(920, 440, 450, 100),
    # Cafeteria -> Weapons
    Rect(1310, 80, 60, 280),
    # Weapons -> right corridor
    Rect(1620, 340, 120, 100),
    Rect(1640, 280, 110, 320),
    # Right vertical corridor (Weapons, Admin, Shields, Navigation)
    Rect(1350, 480, 300, 90),
    Rect(1440, 560, 230, 80),
    Rect(1660, 570, 110, 260),
    Rect(1750, 700, 90, 140),
    Rect(1730, 860, 60, 120),
    Rect(1340, 830, 340, 80),
    Rect(1740, 1020, 100, 260),
    Rect(1730, 1190, 80, 100),
    # Admin -> Shields
    Rect(1100, 680, 120, 220),
    # Left vertical corridor (engines, Reactor, Security)
    Rect(200, 520, 120, 200),
    Rect(280, 620, 100, 100),
    Rect(380, 740, 50, 120),
    Rect(200, 930, 120, 200),
    # Storage -> Communications
    Rect(540, 1000, 120, 100),
    Rect(700, 1350, 200, 80),
    # Lower Engine -> Storage
    Rect(300, 1200, 200, 80),
    # Shields -> lower corridor
    Rect(990, 1200, 420, 90),
    # Admin -> hall
    Rect(1000, 480, 120, 120),
    Rect(1060, 820, 120, 100),
    Rect(900, 1050, 200, 100),
)

SKELD = GeometryModel(width=MAP_W, height=MAP_H, rooms=SKELD_ROOMS, corridors=SKELD_CORRIDORS)

# Base atlas holding corridors, Electrical, Admin, Shields, Reactor, the engine
# rooms and hallways. Also the source image of the "analysis" mask strategy.
SKELD_BASE_MAP = "Storage/Admin_Comms_Elec_Engine_Halls_Shields_Storage-sharedassets0.assets-150.png"

# Calibrated placements of the room textures. Crops isolate the room from the
# animation frames sharing the same sheet.
SKELD_FRAGMENTS: Tuple[Fragment, ...] = (
    Fragment("base", SKELD_BASE_MAP, 0, 0, stage=Stage.BACKGROUND, chroma_key=False),
    Fragment("hull", "Hull-sharedassets0.assets-159.png", 0, 0,
             stage=Stage.WALLS, optional=True),
    Fragment("cafeteria_walls", "Cafeteria/cafeteriaWalls-sharedassets0.assets-152.png",
             635, 5, scale=0.69, stage=Stage.WALLS, optional=True),
    Fragment("upper_engine", "Engine-sharedassets0.assets-147.png", 100, 180, scale=0.70,
             crop=Rect(0, 0, 500, 350)),
    Fragment("lower_engine", "Engine-sharedassets0.assets-147.png", 100, 1100, scale=0.70,
             crop=Rect(0, 0, 500, 350)),
    Fragment("cafeteria", "Cafeteria/Cafeteria-sharedassets0.assets-210.png", 635, 5,
             scale=0.69),
    Fragment("weapons", "Weapons-sharedassets0.assets-201.png", 1330, 0, scale=0.55,
             crop=Rect(0, 0, 630, 500)),
    Fragment("navigation", "Navigation-sharedassets0.assets-160.png", 1700, 1240,
             scale=0.78, crop=Rect(0, 300, 344, 500)),
    Fragment("medbay", "MedBay-sharedassets0.assets-110.png", 435, 165, scale=0.62,
             crop=Rect(0, 0, 500, 520)),
    Fragment("o2", "room_O2-sharedassets0.assets-93.png", 1750, 780, scale=0.31),
    Fragment("security", "Security/Security-sharedassets0.assets-203.png", 280, 688,
             scale=0.91, crop=Rect(0, 0, 264, 370)),
    Fragment("storage", "Storage/room_storage-sharedassets0.assets-98.png", 555, 1070,
             scale=0.70),
    Fragment("communications", "room_broadcast-sharedassets0.assets-57.png", 690, 1245,
             scale=0.80, crop=Rect(0, 0, 423, 520)),
    Fragment("doors", "Doors-sharedassets0.assets-104.png", 0, 0,
             stage=Stage.DECALS, optional=True),
    Fragment("animations", "Animations-sharedassets0.assets-165.png", 0, 0,
             stage=Stage.EXTRAS, optional=True),
)

# Player frames on the crewmate sprite sheet: one idle pose and three walk poses.
PLAYER_FRAMES: Dict[str, Rect] = {
    "idle": Rect(2, 0, 152, 204),
    "walk1": Rect(13, 499, 92, 99),
    "walk2": Rect(15, 744, 84, 93),
    "walk3": Rect(10, 866, 80, 105),
}

LAYOUTS: Dict[str, GeometryModel] = {"skeld": SKELD}
FRAGMENT_TABLES: Dict[str, Tuple[Fragment, ...]] = {"skeld": SKELD_FRAGMENTS}


def get_layout(name: str) -> GeometryModel:
    try:
        geometry = LAYOUTS[name]
    except KeyError:
        raise ValueError(f"Unknown layout '{name}'. Known: {', '.join(sorted(LAYOUTS))}") from None
    log.debug(
        "Layout '%s': %d rooms (%d rects), %d corridors.",
        name,
        len(geometry.room_names()),
        len(geometry.rooms),
        len(geometry.corridors),
    )
    return geometry
