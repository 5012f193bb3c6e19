# Shared constants for the mapgen packages to avoid circular imports.

MAP_W = 2048
MAP_H = 1872
MASK_SCALE = 4

# Room-index sentinels; values >= 0 index GeometryModel.rooms.
CORRIDOR = -1
NON_WALKABLE = -2

# Space overlay tint (#0a0a12).
SPACE_TINT = (10, 10, 18)

MASK_FILE = "collision-mask.png"
OVERLAY_FILE = "space-overlay.png"
BACKGROUND_FILE = "map-background.png"
DEBUG_DIR = "debug"
SPRITES_DIR = "sprites"
