from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from .world import Room

# Agents see a cross around themselves:
#       [ ]
#       [ ]
# [ ][ ] @ [ ][ ]
#       [ ]
#       [ ]
VISION_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-2, 0),
    (-1, 0),
    (1, 0),
    (2, 0),
    (0, -2),
    (0, -1),
    (0, 1),
    (0, 2),
)
NUM_SLOTS = len(VISION_OFFSETS)


class Sight(Enum):
    DEACTIVATED = 0  # floor, wall, glass, closed door or outside the room
    ACTIVATED = 1  # shards, open door, bandage
    HAS_AGENT = 2  # overrides the cell itself


NUM_SIGHTS = len(Sight)
NUM_PERCEPTIONS = NUM_SIGHTS**NUM_SLOTS

Perception = Tuple[int, ...]


def encode_perception(room: Room, x: int, y: int, occupancy: Optional[List[int]] = None) -> Perception:
    """Return the 8-slot perception vector seen from (x, y)."""
    if occupancy is None:
        occupancy = room.occupancy()
    slots = []
    for dx, dy in VISION_OFFSETS:
        cx, cy = x + dx, y + dy
        if not room.in_bounds(cx, cy):
            slots.append(Sight.DEACTIVATED.value)
        elif occupancy[cx] & (1 << cy):
            slots.append(Sight.HAS_AGENT.value)
        elif room.cells[cx, cy].activated:
            slots.append(Sight.ACTIVATED.value)
        else:
            slots.append(Sight.DEACTIVATED.value)
    return tuple(slots)


def perception_code(perception: Perception) -> int:
    """Base-3 number of a perception vector, first slot most significant."""
    code = 0
    for sight in perception:
        code = code * NUM_SIGHTS + sight
    return code


def decode_perception(code: int) -> Perception:
    slots = []
    for _ in range(NUM_SLOTS):
        code, sight = divmod(code, NUM_SIGHTS)
        slots.append(sight)
    return tuple(reversed(slots))
