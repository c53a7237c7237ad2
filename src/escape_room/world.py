from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

MAX_ROOM_SIZE = 9
MAX_AGENTS = MAX_ROOM_SIZE * MAX_ROOM_SIZE
MAX_HEALTH = 2
AGENT_SYMBOL = "@"


class InvariantViolation(AssertionError):
    """Raised when the simulation reaches a state that only a bug can produce."""


class CellType(Enum):
    FLOOR = "."
    WALL = "="
    GLASS = "~"
    SHARDS = "^"
    DOOR = "H"
    OPEN_DOOR = "]"
    BANDAGE = "+"
    EXIT = "X"

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def passable(self) -> bool:
        return self in _PASSABLE

    @property
    def activated(self) -> bool:
        """Cells that look different once an agent has interacted with them."""
        return self in _ACTIVATED

    @classmethod
    def from_symbol(cls, symbol: str) -> "CellType":
        return cls(symbol)


_PASSABLE = frozenset(
    {CellType.FLOOR, CellType.SHARDS, CellType.OPEN_DOOR, CellType.BANDAGE, CellType.EXIT}
)
_ACTIVATED = frozenset({CellType.SHARDS, CellType.OPEN_DOOR, CellType.BANDAGE})


class Action(Enum):
    STAY = 0
    LEFT = 1
    RIGHT = 2
    DOWN = 3
    UP = 4

    @property
    def delta(self) -> Tuple[int, int]:
        if self == Action.LEFT:
            return (-1, 0)
        if self == Action.RIGHT:
            return (1, 0)
        if self == Action.DOWN:
            return (0, -1)
        if self == Action.UP:
            return (0, 1)
        return (0, 0)


class Sentinel(Enum):
    ESCAPED = auto()


ESCAPED = Sentinel.ESCAPED

Position = Union[Tuple[int, int], Sentinel]


@dataclass
class AgentState:
    position: Position
    health: int = MAX_HEALTH

    @property
    def escaped(self) -> bool:
        return self.position is ESCAPED

    @property
    def alive(self) -> bool:
        return self.health > 0

    @property
    def active(self) -> bool:
        """Alive agents that have not left the room yet take part in a turn."""
        return self.alive and not self.escaped

    def coords(self) -> Tuple[int, int]:
        if self.position is ESCAPED:
            raise InvariantViolation("escaped agent has no coordinates")
        return self.position


class Room:
    """Grid of cells indexed as ``cells[x, y]`` plus the agents standing in it."""

    def __init__(self, width: int, height: int, fill: CellType = CellType.FLOOR):
        if not (1 <= width <= MAX_ROOM_SIZE and 1 <= height <= MAX_ROOM_SIZE):
            raise ValueError(f"room must be between 1x1 and {MAX_ROOM_SIZE}x{MAX_ROOM_SIZE}")
        self.width = width
        self.height = height
        self.cells = np.full((width, height), fill, dtype=object)
        self.agents: List[AgentState] = []

    @classmethod
    def default(cls) -> "Room":
        return cls(MAX_ROOM_SIZE, MAX_ROOM_SIZE)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def cell(self, x: int, y: int) -> CellType:
        return self.cells[x, y]

    def set_cell(self, x: int, y: int, cell: CellType) -> None:
        self.cells[x, y] = cell

    def is_passable(self, x: int, y: int) -> bool:
        if not self.in_bounds(x, y):
            return False
        return self.cells[x, y].passable

    def clamp(self, x: int, y: int) -> Tuple[int, int]:
        return (min(max(x, 0), self.width - 1), min(max(y, 0), self.height - 1))

    def target_of(self, position: Tuple[int, int], action: Action) -> Tuple[int, int]:
        """Cell an agent at ``position`` aims for, clamped to the room."""
        dx, dy = action.delta
        return self.clamp(position[0] + dx, position[1] + dy)

    def add_agent(self, x: int, y: int, health: int = MAX_HEALTH) -> int:
        if len(self.agents) >= MAX_AGENTS:
            raise ValueError(f"at most {MAX_AGENTS} agents fit in a room")
        if not self.is_passable(x, y):
            raise ValueError(f"agent cannot stand on ({x}, {y})")
        if self.agent_at(x, y) is not None:
            raise ValueError(f"({x}, {y}) already holds an agent")
        self.agents.append(AgentState(position=(x, y), health=health))
        return len(self.agents) - 1

    def agent_at(self, x: int, y: int) -> Optional[int]:
        if self.in_bounds(x, y):
            for idx, agent in enumerate(self.agents):
                if agent.position == (x, y):
                    return idx
        return None

    def occupancy(self) -> List[int]:
        """Per-column bitmask of occupied cells: bit y of ``masks[x]`` is set when an agent stands at (x, y)."""
        masks = [0] * self.width
        for agent in self.agents:
            if agent.escaped:
                continue
            x, y = agent.position
            masks[x] |= 1 << y
        return masks

    def any_active(self) -> bool:
        return any(agent.active for agent in self.agents)

    def copy(self) -> "Room":
        clone = Room.__new__(Room)
        clone.width = self.width
        clone.height = self.height
        clone.cells = self.cells.copy()
        clone.agents = copy.deepcopy(self.agents)
        return clone

    def restore(self, other: "Room") -> None:
        """Overwrite this room with the contents of ``other`` in one go."""
        cells = other.cells.copy()
        agents = copy.deepcopy(other.agents)
        self.width, self.height = other.width, other.height
        self.cells, self.agents = cells, agents

    def same_state(self, other: "Room") -> bool:
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.cells, other.cells)
            and self.agents == other.agents
        )


def build_room(
    width: int,
    height: int,
    cells: Sequence[CellType],
    agent_starts: Sequence[Tuple[int, int]],
) -> Room:
    """
    Build a room from a flat cell list ordered by rows, bottom row (y = 0) first.

    Raises ValueError on any inconsistency so callers can fall back to a default room.
    """
    if not (1 <= width <= MAX_ROOM_SIZE):
        raise ValueError("room too wide")
    if not (1 <= height <= MAX_ROOM_SIZE):
        raise ValueError("room too tall")
    if len(cells) != width * height:
        raise ValueError("inconsistent room dimensions")
    if len(agent_starts) > MAX_AGENTS:
        raise ValueError("too many agents specified")
    room = Room(width, height)
    for idx, cell in enumerate(cells):
        if not isinstance(cell, CellType):
            raise ValueError(f"unknown cell {cell!r}")
        room.cells[idx % width, idx // width] = cell
    for x, y in agent_starts:
        room.add_agent(x, y)
    return room
