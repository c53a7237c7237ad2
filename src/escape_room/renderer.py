from __future__ import annotations

from typing import List, Tuple

import numpy as np

from .env import EscapeRoomEnv
from .policy import best_action
from .world import MAX_HEALTH, Action, AgentState, CellType, Room

_ACTION_CHARS = {
    Action.STAY: "o",
    Action.LEFT: "<",
    Action.RIGHT: ">",
    Action.DOWN: "v",
    Action.UP: "^",
}


def _agent_char(agent: AgentState) -> str:
    if agent.health == MAX_HEALTH:
        return "@"
    if agent.health > 0:
        return "Q"
    return "x"


def render_room(room: Room) -> str:
    """Return an ASCII rendering of the room, top row first."""
    display = [[room.cells[x, y].symbol for x in range(room.width)] for y in range(room.height)]
    for agent in room.agents:
        if agent.escaped:
            continue
        x, y = agent.position
        display[y][x] = _agent_char(agent)
    return "\n".join("".join(row) for row in reversed(display))


def render_q_values(env: EscapeRoomEnv, health: int = MAX_HEALTH) -> str:
    """
    Greedy action for every passable cell as seen from the live room, top row first.
    Impassable cells keep their room symbol.
    """
    room = env.room
    lines: List[str] = []
    for y in range(room.height - 1, -1, -1):
        line = []
        for x in range(room.width):
            if not room.is_passable(x, y):
                line.append(room.cells[x, y].symbol)
                continue
            values_a, values_b = env.probe_values((x, y), health)
            line.append(_ACTION_CHARS[best_action(values_a, values_b)])
        lines.append("".join(line))
    return "\n".join(lines)


_CELL_COLORS = {
    CellType.FLOOR: (230, 230, 230),
    CellType.WALL: (40, 40, 40),
    CellType.GLASS: (170, 210, 240),
    CellType.SHARDS: (120, 150, 190),
    CellType.DOOR: (140, 90, 40),
    CellType.OPEN_DOOR: (200, 160, 110),
    CellType.BANDAGE: (240, 240, 255),
    CellType.EXIT: (80, 180, 80),
}


def _agent_color(agent: AgentState) -> Tuple[int, int, int]:
    if agent.health == MAX_HEALTH:
        return (220, 60, 60)
    if agent.health > 0:
        return (230, 150, 60)
    return (90, 90, 90)


def render_room_image(room: Room, cell_size: int = 16) -> np.ndarray:
    """Render the room to an RGB image array, top row at the top of the image."""
    w, h = room.width, room.height
    img = np.zeros((h * cell_size, w * cell_size, 3), dtype=np.uint8)

    def fill_cell(x: int, y: int, color: Tuple[int, int, int], margin: int = 0):
        r0 = (h - 1 - y) * cell_size
        c0 = x * cell_size
        img[r0 + margin : r0 + cell_size - margin, c0 + margin : c0 + cell_size - margin, :] = color

    for x in range(w):
        for y in range(h):
            fill_cell(x, y, _CELL_COLORS[room.cells[x, y]])

    # Agents drawn inset so the cell underneath stays visible.
    for agent in room.agents:
        if agent.escaped:
            continue
        x, y = agent.position
        fill_cell(x, y, _agent_color(agent), margin=max(1, cell_size // 5))

    return img
