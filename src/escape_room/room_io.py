from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple, Union

import numpy as np

from .world import AGENT_SYMBOL, MAX_AGENTS, MAX_ROOM_SIZE, CellType, Room

RESULTS_HEADER = "epoch, total reward"


class RoomFormatError(ValueError):
    """Room text that cannot be turned into a room."""


@dataclass
class RoomLayout:
    width: int
    height: int
    cells: List[CellType] = field(default_factory=list)  # rows bottom (y = 0) first
    agent_starts: List[Tuple[int, int]] = field(default_factory=list)


def parse_room(text: str) -> RoomLayout:
    """
    Parse a room file: one line per row, one character per cell.

    The first line is the top row of the room, so rows are flipped while
    reading. Agent markers become floor cells with an agent on them.
    """
    rows = [line for line in text.replace("\r", "\n").split("\n") if line]
    if not rows:
        raise RoomFormatError("room is empty")
    width = len(rows[0])
    if width > MAX_ROOM_SIZE:
        raise RoomFormatError("room too wide")
    if len(rows) > MAX_ROOM_SIZE:
        raise RoomFormatError("room too tall")
    if any(len(row) != width for row in rows):
        raise RoomFormatError("inconsistent room dimensions")

    height = len(rows)
    layout = RoomLayout(width=width, height=height)
    grid: List[List[CellType]] = []
    # Agents are numbered in file order, top row first.
    for line_no, row in enumerate(rows):
        y = height - 1 - line_no
        cells = []
        for x, symbol in enumerate(row):
            if symbol == AGENT_SYMBOL:
                if len(layout.agent_starts) >= MAX_AGENTS:
                    raise RoomFormatError("too many agents specified")
                layout.agent_starts.append((x, y))
                cells.append(CellType.FLOOR)
                continue
            try:
                cells.append(CellType.from_symbol(symbol))
            except ValueError:
                raise RoomFormatError(f"unknown cell symbol {symbol!r}") from None
        grid.append(cells)
    for cells in reversed(grid):
        layout.cells.extend(cells)
    return layout


def read_room_file(path: Union[str, Path]) -> RoomLayout:
    return parse_room(Path(path).read_text(encoding="utf-8"))


def format_room(room: Room) -> str:
    """Room text in the same format ``parse_room`` reads; every agent is written as a start marker."""
    starts = {agent.position for agent in room.agents if not agent.escaped}
    lines = []
    for y in range(room.height - 1, -1, -1):
        line = []
        for x in range(room.width):
            line.append(AGENT_SYMBOL if (x, y) in starts else room.cells[x, y].symbol)
        lines.append("".join(line))
    return "\n".join(lines) + "\n"


class ResultsLog:
    """Append-only ``epoch, total reward`` file; any existing file is cleared."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(RESULTS_HEADER + "\n")

    def append(self, epoch: int, total_reward: float) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write("%d, %g\n" % (epoch, total_reward))

    def __call__(self, record) -> None:
        self.append(record.epoch, record.total_reward)


def read_results(path: Union[str, Path]) -> np.ndarray:
    """Load a results file as an (N, 2) array of epoch index and total reward."""
    data = np.loadtxt(path, delimiter=",", skiprows=1, ndmin=2)
    return data.reshape(-1, 2)
