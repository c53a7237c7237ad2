from __future__ import annotations

from typing import Iterator, Optional, Tuple

import numpy as np

from .perception import NUM_PERCEPTIONS, NUM_SIGHTS, NUM_SLOTS, Perception, perception_code
from .world import MAX_HEALTH, MAX_ROOM_SIZE, Action, InvariantViolation

NUM_ACTIONS = len(Action)
NUM_TABLES = 2
NUM_STATES = MAX_ROOM_SIZE * MAX_ROOM_SIZE * MAX_HEALTH * NUM_PERCEPTIONS


def state_index(x: int, y: int, health: int, perception: Perception) -> int:
    """
    Flat index of a state, row-major over (x, y, health - 1, slot 0 .. slot 7).

    Every (x, y) inside a MAX_ROOM_SIZE square, health in 1..MAX_HEALTH and
    perception vector maps to a distinct index in [0, NUM_STATES).
    """
    if not (0 <= x < MAX_ROOM_SIZE and 0 <= y < MAX_ROOM_SIZE):
        raise InvariantViolation(f"position ({x}, {y}) outside the value table")
    if not (1 <= health <= MAX_HEALTH):
        raise InvariantViolation(f"no values are kept for health {health}")
    if len(perception) != NUM_SLOTS or any(not (0 <= s < NUM_SIGHTS) for s in perception):
        raise InvariantViolation(f"malformed perception {perception!r}")
    return ((x * MAX_ROOM_SIZE + y) * MAX_HEALTH + (health - 1)) * NUM_PERCEPTIONS + perception_code(perception)


def entry_index(x: int, y: int, health: int, perception: Perception, action: Action) -> int:
    return state_index(x, y, health, perception) * NUM_ACTIONS + action.value


def key_space() -> Iterator[Tuple[int, int, int, int]]:
    """Yield every (x, y, health, perception code) the table holds values for."""
    for x in range(MAX_ROOM_SIZE):
        for y in range(MAX_ROOM_SIZE):
            for health in range(1, MAX_HEALTH + 1):
                for code in range(NUM_PERCEPTIONS):
                    yield x, y, health, code


class ValueStore:
    """Dense action-value tables; the second table is only read in double learning mode."""

    def __init__(self, optimism: float = 50.0, double: bool = False):
        self.optimism = float(optimism)
        self.double = double
        self.values = np.full((NUM_TABLES, NUM_STATES * NUM_ACTIONS), self.optimism, dtype=np.float64)

    def lookup(
        self, x: int, y: int, health: int, perception: Perception
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Return writable views on the five action values of a state."""
        start = state_index(x, y, health, perception) * NUM_ACTIONS
        values_a = self.values[0, start : start + NUM_ACTIONS]
        values_b = self.values[1, start : start + NUM_ACTIONS] if self.double else None
        return values_a, values_b

    def reset(self, value: float) -> None:
        self.optimism = float(value)
        self.values.fill(self.optimism)
