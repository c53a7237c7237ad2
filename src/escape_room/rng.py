from __future__ import annotations

from .world import Action

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1
_MULTIPLIER = 6364136223846793005
_INCREMENT = 1442695040888963407


def seed_state(seed: int) -> int:
    """Return the initial 64-bit state for an integer seed."""
    return (((seed & _MASK32) + _INCREMENT) * _MULTIPLIER + _INCREMENT) & _MASK64


class PcgStream:
    """
    Small PCG-style generator (http://www.pcg-random.org/).

    The same seed always yields the same float sequence, which keeps whole
    training runs reproducible.
    """

    def __init__(self, seed: int = 42):
        self.state = seed_state(seed)

    def seed(self, seed: int) -> None:
        self.state = seed_state(seed)

    def random(self) -> float:
        """Return a float in [0, 1) and advance the stream."""
        x = self.state
        rot = x >> 59
        self.state = (x * _MULTIPLIER + _INCREMENT) & _MASK64

        x ^= x >> 18
        y = (x >> 27) & _MASK32
        y = ((y >> rot) | (y << ((-rot) & 31))) & _MASK32
        return y / float(1 << 32)

    def random_action(self) -> Action:
        return Action(int(self.random() * len(Action)))
