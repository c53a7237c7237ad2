from __future__ import annotations

from typing import Optional, Sequence

from .rng import PcgStream
from .world import Action


def best_action(values_a: Sequence[float], values_b: Optional[Sequence[float]] = None) -> Action:
    """
    Action with the highest value, or the highest sum of both tables when
    ``values_b`` is given. Ties go to the first action in enumeration order.
    """
    best = Action.STAY
    best_value = float("-inf")
    for action in Action:
        value = values_a[action.value] + (values_b[action.value] if values_b is not None else 0.0)
        if value > best_value:
            best_value = value
            best = action
    return best


def select_action(
    values_a: Sequence[float],
    values_b: Optional[Sequence[float]],
    rng: PcgStream,
    epsilon: float,
    use_epsilon: bool = True,
) -> Action:
    if use_epsilon and rng.random() < epsilon:
        return rng.random_action()
    return best_action(values_a, values_b)
