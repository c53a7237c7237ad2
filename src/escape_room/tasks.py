from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from .env import EnvConfig, LearningConfig

ROOMS: Dict[str, str] = {
    # A single agent behind a door.
    "room1": "\n".join(
        [
            "====X====",
            "=.......=",
            "=.......=",
            "====H====",
            "=.......=",
            "=...@...=",
            "=.......=",
            "=.......=",
            "=========",
        ]
    ),
    # Two agents, glass shortcut next to the long way round.
    "room2": "\n".join(
        [
            "=====X===",
            "=.......=",
            "=~~~~=..=",
            "=....=..=",
            "=.@..=..=",
            "=....H..=",
            "=..@.=+.=",
            "=....=..=",
            "=========",
        ]
    ),
    # Crowded room with a bandage and two exits.
    "room3": "\n".join(
        [
            "X=======X",
            ".@.~.~.@.",
            "...=.=...",
            "=~==+==~=",
            "=.......=",
            "=.@...@.=",
            "=...@...=",
            "=.......=",
            "=========",
        ]
    ),
}


@dataclass
class TaskSpec:
    name: str
    description: str
    room: str
    env_config: EnvConfig
    optimism: float
    epochs: int = 3000  # epochs per run
    runs: int = 200  # independent runs, values reset before each


def _config(alpha: float, gamma: float, double: bool, optimism: float) -> EnvConfig:
    return EnvConfig(
        max_steps=200,
        seed=42,
        learning=LearningConfig(
            alpha=alpha,
            gamma=gamma,
            epsilon=0.005,
            optimism=optimism,
            use_double_q=double,
            use_epsilon=True,
        ),
    )


def task_presets() -> Dict[str, TaskSpec]:
    """
    Return the experiment setups behind the published learning curves.

    Learning parameters match those runs. The three room layouts are stand-ins
    with the same agent counts, since the rooms used in those runs are not bundled.
    """
    return {
        "room1": TaskSpec(
            name="room1",
            description="Single agent, one door between it and the exit; plain Q-learning.",
            room=ROOMS["room1"],
            env_config=_config(alpha=0.2, gamma=0.9, double=False, optimism=100.0),
            optimism=100.0,
        ),
        "room2": TaskSpec(
            name="room2",
            description="Two agents choosing between glass and a door; plain Q-learning.",
            room=ROOMS["room2"],
            env_config=_config(alpha=0.2, gamma=0.9, double=False, optimism=100.0),
            optimism=100.0,
        ),
        "room3": TaskSpec(
            name="room3",
            description="Five agents competing for two exits; plain Q-learning.",
            room=ROOMS["room3"],
            env_config=_config(alpha=0.2, gamma=0.9, double=False, optimism=100.0),
            optimism=100.0,
        ),
        "room1_double": TaskSpec(
            name="room1_double",
            description="Room 1 with double Q-learning.",
            room=ROOMS["room1"],
            env_config=_config(alpha=0.2, gamma=0.9, double=True, optimism=50.0),
            optimism=50.0,
        ),
        "room2_double": TaskSpec(
            name="room2_double",
            description="Room 2 with double Q-learning.",
            room=ROOMS["room2"],
            env_config=_config(alpha=0.3, gamma=0.8, double=True, optimism=50.0),
            optimism=50.0,
        ),
        "room3_double": TaskSpec(
            name="room3_double",
            description="Room 3 with double Q-learning.",
            room=ROOMS["room3"],
            env_config=_config(alpha=0.15, gamma=0.8, double=True, optimism=50.0),
            optimism=50.0,
        ),
    }
