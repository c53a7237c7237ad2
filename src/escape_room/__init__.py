"""Tabular Q-learning for agents escaping a small hazard-filled grid room."""

from .env import EnvConfig, EscapeRoomEnv, LearningConfig, RewardConfig, StepResult  # noqa: F401
from .qtable import ValueStore  # noqa: F401
from .rng import PcgStream  # noqa: F401
from .tasks import TaskSpec, task_presets  # noqa: F401
from .trainer import EscapeTrainer, run_experiment  # noqa: F401
from .world import ESCAPED, Action, AgentState, CellType, InvariantViolation, Room  # noqa: F401
