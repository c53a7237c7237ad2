from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Deque, List, Optional, Sequence, Tuple, Union

import numpy as np

from .collisions import ClaimMap, MoveRecord
from .perception import Perception, encode_perception
from .policy import best_action, select_action
from .qtable import ValueStore
from .rng import PcgStream
from .room_io import RoomFormatError, format_room, parse_room
from .world import (
    ESCAPED,
    MAX_HEALTH,
    AgentState,
    CellType,
    InvariantViolation,
    Room,
    build_room,
)

logger = logging.getLogger(__name__)


@dataclass
class RewardConfig:
    escape_reward: float = 1000.0
    death_penalty: float = -1000.0
    idle_penalty: float = -1.0


@dataclass
class LearningConfig:
    alpha: float = 0.5  # learning rate
    gamma: float = 0.95  # discount
    epsilon: float = 0.05  # exploration probability
    optimism: float = 50.0  # initial action value
    use_double_q: bool = False
    use_epsilon: bool = True  # greedy only when False


@dataclass
class EnvConfig:
    max_steps: int = 200  # turns per epoch
    seed: int = 42
    history_limit: int = 10_000  # completed epochs kept in memory
    learning: LearningConfig = field(default_factory=lambda: LearningConfig())
    reward: RewardConfig = field(default_factory=lambda: RewardConfig())


@dataclass
class StepResult:
    epoch_ended: bool
    epoch_total_reward: float
    epoch: int  # epoch the turn belonged to
    turn: int  # turns taken so far in that epoch


@dataclass
class EpochRecord:
    epoch: int
    total_reward: float
    turns: int


@dataclass(frozen=True)
class RoomView:
    width: int
    height: int
    cells: np.ndarray
    agents: Tuple[AgentState, ...]


@dataclass
class _Decision:
    record: MoveRecord
    values_a: np.ndarray
    values_b: Optional[np.ndarray]


EpochListener = Callable[[EpochRecord], None]


class EscapeRoomEnv:
    """
    Simulation context: room, agents, value tables, RNG stream and epoch counters.

    Every turn all active agents pick an action, destination conflicts are
    resolved, the room is updated, and each agent learns from its reward.
    """

    def __init__(self, config: Optional[EnvConfig] = None, room: Optional[Room] = None):
        self.config = config or EnvConfig()
        self._validate_config()
        learning = self.config.learning
        self.rng = PcgStream(self.config.seed)
        self.store = ValueStore(optimism=learning.optimism, double=learning.use_double_q)
        self.room = room if room is not None else Room.default()
        self.turn = 0
        self.epoch = 0
        self.total_reward = 0.0
        self.history: Deque[EpochRecord] = deque(maxlen=self.config.history_limit)
        self._snapshot: Optional[Room] = None
        self._listeners: List[EpochListener] = []

    # Room loading --------------------------------------------------------
    def load_room(
        self,
        width: int,
        height: int,
        cells: Sequence[CellType],
        agent_starts: Sequence[Tuple[int, int]],
    ) -> bool:
        """Replace room and agents; falls back to the default empty room on bad input."""
        try:
            room = build_room(width, height, cells, agent_starts)
        except ValueError as exc:
            logger.warning("cannot load room (%s); loaded default room", exc)
            self._install_room(Room.default())
            return False
        self._install_room(room)
        return True

    def load_room_text(self, text: str) -> bool:
        try:
            layout = parse_room(text)
        except RoomFormatError as exc:
            logger.warning("cannot load room (%s); loaded default room", exc)
            self._install_room(Room.default())
            return False
        return self.load_room(layout.width, layout.height, layout.cells, layout.agent_starts)

    def load_room_file(self, path: Union[str, Path]) -> bool:
        path = Path(path)
        logger.info("loading %s", path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("cannot read %s (%s); loaded default room", path, exc)
            self._install_room(Room.default())
            return False
        return self.load_room_text(text)

    def save_room_file(self, path: Union[str, Path]) -> None:
        """Write the epoch-start layout (or the current one between epochs) to ``path``."""
        source = self._snapshot if self._snapshot is not None else self.room
        Path(path).write_text(format_room(source), encoding="utf-8")

    def _install_room(self, room: Room) -> None:
        self.room = room
        self._snapshot = None
        self.turn = 0
        self.total_reward = 0.0

    # Parameters ----------------------------------------------------------
    def _validate_config(self) -> None:
        cfg = self.config
        if cfg.max_steps < 1:
            raise ValueError("max_steps must be >= 1")
        if cfg.history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        for name in ("alpha", "gamma", "epsilon"):
            value = getattr(cfg.learning, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")

    def _set_unit(self, name: str, value: float) -> bool:
        if not 0.0 <= value <= 1.0:
            logger.warning("invalid %s %r: must be in [0,1]; keeping %g", name, value, getattr(self.config.learning, name))
            return False
        setattr(self.config.learning, name, float(value))
        return True

    def set_learning_rate(self, alpha: float) -> bool:
        return self._set_unit("alpha", alpha)

    def set_discount(self, gamma: float) -> bool:
        return self._set_unit("gamma", gamma)

    def set_exploration(self, epsilon: float) -> bool:
        return self._set_unit("epsilon", epsilon)

    def set_double_learning(self, enabled: bool) -> bool:
        if enabled not in (True, False, 0, 1):
            logger.warning("invalid double learning flag %r: must be 0 or 1", enabled)
            return False
        self.config.learning.use_double_q = bool(enabled)
        self.store.double = bool(enabled)
        return True

    def set_epsilon_greedy(self, enabled: bool) -> bool:
        if enabled not in (True, False, 0, 1):
            logger.warning("invalid epsilon greedy flag %r: must be 0 or 1", enabled)
            return False
        self.config.learning.use_epsilon = bool(enabled)
        return True

    def set_max_steps(self, max_steps: int) -> bool:
        if max_steps < 1:
            logger.warning("invalid max steps %r: must be >= 1; keeping %d", max_steps, self.config.max_steps)
            return False
        self.config.max_steps = int(max_steps)
        return True

    def seed(self, seed: int) -> None:
        self.config.seed = seed
        self.rng.seed(seed)

    def reset_values(self, optimism: float) -> None:
        """Reinitialise both value tables and restart epoch numbering."""
        self.config.learning.optimism = float(optimism)
        self.store.reset(optimism)
        self.epoch = 0

    def add_epoch_listener(self, listener: EpochListener) -> None:
        self._listeners.append(listener)

    @property
    def epoch_listeners(self) -> List[EpochListener]:
        return list(self._listeners)

    def remove_epoch_listener(self, listener: EpochListener) -> None:
        self._listeners.remove(listener)

    # Queries -------------------------------------------------------------
    def probe_values(
        self,
        position: Tuple[int, int],
        health: int,
        perception: Optional[Perception] = None,
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """Copies of the action values for a state; perception defaults to what the live room shows."""
        x, y = position
        if not self.room.in_bounds(x, y):
            raise InvariantViolation(f"probe position ({x}, {y}) outside the room")
        if perception is None:
            perception = encode_perception(self.room, x, y)
        values_a, values_b = self.store.lookup(x, y, health, perception)
        return values_a.copy(), (values_b.copy() if values_b is not None else None)

    def snapshot_state(self) -> RoomView:
        cells = self.room.cells.copy()
        cells.setflags(write=False)
        agents = tuple(AgentState(position=a.position, health=a.health) for a in self.room.agents)
        return RoomView(width=self.room.width, height=self.room.height, cells=cells, agents=agents)

    def _lookup(self, agent_idx: int) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        agent = self.room.agents[agent_idx]
        if not agent.active:
            raise InvariantViolation(f"agent {agent_idx} is not active")
        x, y = agent.coords()
        if not self.room.in_bounds(x, y):
            raise InvariantViolation(f"agent {agent_idx} outside the room at ({x}, {y})")
        return self.store.lookup(x, y, agent.health, encode_perception(self.room, x, y))

    # Simulation ----------------------------------------------------------
    def step(self) -> StepResult:
        if self.turn == 0:
            self._snapshot = self.room.copy()

        decisions = self._decide()
        self._apply(decisions)
        for decision in decisions:
            reward, terminal = self._reward(decision.record.agent)
            self.total_reward += reward
            self._learn(decision, reward, terminal)

        self.turn += 1
        result = StepResult(
            epoch_ended=False,
            epoch_total_reward=self.total_reward,
            epoch=self.epoch,
            turn=self.turn,
        )
        if self.turn >= self.config.max_steps or not self.room.any_active():
            result.epoch_ended = True
            self._end_epoch()
        return result

    def run_turns(self, n: int) -> List[StepResult]:
        return [self.step() for _ in range(n)]

    def run_epochs(self, n: int) -> List[EpochRecord]:
        finished: List[EpochRecord] = []
        while len(finished) < n:
            if self.step().epoch_ended:
                finished.append(self.history[-1])
        return finished

    def _decide(self) -> List[_Decision]:
        learning = self.config.learning
        claim_map = ClaimMap()
        decisions: List[_Decision] = []
        for idx, agent in enumerate(self.room.agents):
            if not agent.active:
                continue
            start = agent.coords()
            values_a, values_b = self._lookup(idx)
            action = select_action(values_a, values_b, self.rng, learning.epsilon, learning.use_epsilon)
            target = self.room.target_of(start, action)
            destination = target if self.room.is_passable(*target) else start
            record = MoveRecord(agent=idx, start=start, action=action, destination=destination)
            claim_map.claim(record)
            decisions.append(_Decision(record=record, values_a=values_a, values_b=values_b))
        return decisions

    def _apply(self, decisions: List[_Decision]) -> None:
        for decision in decisions:
            record = decision.record
            if record.blocked:
                # Pushing against glass or a door changes it instead of moving.
                x, y = self.room.target_of(record.start, record.action)
                cell = self.room.cell(x, y)
                if cell == CellType.GLASS:
                    self.room.set_cell(x, y, CellType.SHARDS)
                elif cell == CellType.DOOR:
                    self.room.set_cell(x, y, CellType.OPEN_DOOR)
            else:
                if not self.room.is_passable(*record.destination):
                    raise InvariantViolation(f"agent {record.agent} routed onto {record.destination}")
                self.room.agents[record.agent].position = record.destination

    def _reward(self, agent_idx: int) -> Tuple[float, bool]:
        rewards = self.config.reward
        agent = self.room.agents[agent_idx]
        x, y = agent.coords()
        cell = self.room.cell(x, y)
        if cell == CellType.EXIT:
            agent.position = ESCAPED
            return rewards.escape_reward, True
        if cell == CellType.SHARDS:
            agent.health -= 1
            if agent.health == 0:
                return rewards.death_penalty, True
            return rewards.idle_penalty, False
        if cell == CellType.BANDAGE:
            self.room.set_cell(x, y, CellType.FLOOR)
            if agent.health < MAX_HEALTH:
                agent.health = MAX_HEALTH
            return rewards.idle_penalty, False
        if cell in (CellType.FLOOR, CellType.OPEN_DOOR):
            return rewards.idle_penalty, False
        raise InvariantViolation(f"agent {agent_idx} stands on impassable {cell.name}")

    def _learn(self, decision: _Decision, reward: float, terminal: bool) -> None:
        learning = self.config.learning
        alpha, gamma = learning.alpha, learning.gamma
        act = decision.record.action.value

        if decision.values_b is None:
            future = 0.0  # terminal states are worth nothing
            if not terminal:
                next_a, _ = self._lookup(decision.record.agent)
                future = float(next_a[best_action(next_a).value])
            q = decision.values_a
            q[act] += alpha * (reward + gamma * future - q[act])
            return

        cross_a = cross_b = 0.0
        if not terminal:
            next_a, next_b = self._lookup(decision.record.agent)
            if next_b is None:
                raise InvariantViolation("double learning switched off in the middle of a turn")
            cross_a = float(next_a[best_action(next_b).value])
            cross_b = float(next_b[best_action(next_a).value])

        # Only one table learns per update.
        if self.rng.random() < 0.5:
            q = decision.values_a
            q[act] += alpha * (reward + gamma * cross_b - q[act])
        else:
            q = decision.values_b
            q[act] += alpha * (reward + gamma * cross_a - q[act])

    def _end_epoch(self) -> None:
        record = EpochRecord(epoch=self.epoch, total_reward=self.total_reward, turns=self.turn)
        self.history.append(record)
        logger.info("epoch %d: RT = %g", record.epoch + 1, record.total_reward)
        for listener in self._listeners:
            listener(record)

        if self._snapshot is not None:
            self.room.restore(self._snapshot)
        self._snapshot = None
        self.turn = 0
        self.total_reward = 0.0
        self.epoch += 1
