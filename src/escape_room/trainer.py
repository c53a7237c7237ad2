from __future__ import annotations

import copy
import logging
import pickle
from typing import Callable, List, Optional

import numpy as np

from .env import EscapeRoomEnv
from .room_io import ResultsLog
from .tasks import TaskSpec

logger = logging.getLogger(__name__)


class EscapeTrainer:
    """Drives an environment epoch by epoch and keeps the learning curve."""

    def __init__(self, env: EscapeRoomEnv, results_path: Optional[str] = None) -> None:
        self.env = env
        self.results: Optional[ResultsLog] = None
        if results_path:
            self.open_results(results_path)

    def open_results(self, path: str) -> None:
        if self.results is not None:
            self.env.remove_epoch_listener(self.results)
        self.results = ResultsLog(path)
        self.env.add_epoch_listener(self.results)

    def train(self, epochs: int) -> np.ndarray:
        """Run ``epochs`` complete epochs and return their total rewards."""
        totals: List[float] = []
        while len(totals) < epochs:
            if self.env.step().epoch_ended:
                totals.append(self.env.history[-1].total_reward)
        return np.asarray(totals, dtype=np.float64)

    def greedy_epoch(self, render: Optional[Callable] = None) -> dict:
        """
        Play one epoch without exploration or learning side effects on the tables.
        Returns the total reward, turn count and optional rendered frames.
        """
        env = self.env
        if env.turn != 0:
            raise ValueError("greedy_epoch must start at an epoch boundary")
        saved_values = env.store.values.copy()
        saved_epsilon = env.config.learning.use_epsilon
        saved_epoch = env.epoch
        saved_rng = env.rng.state
        saved_history = copy.copy(env.history)
        listeners = env.epoch_listeners
        for listener in listeners:
            env.remove_epoch_listener(listener)
        env.set_epsilon_greedy(False)
        frames = []
        try:
            if render is not None:
                frames.append(render(env.room))
            while True:
                result = env.step()
                if render is not None and not result.epoch_ended:
                    frames.append(render(env.room))
                if result.epoch_ended:
                    break
        finally:
            env.store.values[...] = saved_values
            env.set_epsilon_greedy(saved_epsilon)
            env.epoch = saved_epoch
            env.rng.state = saved_rng
            env.history = saved_history
            for listener in listeners:
                env.add_epoch_listener(listener)
        summary = {"total_reward": result.epoch_total_reward, "turns": result.turn}
        if render is not None:
            summary["frames"] = frames
        return summary

    def save_checkpoint(self, path: str) -> None:
        payload = {
            "values": self.env.store.values,
            "epoch": self.env.epoch,
            "rng_state": self.env.rng.state,
            "learning": self.env.config.learning,
        }
        with open(path, "wb") as f:
            pickle.dump(payload, f)

    def load_checkpoint(self, path: str) -> None:
        with open(path, "rb") as f:
            payload = pickle.load(f)
        self.env.store.values[...] = payload["values"]
        self.env.epoch = payload.get("epoch", 0)
        self.env.rng.state = payload.get("rng_state", self.env.rng.state)
        learning = payload.get("learning")
        if learning is not None:
            self.env.config.learning = learning
            self.env.store.double = learning.use_double_q
            self.env.store.optimism = learning.optimism


def build_task_env(task: TaskSpec) -> EscapeRoomEnv:
    env = EscapeRoomEnv(config=copy.deepcopy(task.env_config))
    env.load_room_text(task.room)
    return env


def run_experiment(
    task: TaskSpec,
    *,
    runs: Optional[int] = None,
    epochs: Optional[int] = None,
    results_path: Optional[str] = None,
    env: Optional[EscapeRoomEnv] = None,
) -> np.ndarray:
    """
    Repeat independent training runs of a preset; the RNG is seeded once and
    the value tables are reset before each run.

    Returns a (runs, epochs) array of epoch total rewards.
    """
    runs = task.runs if runs is None else runs
    epochs = task.epochs if epochs is None else epochs
    env = env or build_task_env(task)
    trainer = EscapeTrainer(env, results_path=results_path)
    curves = np.zeros((runs, epochs), dtype=np.float64)
    for run in range(runs):
        env.reset_values(task.optimism)
        curves[run, :] = trainer.train(epochs)
        logger.info("%s: run %d/%d mean total reward %.3f", task.name, run + 1, runs, float(curves[run].mean()))
    return curves
