import pathlib
import sys

import numpy as np

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

from escape_room import EnvConfig, EscapeRoomEnv, EscapeTrainer, LearningConfig, run_experiment, task_presets  # noqa: E402
from escape_room.room_io import read_results  # noqa: E402
from escape_room.trainer import build_task_env  # noqa: E402


def small_env():
    cfg = EnvConfig(max_steps=20, seed=5, learning=LearningConfig(epsilon=0.2))
    env = EscapeRoomEnv(config=cfg)
    env.load_room_text("=X=\n.H.\n@.@")
    return env


def test_trainer_train_and_checkpoint(tmp_path):
    env = small_env()
    results = tmp_path / "results.csv"
    trainer = EscapeTrainer(env, results_path=str(results))
    totals = trainer.train(4)
    assert totals.shape == (4,)
    assert list(totals) == [record.total_reward for record in env.history]
    assert env.turn == 0
    assert read_results(results).shape == (4, 2)

    ckpt = tmp_path / "ckpt.pkl"
    trainer.save_checkpoint(str(ckpt))
    saved = env.store.values.copy()
    # mutate trainer state and then load
    env.reset_values(0.0)
    assert env.epoch == 0
    trainer.load_checkpoint(str(ckpt))
    assert env.epoch == 4
    assert np.array_equal(env.store.values, saved)


def test_greedy_epoch_leaves_learning_state_alone():
    env = small_env()
    trainer = EscapeTrainer(env)
    trainer.train(2)
    values = env.store.values.copy()
    rng_state = env.rng.state
    frames = []
    summary = trainer.greedy_epoch(render=lambda room: frames.append(room.copy()) or len(frames))
    assert 1 <= summary["turns"] <= 20
    assert len(summary["frames"]) == summary["turns"]
    assert np.array_equal(env.store.values, values)
    assert env.rng.state == rng_state
    assert env.epoch == 2
    assert len(env.history) == 2


def test_presets_load_cleanly():
    presets = task_presets()
    assert set(presets) == {"room1", "room2", "room3", "room1_double", "room2_double", "room3_double"}
    counts = {}
    for name, task in presets.items():
        env = EscapeRoomEnv(config=task.env_config)
        assert env.load_room_text(task.room), name
        counts[name] = len(env.room.agents)
        assert task.env_config.learning.use_double_q == name.endswith("_double")
    assert counts["room1"] == 1 and counts["room2"] == 2 and counts["room3"] == 5


def test_presets_use_published_learning_parameters():
    expected = {
        "room1": (0.2, 0.9, 100.0),
        "room2": (0.2, 0.9, 100.0),
        "room3": (0.2, 0.9, 100.0),
        "room1_double": (0.2, 0.9, 50.0),
        "room2_double": (0.3, 0.8, 50.0),
        "room3_double": (0.15, 0.8, 50.0),
    }
    for name, task in task_presets().items():
        learning = task.env_config.learning
        assert (learning.alpha, learning.gamma, learning.optimism) == expected[name], name
        assert learning.epsilon == 0.005
        assert task.optimism == learning.optimism


def test_run_experiment_is_reproducible(tmp_path):
    task = task_presets()["room1_double"]
    task.env_config.max_steps = 15

    def run(path):
        return run_experiment(task, runs=2, epochs=3, results_path=str(path))

    first = run(tmp_path / "a.csv")
    second = run(tmp_path / "b.csv")
    assert first.shape == (2, 3)
    assert np.array_equal(first, second)
    # epoch numbering restarts with every run
    assert read_results(tmp_path / "a.csv")[:, 0].tolist() == [0, 1, 2, 0, 1, 2]
    assert build_task_env(task).room.agents[0].position == (4, 3)
