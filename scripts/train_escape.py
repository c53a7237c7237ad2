"""
Train agents on one of the preset rooms (or a room file) and optionally save
an animation of a greedy epoch once training is done.
"""

import argparse
import logging
from copy import deepcopy
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT / "src"))

import imageio.v3 as iio  # noqa: E402
import numpy as np  # noqa: E402

from escape_room import EscapeRoomEnv, EscapeTrainer, run_experiment, task_presets  # noqa: E402
from escape_room.renderer import render_q_values, render_room, render_room_image  # noqa: E402


def save_animation(frames, path: Path, delay: float) -> None:
    """Persist frames to disk as a GIF (or other imageio-supported format)."""
    if not frames:
        return
    durations = [delay for _ in frames]
    iio.imwrite(path, frames, duration=durations)
    print(f"Saved animation to {path}")


def main():
    parser = argparse.ArgumentParser(description="Train escape room agents with tabular Q-learning.")
    parser.add_argument("--task", type=str, default="room1", choices=list(task_presets().keys()))
    parser.add_argument("--room", type=str, default=None, help="Room file overriding the preset room.")
    parser.add_argument("--epochs", type=int, default=None, help="Epochs per run (preset default if unset).")
    parser.add_argument("--runs", type=int, default=1, help="Independent runs; values are reset before each.")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--results", type=str, default=None, help="Optional epoch/total reward results file.")
    parser.add_argument("--save_animation", type=str, default=None, help="Save a greedy epoch as an animation.")
    parser.add_argument("--animate_delay", type=float, default=0.2, help="Delay between animation frames (seconds).")
    parser.add_argument("--cell_size", type=int, default=16, help="Pixel size per grid cell in the render.")
    parser.add_argument("--verbose", action="store_true", help="Log every finished epoch.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(name)s: %(message)s")

    preset = task_presets()[args.task]
    env = EscapeRoomEnv(config=deepcopy(preset.env_config))
    if args.seed is not None:
        env.seed(args.seed)
    if args.room:
        env.load_room_file(args.room)
    else:
        env.load_room_text(preset.room)
    print(render_room(env.room))

    epochs = args.epochs or preset.epochs
    curves = run_experiment(preset, runs=args.runs, epochs=epochs, results_path=args.results, env=env)
    for run, curve in enumerate(curves):
        tail = curve[-max(1, epochs // 10) :]
        print(
            f"Run {run+1}/{args.runs}: mean total reward={float(np.mean(curve)):.3f}, "
            f"last 10% mean={float(np.mean(tail)):.3f}, best={float(np.max(curve)):.3f}"
        )

    print("Greedy actions (full health):")
    print(render_q_values(env))

    if args.save_animation:
        trainer = EscapeTrainer(env)
        summary = trainer.greedy_epoch(render=lambda room: render_room_image(room, cell_size=args.cell_size))
        print(f"Greedy epoch: total reward={summary['total_reward']:.3f}, turns={summary['turns']}")
        save_animation(summary["frames"], Path(args.save_animation).resolve(), delay=args.animate_delay)


if __name__ == "__main__":
    main()
