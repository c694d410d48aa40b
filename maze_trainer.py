"""Trains a REINFORCE policy and a MaxRL policy side by side on one maze.

Both policies see the same environment, starts and start weighting, and are
evaluated on the same schedule, so their metrics can be compared directly.
"""
from typing import Dict, List, Optional

import numpy as np

from maze_config import DEFAULT_HARD_FRACTION, MAX_HISTORY, TrainingConfig
from maze_env import (
    DEFAULT_EASY_START,
    DEFAULT_GOAL,
    DEFAULT_HARD_START,
    MAZE_TRAIN,
    GridWorld,
)
from maze_generator import MazeLayout, validate_starts
from maze_logging import get_logger
from maze_policy import TabularSoftmaxPolicy
from maze_search import bfs_shortest_path
from maze_training import (
    UPDATES,
    evaluate_from_start,
    generate_heatmap,
    generate_heatmap_multistart,
    pass_at_k,
)

logger = get_logger(__name__)

METHODS = ("reinforce", "maxrl")


class InvalidMazeError(ValueError):
    """A start cannot reach the goal in the requested maze."""


def _pos(p):
    return (int(p[0]), int(p[1]))


class SideBySideTrainer:
    def __init__(self, config: Optional[TrainingConfig] = None, layout: Optional[MazeLayout] = None,
                 hard_fraction: float = DEFAULT_HARD_FRACTION):
        self.config = config or TrainingConfig.for_mode("multi")
        self.hard_fraction = hard_fraction

        seeds = np.random.SeedSequence(self.config.seed).spawn(len(METHODS) + 1)
        self.rngs = {m: np.random.default_rng(s) for m, s in zip(METHODS, seeds)}
        self.eval_rng = np.random.default_rng(seeds[-1])

        self.load_layout(layout or default_layout())

    # --- Maze / start configuration ---

    def load_layout(self, layout: MazeLayout):
        """Swap in a new maze and restart training from uniform policies."""
        hard, easy, goal = _pos(layout.hard_start), _pos(layout.easy_start), _pos(layout.goal)
        if not validate_starts(layout.grid, [hard, easy], goal):
            raise InvalidMazeError("some starts cannot reach the goal")

        self.layout = MazeLayout(grid=[list(r) for r in layout.grid], easy_start=easy,
                                 hard_start=hard, goal=goal)
        self.env = GridWorld(self.layout.grid, hard, goal)
        self._configure_starts()
        logger.info("loaded %dx%d maze, hard=%s easy=%s goal=%s",
                    self.env.height, self.env.width, hard, easy, goal)
        self.reset_training()

    def _configure_starts(self):
        if self.config.multi_start:
            self.starts = [self.layout.hard_start, self.layout.easy_start]
            self.start_probs = [self.hard_fraction, 1.0 - self.hard_fraction]
        else:
            self.starts = [self.layout.hard_start]
            self.start_probs = [1.0]

    def set_hard_fraction(self, fraction):
        """Share of training batches drawn from the hard start; training keeps going."""
        self.hard_fraction = min(1.0, max(0.0, float(fraction)))
        self._configure_starts()

    def set_mode(self, mode):
        self.config = self.config.with_mode(mode)
        self._configure_starts()
        self.reset_training()

    # --- Training ---

    def reset_training(self):
        self.policies: Dict[str, TabularSoftmaxPolicy] = {
            m: TabularSoftmaxPolicy(self.env.height, self.env.width) for m in METHODS
        }
        self.step = 0
        self.last_k = {m: 0 for m in METHODS}
        self.history = self._empty_history()
        self.refresh_eval()
        self.record_history()

    def train(self, steps=1):
        """Run ``steps`` lock-step updates of both policies; returns K per step."""
        cfg = self.config
        ks = []
        for _ in range(steps):
            for m in METHODS:
                self.last_k[m] = UPDATES[m](self.policies[m], self.env, self.starts, self.start_probs,
                                            cfg.n, cfg.lr, cfg.max_steps, self.rngs[m])
            self.step += 1
            ks.append(dict(self.last_k))

            if self.step % cfg.eval_interval == 0:
                self.refresh_eval()
                self.record_history()
        return ks

    # --- Evaluation ---

    def refresh_eval(self):
        cfg = self.config
        self.metrics = {}
        self.heatmaps = {}
        self.paths = {}

        for m, policy in self.policies.items():
            if cfg.multi_start:
                visits, paths = generate_heatmap_multistart(policy, self.env, self.starts,
                                                            max_steps=cfg.max_steps, rng=self.eval_rng)
                self.metrics[m] = {
                    f"start_{i}_p1": evaluate_from_start(policy, self.env, s, cfg.n_eval,
                                                         cfg.max_steps, self.eval_rng)
                    for i, s in enumerate(self.starts)
                }
            else:
                visits, paths = generate_heatmap(policy, self.env, self.starts[0],
                                                 max_steps=cfg.max_steps, rng=self.eval_rng)
                p1 = evaluate_from_start(policy, self.env, self.starts[0], cfg.n_eval,
                                         cfg.max_steps, self.eval_rng)
                start_row, start_col = self.starts[0]
                self.metrics[m] = {
                    "pass_at_1": p1,
                    "pass_at_k": pass_at_k(p1, cfg.n),
                    "k": cfg.n,
                    "start_entropy": policy.entropy(start_row, start_col),
                }
            self.heatmaps[m] = visits
            self.paths[m] = paths

        logger.debug("step %d eval: %s", self.step, self.metrics)

    def _empty_history(self):
        if self.config.multi_start:
            keys = [f"start_{i}_p1" for i in range(len(self.starts))]
        else:
            keys = ["pass_at_1", "pass_at_k"]
        return {m: {"steps": [], "K": [], **{k: [] for k in keys}} for m in METHODS}

    def record_history(self):
        for m in METHODS:
            h = self.history[m]
            h["steps"].append(self.step)
            h["K"].append(self.last_k[m])
            for key, value in self.metrics[m].items():
                if key in h:
                    h[key].append(value)
            for series in h.values():
                del series[:-MAX_HISTORY]

    def shortest_distances(self) -> List[Optional[int]]:
        return [bfs_shortest_path(self.env.maze, s, self.env.goal).distance for s in self.starts]

    def snapshot(self):
        """JSON-friendly view of everything a renderer needs."""
        return {
            "step": self.step,
            "mode": self.config.mode,
            "maze": self.env.get_layout(),
            "starts": [list(s) for s in self.starts],
            "start_probs": list(self.start_probs),
            "goal": list(self.env.goal),
            "bfs_distances": self.shortest_distances(),
            "max_steps": self.config.max_steps,
            "last_k": dict(self.last_k),
            "metrics": self.metrics,
            "heatmaps": {m: v.tolist() for m, v in self.heatmaps.items()},
            "paths": {m: _to_lists(p) for m, p in self.paths.items()},
            "history": self.history,
        }


def _to_lists(value):
    if isinstance(value, (list, tuple)):
        return [_to_lists(v) for v in value]
    return value


def default_layout(grid=MAZE_TRAIN):
    return MazeLayout(grid=[list(r) for r in grid], easy_start=DEFAULT_EASY_START,
                      hard_start=DEFAULT_HARD_START, goal=DEFAULT_GOAL)
