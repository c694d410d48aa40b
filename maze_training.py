"""Rollouts, the two policy-gradient updates and Monte Carlo evaluation.

REINFORCE climbs E[p(success)] with a batch-mean baseline. MaxRL climbs
E[log p(success)] with self-normalised weights ``r_i / K - 1 / N``, so a
rare success gets a large share of the step.
"""
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from maze_config import HEATMAP_ROLLOUTS, HEATMAP_ROLLOUTS_PER_START

Position = Tuple[int, int]
StateAction = Tuple[int, int, int]


@dataclass(frozen=True)
class Trajectory:
    path: List[Position]
    state_actions: List[StateAction]
    reached_goal: bool


def _rng(rng):
    return rng if rng is not None else np.random.default_rng()


def rollout(policy, env, start=None, max_steps=80, rng=None) -> Trajectory:
    rng = _rng(rng)
    pos = (int(start[0]), int(start[1])) if start is not None else env.start
    path = [pos]
    state_actions = []

    for _ in range(max_steps):
        if pos == env.goal:
            return Trajectory(path, state_actions, True)
        action = policy.sample_action(pos[0], pos[1], rng)
        state_actions.append((pos[0], pos[1], action))
        pos, _ = env.step(pos, action)
        path.append(pos)

    return Trajectory(path, state_actions, pos == env.goal)


def choose_weighted(probs, rng):
    r = rng.random()
    cumulative = 0.0
    for i, p in enumerate(probs):
        cumulative += p
        if r < cumulative:
            return i
    return len(probs) - 1


def _sample_batch(policy, env, starts, start_probs, n, max_steps, rng):
    trajectories = [
        rollout(policy, env, starts[choose_weighted(start_probs, rng)], max_steps, rng)
        for _ in range(n)
    ]
    rewards = np.array([1.0 if t.reached_goal else 0.0 for t in trajectories])
    return trajectories, rewards


def _apply_gradient(policy, trajectories, weights, lr):
    if not np.any(weights):
        return

    grad = np.zeros_like(policy.logits)
    n_actions = policy.n_actions
    for traj, weight in zip(trajectories, weights):
        if weight == 0.0:
            continue
        for row, col, action in traj.state_actions:
            base = (row * policy.width + col) * n_actions
            grad[base:base + n_actions] += weight * policy.score_function(row, col, action)

    policy.logits += lr * grad
    policy.clip_logits()


def reinforce_update(policy, env, starts, start_probs, n=16, lr=0.5, max_steps=80, rng=None):
    """One REINFORCE step with the batch success rate as baseline.

    Returns K, the number of successful trajectories. A batch that is all
    successes or all failures has zero advantage everywhere and leaves the
    logits unchanged.
    """
    rng = _rng(rng)
    trajectories, rewards = _sample_batch(policy, env, starts, start_probs, n, max_steps, rng)
    k = int(rewards.sum())

    advantages = rewards - k / n
    _apply_gradient(policy, trajectories, advantages / n, lr)
    return k


def maxrl_update(policy, env, starts, start_probs, n=16, lr=0.5, max_steps=80, rng=None):
    """One MaxRL step; skipped entirely when no trajectory succeeded.

    Returns K, the number of successful trajectories.
    """
    rng = _rng(rng)
    trajectories, rewards = _sample_batch(policy, env, starts, start_probs, n, max_steps, rng)
    k = int(rewards.sum())
    if k == 0:
        return 0

    weights = rewards / k - 1.0 / n
    _apply_gradient(policy, trajectories, weights, lr)
    return k


UPDATES = {
    "reinforce": reinforce_update,
    "maxrl": maxrl_update,
}


def evaluate_from_start(policy, env, start, n_eval=100, max_steps=25, rng=None):
    """Fraction of ``n_eval`` fresh rollouts that reach the goal (pass@1)."""
    rng = _rng(rng)
    successes = sum(rollout(policy, env, start, max_steps, rng).reached_goal for _ in range(n_eval))
    return successes / n_eval


def pass_at_k(pass_at_1, k):
    # assumes k independent attempts
    return 1.0 - (1.0 - pass_at_1) ** k


def _normalise(visits):
    peak = visits.max()
    return visits / peak if peak > 0 else visits


def generate_heatmap(policy, env, start, n_rollouts=HEATMAP_ROLLOUTS, max_steps=80, rng=None):
    """Visit frequency per cell (scaled so the busiest cell is 1) and successful paths."""
    rng = _rng(rng)
    visits = np.zeros((env.height, env.width))
    paths = []
    for _ in range(n_rollouts):
        traj = rollout(policy, env, start, max_steps, rng)
        for r, c in traj.path:
            visits[r, c] += 1
        if traj.reached_goal:
            paths.append(traj.path)
    return _normalise(visits), paths


def generate_heatmap_multistart(policy, env, starts, n_per_start=HEATMAP_ROLLOUTS_PER_START,
                                max_steps=25, rng=None):
    rng = _rng(rng)
    visits = np.zeros((env.height, env.width))
    paths_per_start = [[] for _ in starts]
    for i, start in enumerate(starts):
        for _ in range(n_per_start):
            traj = rollout(policy, env, start, max_steps, rng)
            for r, c in traj.path:
                visits[r, c] += 1
            if traj.reached_goal:
                paths_per_start[i].append(traj.path)
    return _normalise(visits), paths_per_start
