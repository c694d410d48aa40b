from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from maze_env import PATH, WALL
from maze_logging import get_logger
from maze_search import bfs_shortest_path, distances_to_goal

logger = get_logger(__name__)

Position = Tuple[int, int]

WALL_PROB = 0.30
REPAIR_ATTEMPTS = 200
MAX_REGENERATIONS = 100


class MazeGenerationError(RuntimeError):
    """No connected maze was produced within the regeneration budget."""


@dataclass(frozen=True)
class MazeLayout:
    grid: List[List[int]]
    easy_start: Position
    hard_start: Position
    goal: Position


def _scatter(rows, cols, rng, wall_prob):
    grid = np.where(rng.random((rows, cols)) < wall_prob, WALL, PATH).astype(np.int8)
    grid[0, :] = WALL
    grid[-1, :] = WALL
    grid[:, 0] = WALL
    grid[:, -1] = WALL
    return grid


def generate_maze(rows, cols, start=(1, 1), goal=None, rng=None,
                  wall_prob=WALL_PROB, repair_attempts=REPAIR_ATTEMPTS,
                  max_regenerations=MAX_REGENERATIONS):
    """Random scatter maze in which ``goal`` is reachable from ``start``.

    Border cells are walls and interior cells are walls with probability
    ``wall_prob``. A disconnected draw is repaired by opening random
    interior cells, checking connectivity after each one; if that fails the
    whole maze is redrawn, at most ``max_regenerations`` times.
    """
    rng = rng if rng is not None else np.random.default_rng()
    if goal is None:
        goal = (rows - 2, cols - 2)

    for attempt in range(max_regenerations + 1):
        grid = _scatter(rows, cols, rng, wall_prob)
        grid[start[0], start[1]] = PATH
        grid[goal[0], goal[1]] = PATH

        connected = bfs_shortest_path(grid, start, goal).found
        for _ in range(repair_attempts):
            if connected:
                break
            r = 1 + int(rng.integers(rows - 2))
            c = 1 + int(rng.integers(cols - 2))
            grid[r, c] = PATH
            connected = bfs_shortest_path(grid, start, goal).found

        if connected:
            return grid.tolist()
        logger.debug("maze %dx%d still disconnected after %d repairs, redrawing (attempt %d)",
                     rows, cols, repair_attempts, attempt + 1)

    raise MazeGenerationError(
        f"no connected {rows}x{cols} maze from {tuple(start)} to {tuple(goal)} "
        f"after {max_regenerations + 1} draws"
    )


def validate_starts(maze, starts, goal):
    return all(bfs_shortest_path(maze, s, goal).found for s in starts)


def random_layout(rows=11, cols=11, rng=None, max_attempts=20) -> MazeLayout:
    """Random maze with an easy start near the goal and a hard start far from it.

    Easy is drawn from the closest quarter of open cells by BFS distance, hard
    from the farthest quarter, and hard must be at least 1.5x as far as easy.
    Neither may be farther than ``rows + cols``.
    """
    rng = rng if rng is not None else np.random.default_rng()
    max_path = rows + cols
    goal = (rows - 2, cols - 2)

    grid = dist = None
    for _ in range(max_attempts):
        grid = generate_maze(rows, cols, goal=goal, rng=rng)
        dist = distances_to_goal(grid, goal)

        pool = sorted(
            (d, cell) for cell, d in dist.items()
            if 0 < d <= max_path and 0 < cell[0] < rows - 1 and 0 < cell[1] < cols - 1
        )
        if len(pool) < 2:
            continue

        q1 = max(1, int(len(pool) * 0.25))
        q3 = int(len(pool) * 0.75)
        easy_d, easy = pool[int(rng.integers(q1))]
        hard_d, hard = pool[q3 + int(rng.integers(len(pool) - q3))]

        if easy_d < hard_d and hard_d >= easy_d * 1.5:
            return MazeLayout(grid=grid, easy_start=easy, hard_start=hard, goal=goal)

    # generate_maze connects (1, 1) to the goal
    logger.info("no well separated starts in %d attempts, using corner starts", max_attempts)
    if grid is None:
        grid = generate_maze(rows, cols, goal=goal, rng=rng)
        dist = distances_to_goal(grid, goal)
    easy = (rows - 2, 1) if (rows - 2, 1) in dist else (1, 1)
    return MazeLayout(grid=grid, easy_start=easy, hard_start=(1, 1), goal=goal)
