from collections import deque
from dataclasses import dataclass, field
from typing import List, Tuple, Union

import numpy as np

from maze_env import ACTION_DELTAS, PATH

Position = Tuple[int, int]


@dataclass(frozen=True)
class PathFound:
    distance: int
    path: List[Position] = field(default_factory=list)
    found = True


@dataclass(frozen=True)
class NoPath:
    distance = None
    path = None
    found = False


ShortestPath = Union[PathFound, NoPath]


def _open_cells(maze):
    return np.asarray(maze) == PATH


def bfs_shortest_path(maze, start, goal) -> ShortestPath:
    """Breadth-first search over open cells, neighbours tried up/down/left/right.

    Returns ``PathFound`` for the first shortest route (inclusive of both
    endpoints) or ``NoPath`` when the goal cannot be reached.
    """
    open_cells = _open_cells(maze)
    height, width = open_cells.shape
    start = (int(start[0]), int(start[1]))
    goal = (int(goal[0]), int(goal[1]))

    parent = {start: None}
    queue = deque([(start, 0)])

    while queue:
        (r, c), dist = queue.popleft()
        if (r, c) == goal:
            path = []
            node = goal
            while node is not None:
                path.append(node)
                node = parent[node]
            path.reverse()
            return PathFound(distance=dist, path=path)

        for dr, dc in ACTION_DELTAS:
            nxt = (r + dr, c + dc)
            if (0 <= nxt[0] < height and 0 <= nxt[1] < width
                    and open_cells[nxt] and nxt not in parent):
                parent[nxt] = (r, c)
                queue.append((nxt, dist + 1))

    return NoPath()


def distances_to_goal(maze, goal):
    """Hop distance to ``goal`` for every open cell that can reach it."""
    open_cells = _open_cells(maze)
    height, width = open_cells.shape
    goal = (int(goal[0]), int(goal[1]))

    dist = {goal: 0}
    queue = deque([goal])
    while queue:
        r, c = queue.popleft()
        for dr, dc in ACTION_DELTAS:
            nxt = (r + dr, c + dc)
            if (0 <= nxt[0] < height and 0 <= nxt[1] < width
                    and open_cells[nxt] and nxt not in dist):
                dist[nxt] = dist[(r, c)] + 1
                queue.append(nxt)
    return dist
