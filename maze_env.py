import numpy as np
from typing import Optional, Tuple

import gymnasium as gym
from gymnasium import spaces

# Actions
UP = 0
DOWN = 1
LEFT = 2
RIGHT = 3
ACTION_NAMES = ["up", "down", "left", "right"]
ACTION_DELTAS = [(-1, 0), (1, 0), (0, -1), (0, 1)]
N_ACTIONS = len(ACTION_DELTAS)

PATH = 0
WALL = 1

# Three Paths maze (11x11)
MAZE_TRAIN = [
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
    [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1],
    [1, 0, 1, 1, 1, 0, 1, 1, 1, 0, 1],
    [1, 0, 1, 0, 0, 0, 0, 0, 1, 0, 1],
    [1, 0, 1, 0, 1, 1, 1, 0, 1, 0, 1],
    [1, 0, 1, 0, 1, 0, 1, 0, 1, 0, 1],
    [1, 0, 1, 0, 1, 1, 1, 0, 1, 0, 1],
    [1, 0, 1, 0, 0, 0, 0, 0, 1, 0, 1],
    [1, 0, 1, 1, 1, 0, 1, 1, 1, 0, 1],
    [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
]

# Same layout with the left corridor blocked
MAZE_TEST = [
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
    [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1],
    [1, 1, 1, 1, 1, 0, 1, 1, 1, 0, 1],
    [1, 1, 1, 0, 0, 0, 0, 0, 1, 0, 1],
    [1, 1, 1, 0, 1, 1, 1, 0, 1, 0, 1],
    [1, 1, 1, 0, 1, 0, 1, 0, 1, 0, 1],
    [1, 1, 1, 0, 1, 1, 1, 0, 1, 0, 1],
    [1, 1, 1, 0, 0, 0, 0, 0, 1, 0, 1],
    [1, 1, 1, 1, 1, 0, 1, 1, 1, 0, 1],
    [1, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1],
    [1, 1, 1, 1, 1, 1, 1, 1, 1, 1, 1],
]

DEFAULT_START = (1, 1)
DEFAULT_HARD_START = (1, 1)
DEFAULT_EASY_START = (9, 1)
DEFAULT_GOAL = (9, 9)

Position = Tuple[int, int]


class GridWorld:
    """Deterministic transition model over a fixed maze (0 = path, 1 = wall)."""

    def __init__(self, layout, start: Position = DEFAULT_START, goal: Position = DEFAULT_GOAL):
        self.maze = np.array(layout, dtype=np.int8)
        self.maze.setflags(write=False)
        self.start = (int(start[0]), int(start[1]))
        self.goal = (int(goal[0]), int(goal[1]))

        self.height, self.width = self.maze.shape

    def in_bounds(self, row, col):
        return 0 <= row < self.height and 0 <= col < self.width

    def is_path(self, row, col):
        return self.in_bounds(row, col) and self.maze[row, col] == PATH

    def is_valid(self, pos):
        return self.is_path(pos[0], pos[1])

    def step(self, pos, action) -> Tuple[Position, bool]:
        dy, dx = ACTION_DELTAS[action]
        new_pos = (pos[0] + dy, pos[1] + dx)

        # bumping into a wall or the edge of the map leaves us in place
        if not self.is_valid(new_pos):
            new_pos = (pos[0], pos[1])

        return new_pos, new_pos == self.goal

    def get_layout(self):
        """Returns the static 2D maze layout."""
        return self.maze.tolist()


class GridWorldEnv(gym.Env):
    """Gymnasium interface over a GridWorld.

    The agent position lives here, the wrapped GridWorld stays read-only.
    Reward is 1.0 on reaching the goal and 0.0 otherwise.
    """

    metadata = {"render_modes": []}

    def __init__(self, world: GridWorld, max_steps: Optional[int] = None):
        super(GridWorldEnv, self).__init__()
        self.world = world
        self.max_steps = max_steps
        self.action_space = spaces.Discrete(N_ACTIONS)
        self.observation_space = spaces.Discrete(world.height * world.width)
        self.agent_pos = world.start
        self.steps = 0

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        options = options or {}
        start = options.get("start", self.world.start)
        self.agent_pos = (int(start[0]), int(start[1]))
        self.steps = 0
        return self._get_state(), {}

    def _get_state(self):
        return self.agent_pos[0] * self.world.width + self.agent_pos[1]

    def step(self, action):
        self.agent_pos, terminated = self.world.step(self.agent_pos, int(action))
        self.steps += 1

        reward = 1.0 if terminated else 0.0
        truncated = self.max_steps is not None and self.steps >= self.max_steps and not terminated
        return self._get_state(), reward, terminated, truncated, {"pos": self.agent_pos}

    def get_maze_state(self):
        """Return current maze state for visualization"""
        return {
            "maze": self.world.get_layout(),
            "agent_pos": list(self.agent_pos),
            "start_pos": list(self.world.start),
            "goal_pos": list(self.world.goal),
        }


if __name__ == "__main__":
    env = GridWorldEnv(GridWorld(MAZE_TRAIN), max_steps=20)

    print(f"Maze Layout:\n{env.world.maze}")

    state, _ = env.reset(seed=0)
    for action in [RIGHT, RIGHT, DOWN, DOWN]:
        state, reward, terminated, truncated, info = env.step(action)
        print(f"{ACTION_NAMES[action]:>5} -> {info['pos']} reward={reward} done={terminated}")
