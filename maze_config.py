import os
from dataclasses import dataclass, replace
from typing import Optional

MAX_LOGIT = 20.0
MAX_HISTORY = 2000

# --- Mode Configuration ---
MODE_DEFAULTS = {
    "multi": {"lr": 0.3, "n": 32, "max_steps": 25, "eval_interval": 10, "n_eval": 64},
    "single": {"lr": 0.3, "n": 16, "max_steps": 80, "eval_interval": 5, "n_eval": 64},
}

HEATMAP_ROLLOUTS = 150  # single start
HEATMAP_ROLLOUTS_PER_START = 75  # multi start
DEFAULT_HARD_FRACTION = 0.5

# Steps per training frame the server runs, clamped to [1, MAX_SPEED]
DEFAULT_SPEED = 3
MAX_SPEED = 20

# Bounds on client input
MIN_GRID_SIZE = 5
MAX_GRID_SIZE = 41
MAX_STEPS_PER_COMMAND = 200


@dataclass(frozen=True)
class TrainingConfig:
    mode: str = "multi"
    lr: float = 0.3
    n: int = 32
    max_steps: int = 25
    eval_interval: int = 10
    n_eval: int = 64
    seed: Optional[int] = None

    @classmethod
    def for_mode(cls, mode, **overrides):
        if mode not in MODE_DEFAULTS:
            raise ValueError(f"unknown training mode {mode!r}")
        return cls(mode=mode, **{**MODE_DEFAULTS[mode], **overrides})

    def with_mode(self, mode):
        """Switch mode, keeping the seed."""
        return replace(TrainingConfig.for_mode(mode), seed=self.seed)

    @property
    def multi_start(self):
        return self.mode == "multi"


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value not in (None, "") else default


@dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8000
    seed: Optional[int] = None

    @classmethod
    def from_env(cls):
        return cls(
            host=os.environ.get("MAZE_HOST", cls.host),
            port=_env_int("MAZE_PORT", cls.port),
            seed=_env_int("MAZE_SEED", None),
        )
