"""Pytest configuration for the maze trainer test suite."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

# The modules live at the repository root rather than in a package, so make
# the root importable when the tests run without an editable install.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


FIXTURE_MAZE = [
    [1, 1, 1, 1, 1],
    [1, 0, 0, 0, 1],
    [1, 0, 1, 0, 1],
    [1, 0, 0, 0, 1],
    [1, 1, 1, 1, 1],
]

SPLIT_MAZE = [
    [1, 1, 1, 1, 1],
    [1, 0, 1, 0, 1],
    [1, 0, 1, 0, 1],
    [1, 0, 1, 0, 1],
    [1, 1, 1, 1, 1],
]

# One open cell next to the goal; stepping right is the only way in.
ONE_STEP_MAZE = [
    [1, 1, 1, 1],
    [1, 0, 0, 1],
    [1, 1, 1, 1],
]


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def fixture_maze():
    return [row[:] for row in FIXTURE_MAZE]


@pytest.fixture
def split_maze():
    return [row[:] for row in SPLIT_MAZE]


@pytest.fixture
def one_step_maze():
    return [row[:] for row in ONE_STEP_MAZE]
