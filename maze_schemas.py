"""Messages exchanged with the renderer over HTTP and the websocket."""
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from maze_config import MAX_GRID_SIZE, MAX_STEPS_PER_COMMAND, MIN_GRID_SIZE

Cell = List[int]


def _check_grid(grid):
    if not grid or not grid[0]:
        raise ValueError("grid must have at least one row and one column")
    if len(grid) > MAX_GRID_SIZE or len(grid[0]) > MAX_GRID_SIZE:
        raise ValueError(f"grid must be at most {MAX_GRID_SIZE}x{MAX_GRID_SIZE}")
    if any(len(row) != len(grid[0]) for row in grid):
        raise ValueError("grid rows must all have the same length")
    if any(v not in (0, 1) for row in grid for v in row):
        raise ValueError("grid cells must be 0 (path) or 1 (wall)")
    return grid


def _check_cell(cell, grid, name):
    r, c = cell
    if not (0 <= r < len(grid) and 0 <= c < len(grid[0])) or grid[r][c] != 0:
        raise ValueError(f"{name} {cell} is not an open cell")


class TrainCommand(BaseModel):
    action: Literal["train"]
    speed: Optional[int] = Field(default=None, ge=1)


class StepCommand(BaseModel):
    action: Literal["step"]
    steps: int = Field(default=1, ge=1, le=MAX_STEPS_PER_COMMAND)


class SimpleCommand(BaseModel):
    action: Literal["stop", "reset", "default_maze", "test_maze", "snapshot"]


class ModeCommand(BaseModel):
    action: Literal["mode"]
    mode: Literal["multi", "single"]


class HardFractionCommand(BaseModel):
    action: Literal["hard_pct"]
    pct: float = Field(ge=0, le=100)


class RandomMazeCommand(BaseModel):
    action: Literal["random_maze"]
    rows: int = Field(default=11, ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)
    cols: int = Field(default=11, ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)


class LoadGridCommand(BaseModel):
    action: Literal["load_grid"]
    grid: List[List[int]]
    hard_start: Cell = Field(min_length=2, max_length=2)
    easy_start: Cell = Field(min_length=2, max_length=2)
    goal: Cell = Field(min_length=2, max_length=2)

    @field_validator("grid")
    @classmethod
    def _rectangular(cls, v):
        return _check_grid(v)

    @model_validator(mode="after")
    def _cells_open(self):
        for name in ("hard_start", "easy_start", "goal"):
            _check_cell(getattr(self, name), self.grid, name)
        return self


Command = Annotated[
    Union[TrainCommand, StepCommand, SimpleCommand, ModeCommand,
          HardFractionCommand, RandomMazeCommand, LoadGridCommand],
    Field(discriminator="action"),
]
command_adapter = TypeAdapter(Command)


class BfsRequest(BaseModel):
    grid: List[List[int]]
    start: Cell = Field(min_length=2, max_length=2)
    goal: Cell = Field(min_length=2, max_length=2)

    @field_validator("grid")
    @classmethod
    def _rectangular(cls, v):
        return _check_grid(v)


class BfsResponse(BaseModel):
    found: bool
    distance: Optional[int] = None
    path: Optional[List[Cell]] = None


class LayoutResponse(BaseModel):
    grid: List[List[int]]
    hard_start: Cell
    easy_start: Cell
    goal: Cell
