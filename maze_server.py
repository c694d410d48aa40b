import asyncio
from typing import List, Optional

import numpy as np
import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from maze_config import (
    DEFAULT_SPEED,
    MAX_GRID_SIZE,
    MAX_SPEED,
    MIN_GRID_SIZE,
    ServerConfig,
    TrainingConfig,
)
from maze_env import MAZE_TEST, MAZE_TRAIN
from maze_generator import MazeGenerationError, MazeLayout, random_layout
from maze_logging import get_logger
from maze_schemas import BfsRequest, BfsResponse, LayoutResponse, command_adapter
from maze_search import bfs_shortest_path
from maze_trainer import InvalidMazeError, SideBySideTrainer, default_layout

logger = get_logger(__name__)

server_config = ServerConfig.from_env()

app = FastAPI(title="REINFORCE vs MaxRL maze trainer")


def _layout_response(layout: MazeLayout):
    return LayoutResponse(grid=layout.grid, hard_start=list(layout.hard_start),
                          easy_start=list(layout.easy_start), goal=list(layout.goal))


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/maze/default", response_model=LayoutResponse)
async def get_default_maze():
    return _layout_response(default_layout())


@app.get("/maze/random", response_model=LayoutResponse)
def get_random_maze(rows: int = 11, cols: int = 11, seed: Optional[int] = None):
    if not (MIN_GRID_SIZE <= rows <= MAX_GRID_SIZE and MIN_GRID_SIZE <= cols <= MAX_GRID_SIZE):
        raise HTTPException(status_code=422,
                            detail=f"rows and cols must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}")
    try:
        layout = random_layout(rows, cols, rng=np.random.default_rng(seed))
    except MazeGenerationError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    return _layout_response(layout)


@app.post("/bfs", response_model=BfsResponse)
async def shortest_path(req: BfsRequest):
    result = bfs_shortest_path(req.grid, req.start, req.goal)
    if not result.found:
        return BfsResponse(found=False)
    return BfsResponse(found=True, distance=result.distance, path=[list(p) for p in result.path])


# --- Training session ---

class TrainingSession:
    """Per-connection trainer plus the play/pause state the client drives."""

    def __init__(self, seed=None):
        self.trainer = SideBySideTrainer(TrainingConfig.for_mode("multi", seed=seed))
        self.rng = np.random.default_rng(seed)
        self.training = False
        self.speed = DEFAULT_SPEED
        self.lock = asyncio.Lock()

    def state_message(self):
        return {"type": "state", **self.trainer.snapshot()}

    def progress_message(self):
        return {"type": "progress", "step": self.trainer.step, "last_k": dict(self.trainer.last_k)}

    def handle(self, data) -> List[dict]:
        """Apply one client command and return the messages to send back."""
        try:
            cmd = command_adapter.validate_python(data)
        except ValidationError as exc:
            return [{"type": "error", "message": f"bad command: {exc.errors()[0]['msg']}"}]

        trainer = self.trainer
        if cmd.action == "train":
            self.training = True
            if cmd.speed is not None:
                self.speed = min(MAX_SPEED, cmd.speed)
            return [{"type": "log", "message": "Training started"}]
        if cmd.action == "stop":
            self.training = False
            return [{"type": "log", "message": f"Training paused at step {trainer.step}"}]
        if cmd.action == "step":
            trainer.train(cmd.steps)
            return [self.state_message()]
        if cmd.action == "reset":
            trainer.reset_training()
            return [self.state_message()]
        if cmd.action == "snapshot":
            return [self.state_message()]
        if cmd.action == "mode":
            trainer.set_mode(cmd.mode)
            return [{"type": "log", "message": f"Switched to {cmd.mode}-start mode"}, self.state_message()]
        if cmd.action == "hard_pct":
            trainer.set_hard_fraction(cmd.pct / 100.0)
            return [{"type": "log", "message": f"Hard: {cmd.pct:g}%"}]
        if cmd.action in ("default_maze", "test_maze"):
            grid = MAZE_TRAIN if cmd.action == "default_maze" else MAZE_TEST
            trainer.load_layout(default_layout(grid))
            return [self.state_message()]
        if cmd.action == "random_maze":
            try:
                trainer.load_layout(random_layout(cmd.rows, cmd.cols, rng=self.rng))
            except MazeGenerationError as exc:
                logger.warning("random maze failed: %s", exc)
                return [{"type": "error", "message": str(exc)}]
            return [self.state_message()]
        if cmd.action == "load_grid":
            layout = MazeLayout(grid=cmd.grid, easy_start=tuple(cmd.easy_start),
                                hard_start=tuple(cmd.hard_start), goal=tuple(cmd.goal))
            try:
                trainer.load_layout(layout)
            except InvalidMazeError as exc:
                return [{"type": "error", "message": f"Invalid maze: {exc}"}]
            return [self.state_message()]
        return [{"type": "error", "message": f"unhandled command {cmd.action!r}"}]

    def train_frame(self) -> dict:
        """Run one frame of ``speed`` steps; full state when an eval happened."""
        before = self.trainer.step // self.trainer.config.eval_interval
        self.trainer.train(self.speed)
        after = self.trainer.step // self.trainer.config.eval_interval
        return self.state_message() if after != before else self.progress_message()

    async def run(self, fn, *args):
        """Run ``fn`` on a worker thread, one call at a time per session."""
        async with self.lock:
            return await asyncio.to_thread(fn, *args)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    logger.info("connection open")

    session = TrainingSession(seed=server_config.seed)

    try:
        await websocket.send_json(session.state_message())

        while True:
            # Receive commands from client
            try:
                data = await asyncio.wait_for(websocket.receive_json(), timeout=0.05)
                messages = await session.run(session.handle, data)
                for message in messages:
                    await websocket.send_json(message)
            except asyncio.TimeoutError:
                pass

            # Training loop
            if session.training:
                message = await session.run(session.train_frame)
                await websocket.send_json(message)
                await asyncio.sleep(0)
            else:
                await asyncio.sleep(0.05)

    except WebSocketDisconnect:
        logger.info("client disconnected")
    finally:
        logger.info("connection closed")


if __name__ == "__main__":
    uvicorn.run(app, host=server_config.host, port=server_config.port)
