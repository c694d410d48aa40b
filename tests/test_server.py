import asyncio
import time

import pytest
from fastapi.testclient import TestClient

from maze_server import TrainingSession, app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def session():
    return TrainingSession(seed=0)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_default_maze(client):
    body = client.get("/maze/default").json()
    assert body["hard_start"] == [1, 1]
    assert body["easy_start"] == [9, 1]
    assert body["goal"] == [9, 9]
    assert len(body["grid"]) == 11


def test_random_maze_is_seeded(client):
    a = client.get("/maze/random", params={"seed": 4}).json()
    b = client.get("/maze/random", params={"seed": 4}).json()
    assert a == b
    assert a["goal"] == [9, 9]


def test_random_maze_rejects_bad_size(client):
    assert client.get("/maze/random", params={"rows": 2}).status_code == 422


def test_bfs_endpoint(client, fixture_maze, split_maze):
    body = client.post("/bfs", json={"grid": fixture_maze, "start": [1, 1], "goal": [3, 3]}).json()
    assert body["found"] is True
    assert body["distance"] == 4
    assert body["path"][0] == [1, 1]

    body = client.post("/bfs", json={"grid": split_maze, "start": [1, 1], "goal": [3, 3]}).json()
    assert body == {"found": False, "distance": None, "path": None}


def test_bfs_rejects_ragged_grid(client):
    resp = client.post("/bfs", json={"grid": [[0, 0], [0]], "start": [0, 0], "goal": [0, 1]})
    assert resp.status_code == 422


def test_bfs_rejects_oversized_grid(client):
    grid = [[0] * 42 for _ in range(42)]
    resp = client.post("/bfs", json={"grid": grid, "start": [0, 0], "goal": [41, 41]})
    assert resp.status_code == 422


def test_unknown_command(session):
    [msg] = session.handle({"action": "fly"})
    assert msg["type"] == "error"


def test_step_command(session):
    [msg] = session.handle({"action": "step", "steps": 2})
    assert msg["type"] == "state"
    assert msg["step"] == 2


def test_step_command_is_capped(session):
    [msg] = session.handle({"action": "step", "steps": 10000})
    assert msg["type"] == "error"
    assert session.trainer.step == 0


def test_step_metrics_match_history(session):
    [msg] = session.handle({"action": "step", "steps": 10})
    for m in ("reinforce", "maxrl"):
        history = msg["history"][m]
        assert history["steps"][-1] == 10
        for key, value in msg["metrics"][m].items():
            assert history[key][-1] == value

    # off the eval schedule the metrics stay those of step 10
    [msg] = session.handle({"action": "step", "steps": 3})
    assert msg["step"] == 13
    for m in ("reinforce", "maxrl"):
        for key, value in msg["metrics"][m].items():
            assert msg["history"][m][key][-1] == value


def test_session_runs_one_command_at_a_time(session):
    running = []
    overlaps = []

    def slow_handle(data):
        running.append(data)
        overlaps.append(len(running))
        time.sleep(0.05)
        messages = session.handle(data)
        running.remove(data)
        return messages

    async def send_two():
        return await asyncio.gather(
            session.run(slow_handle, {"action": "step", "steps": 1}),
            session.run(slow_handle, {"action": "step", "steps": 2}),
        )

    first, second = asyncio.run(send_two())
    assert max(overlaps) == 1
    assert session.trainer.step == 3
    assert sorted([first[0]["step"], second[0]["step"]]) == [1, 3]


def test_train_and_stop(session):
    session.handle({"action": "train", "speed": 50})
    assert session.training
    assert session.speed == 20
    session.handle({"action": "stop"})
    assert not session.training


def test_train_frame_sends_state_after_eval(session):
    session.speed = 3
    assert session.train_frame()["type"] == "progress"
    session.speed = 10
    msg = session.train_frame()
    assert msg["type"] == "state"
    assert msg["step"] == 13


def test_mode_and_hard_pct(session):
    log, state = session.handle({"action": "mode", "mode": "single"})
    assert log["type"] == "log"
    assert state["starts"] == [[1, 1]]

    session.handle({"action": "mode", "mode": "multi"})
    session.handle({"action": "hard_pct", "pct": 25})
    [state] = session.handle({"action": "snapshot"})
    assert state["start_probs"] == pytest.approx([0.25, 0.75])


def test_load_grid(session, fixture_maze, split_maze):
    [msg] = session.handle({"action": "load_grid", "grid": fixture_maze, "hard_start": [1, 1],
                            "easy_start": [2, 3], "goal": [3, 3]})
    assert msg["type"] == "state"
    assert msg["maze"] == fixture_maze

    [msg] = session.handle({"action": "load_grid", "grid": split_maze, "hard_start": [1, 1],
                            "easy_start": [1, 3], "goal": [3, 3]})
    assert msg["type"] == "error"
    assert session.trainer.env.get_layout() == fixture_maze


def test_load_grid_rejects_start_on_wall(session, fixture_maze):
    [msg] = session.handle({"action": "load_grid", "grid": fixture_maze, "hard_start": [2, 2],
                            "easy_start": [1, 1], "goal": [3, 3]})
    assert msg["type"] == "error"


def test_load_grid_rejects_oversized_grid(session):
    grid = [[0] * 50 for _ in range(3)]
    [msg] = session.handle({"action": "load_grid", "grid": grid, "hard_start": [1, 1],
                            "easy_start": [1, 2], "goal": [1, 3]})
    assert msg["type"] == "error"
    assert len(session.trainer.env.get_layout()) == 11


def test_random_and_builtin_mazes(session):
    [msg] = session.handle({"action": "random_maze", "rows": 9, "cols": 9})
    assert msg["type"] == "state"
    assert len(msg["maze"]) == 9
    [msg] = session.handle({"action": "test_maze"})
    assert msg["maze"][2][1] == 1


def test_websocket_round_trip(client):
    with client.websocket_connect("/ws") as ws:
        first = ws.receive_json()
        assert first["type"] == "state"
        assert first["step"] == 0
        ws.send_json({"action": "step", "steps": 1})
        msg = ws.receive_json()
        assert msg["type"] == "state"
        assert msg["step"] == 1
