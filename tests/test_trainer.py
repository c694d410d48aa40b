import json

import numpy as np
import pytest

from maze_config import TrainingConfig
from maze_env import MAZE_TEST
from maze_generator import MazeLayout
from maze_trainer import METHODS, InvalidMazeError, SideBySideTrainer, default_layout


@pytest.fixture
def trainer():
    return SideBySideTrainer(TrainingConfig.for_mode("multi", seed=0, n=8, n_eval=8))


def test_initial_state(trainer):
    assert trainer.step == 0
    assert trainer.starts == [(1, 1), (9, 1)]
    assert trainer.start_probs == [0.5, 0.5]
    assert trainer.env.goal == (9, 9)
    for m in METHODS:
        assert np.all(trainer.policies[m].logits == 0.0)
        assert trainer.history[m]["steps"] == [0]
        assert set(trainer.metrics[m]) == {"start_0_p1", "start_1_p1"}


def test_train_records_history_on_eval_interval(trainer):
    ks = trainer.train(10)
    assert trainer.step == 10
    assert len(ks) == 10
    for step_ks in ks:
        assert set(step_ks) == set(METHODS)
        assert all(0 <= k <= 8 for k in step_ks.values())
    for m in METHODS:
        assert trainer.history[m]["steps"] == [0, 10]
        assert len(trainer.history[m]["start_0_p1"]) == 2
        assert trainer.history[m]["K"][-1] == ks[-1][m]


def test_policies_are_trained_independently(trainer):
    trainer.train(20)
    assert not np.array_equal(trainer.policies["reinforce"].logits, trainer.policies["maxrl"].logits)


def test_same_seed_reproduces_training():
    a = SideBySideTrainer(TrainingConfig.for_mode("single", seed=123, n=8, n_eval=4))
    b = SideBySideTrainer(TrainingConfig.for_mode("single", seed=123, n=8, n_eval=4))
    a.train(6)
    b.train(6)
    for m in METHODS:
        np.testing.assert_array_equal(a.policies[m].logits, b.policies[m].logits)
    assert a.metrics == b.metrics


def test_single_start_mode(trainer):
    trainer.train(3)
    trainer.set_mode("single")
    assert trainer.step == 0
    assert trainer.starts == [(1, 1)]
    assert trainer.start_probs == [1.0]
    assert trainer.config.max_steps == 80
    assert trainer.config.seed == 0
    for m in METHODS:
        metrics = trainer.metrics[m]
        assert metrics["k"] == trainer.config.n
        assert metrics["pass_at_k"] >= metrics["pass_at_1"]


def test_single_start_trains_from_the_hard_start_of_any_layout(trainer, fixture_maze):
    trainer.load_layout(MazeLayout(grid=fixture_maze, easy_start=(3, 2), hard_start=(1, 1), goal=(3, 3)))
    trainer.set_mode("single")
    assert trainer.starts == [(1, 1)]
    trainer.set_mode("multi")
    assert trainer.starts == [(1, 1), (3, 2)]


def test_hard_fraction_is_clamped(trainer):
    trainer.set_hard_fraction(1.5)
    assert trainer.start_probs == [1.0, 0.0]
    trainer.set_hard_fraction(0.2)
    assert trainer.start_probs == pytest.approx([0.2, 0.8])


def test_load_layout_resets_training(trainer):
    trainer.train(4)
    trainer.load_layout(default_layout(MAZE_TEST))
    assert trainer.step == 0
    assert trainer.env.get_layout() == MAZE_TEST


def test_invalid_layout_is_rejected(trainer, split_maze):
    layout = MazeLayout(grid=split_maze, easy_start=(1, 3), hard_start=(1, 1), goal=(3, 3))
    with pytest.raises(InvalidMazeError):
        trainer.load_layout(layout)
    assert trainer.env.height == 11


def test_shortest_distances(trainer):
    assert trainer.shortest_distances() == [16, 8]


def test_snapshot_is_json_serialisable(trainer):
    trainer.train(10)
    snap = json.loads(json.dumps(trainer.snapshot()))
    assert snap["step"] == 10
    assert snap["mode"] == "multi"
    assert snap["starts"] == [[1, 1], [9, 1]]
    assert snap["bfs_distances"] == [16, 8]
    assert len(snap["heatmaps"]["maxrl"]) == 11
    assert len(snap["paths"]["reinforce"]) == 2
