from collections import Counter

import numpy as np
import pytest

from tile_rl.agents_rl import StateActionTransition
from tile_rl.exceptions import (
    EmptyModelError,
    ModelConsistencyError,
    TransitionModelError,
    UnmodeledStateError,
)


def test_full_step_size_remembers_only_last_state():
    model = StateActionTransition(greedy=1.0, step_size=1.0, seed=0)
    model.update("s1", 1.0)
    model.update("s2", 2.0)

    assert model.get_frequency("s2") == 1.0
    assert model.get_frequency("s1") == 0.0
    assert model.get_reward("s1") == 1.0
    assert model.get_reward("s2") == 2.0
    assert model.get_size() == 2


def test_frequencies_move_towards_targets():
    model = StateActionTransition(greedy=1.0, step_size=0.5, seed=0)
    model.update("a", 0.0)
    assert model.get_frequency("a") == pytest.approx(0.5)

    model.update("b", 0.0)
    assert model.get_frequency("a") == pytest.approx(0.25)
    assert model.get_frequency("b") == pytest.approx(0.5)

    model.update("b", 0.0)
    assert model.get_frequency("a") == pytest.approx(0.125)
    assert model.get_frequency("b") == pytest.approx(0.75)


def test_latest_reward_replaces_previous():
    model = StateActionTransition(greedy=1.0, step_size=0.5, seed=0)
    model.update("s", 1.0)
    model.update("s", 5.0)
    assert model.get_reward("s") == 5.0


def test_unmodeled_state():
    model = StateActionTransition(greedy=1.0, step_size=1.0, seed=0)
    model.update("s", 1.0)

    with pytest.raises(UnmodeledStateError):
        model.get_reward("missing")
    with pytest.raises(KeyError):
        model.get_frequency("missing")
    with pytest.raises(TransitionModelError):
        model.get_reward("missing")


def test_sampling_empty_model():
    model = StateActionTransition(greedy=0.5, step_size=1.0, seed=0)
    with pytest.raises(EmptyModelError):
        model.get_next_state()


def test_single_state_is_always_sampled():
    model = StateActionTransition(greedy=1.0, step_size=0.3, seed=0)
    model.update((1, 2), 0.0)
    assert all(model.get_next_state() == (1, 2) for _ in range(50))


def test_full_step_size_and_greedy_sampling_returns_last_state():
    model = StateActionTransition(greedy=1.0, step_size=1.0, seed=0)
    model.update("s1", 0.0)
    model.update("s2", 0.0)
    model.update("s3", 0.0)
    assert all(model.get_next_state() == "s3" for _ in range(100))


def test_non_greedy_sampling_is_uniform_over_known_states():
    model = StateActionTransition(greedy=0.0, step_size=1.0, seed=1)
    model.update("s1", 0.0)
    model.update("s2", 0.0)

    counts = Counter(model.get_next_state() for _ in range(400))
    assert set(counts) == {"s1", "s2"}
    assert counts["s1"] > 100
    assert counts["s2"] > 100


def test_weighted_sampling_follows_frequencies():
    model = StateActionTransition(greedy=1.0, step_size=0.5, seed=2)
    model.update("rare", 0.0)
    model.update("common", 0.0)
    model.update("common", 0.0)
    # rare: 0.125, common: 0.75

    counts = Counter(model.get_next_state() for _ in range(2000))
    assert counts["common"] > counts["rare"] * 3


def test_inconsistent_frequencies_are_reported():
    model = StateActionTransition(greedy=1.0, step_size=1.0, seed=0)
    model.update("a", 0.0)
    model._frequency["a"] = 0.0

    with pytest.raises(ModelConsistencyError):
        model.get_next_state()


def test_copy_is_independent():
    model = StateActionTransition(greedy=0.7, step_size=0.5, seed=0)
    model.update("s1", 1.0)

    clone = model.copy()
    clone.update("s2", 3.0)

    assert "s2" in clone
    assert "s2" not in model
    assert len(model) == 1
    assert clone.get_greedy() == 0.7
    assert clone.get_step_size() == 0.5
    assert clone.get_reward("s1") == 1.0


def test_queries_do_not_change_the_model():
    model = StateActionTransition(greedy=1.0, step_size=0.5, seed=0)
    model.update("s1", 1.0)
    model.update("s2", 2.0)
    before = {state: model.get_frequency(state) for state in model.states()}

    for _ in range(20):
        model.get_next_state()
        model.get_reward("s1")

    assert {state: model.get_frequency(state) for state in model.states()} == before
    assert model.states() == ["s1", "s2"]


@pytest.mark.parametrize("greedy", [-0.1, 1.5])
def test_rejects_invalid_greedy(greedy):
    with pytest.raises(ValueError):
        StateActionTransition(greedy=greedy, step_size=1.0)

    model = StateActionTransition(greedy=1.0, step_size=1.0)
    with pytest.raises(ValueError):
        model.set_greedy(greedy)


@pytest.mark.parametrize("step_size", [0.0, -0.5, 1.1])
def test_rejects_invalid_step_size(step_size):
    with pytest.raises(ValueError):
        StateActionTransition(greedy=1.0, step_size=step_size)

    model = StateActionTransition(greedy=1.0, step_size=1.0)
    with pytest.raises(ValueError):
        model.set_step_size(step_size)


def test_setters_update_parameters():
    model = StateActionTransition(greedy=1.0, step_size=1.0)
    model.set_greedy(0.25)
    model.set_step_size(0.1)
    assert model.get_greedy() == 0.25
    assert model.get_step_size() == 0.1


class _EdgeDraws:
    """Generator stand-in: always samples by frequency, with a draw at the top of the range."""

    def __init__(self, draw_fn):
        self.draw_fn = draw_fn

    def random(self):
        return 0.0

    def uniform(self, low, high):
        return self.draw_fn(high)


@pytest.mark.parametrize(
    "draw_fn", [lambda high: np.nextafter(high, 0.0), lambda high: high]
)
def test_draw_at_frequency_sum_selects_last_state(draw_fn):
    rng = np.random.default_rng(0)
    for _ in range(200):
        model = StateActionTransition(
            greedy=1.0, step_size=float(rng.uniform(0.05, 0.5)), seed=0
        )
        for state in rng.integers(0, 8, size=12):
            model.update(int(state), 0.0)
        model._rng = _EdgeDraws(draw_fn)

        assert model.get_next_state() == model.states()[-1]


def test_states_with_zero_frequency_are_never_sampled():
    model = StateActionTransition(greedy=1.0, step_size=1.0, seed=0)
    model.update("a", 0.0)
    model.update("b", 0.0)
    model.update("c", 0.0)
    model.update("a", 0.0)
    model._rng = _EdgeDraws(lambda high: np.nextafter(high, 0.0))

    assert model.get_next_state() == "a"
