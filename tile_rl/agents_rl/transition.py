from typing import Dict, Hashable, List, Optional

import numpy as np

from ..exceptions import EmptyModelError, ModelConsistencyError, UnmodeledStateError


class StateActionTransition:
    """
    Empirical model of the states that follow one state-action pair.

    Every call to `update(next_state, reward)` raises the frequency of
    `next_state` towards 1, lowers the frequency of every other known state
    towards 0 and remembers the latest reward observed for `next_state`.
    `get_next_state` then samples a state according to how often it has been
    seen recently, which is what Dyna-Q planning replays.

    Frequencies are independent exponential estimates and do not form a
    normalized distribution. Rewards are not averaged: the latest observed
    reward of a transition replaces the previous one.
    """

    def __init__(self, greedy: float, step_size: float, seed: Optional[int] = None):
        """
        :param greedy: Probability in [0, 1] of sampling by frequency. With 0.0 every known next state is equally likely
        :param step_size: Step size in (0, 1] of the frequency estimates. 1.0 forgets everything but the last transition, suitable for deterministic environments
        :param seed: Seed of the model's random generator
        """
        _check_greedy(greedy)
        _check_step_size(step_size)
        self._greedy = float(greedy)
        self._step_size = float(step_size)
        self._frequency: Dict[Hashable, float] = {}
        self._reward: Dict[Hashable, float] = {}
        self._rng = np.random.default_rng(seed)

    def update(self, next_state: Hashable, reward: float) -> None:
        """
        Record one observed transition.

        :param next_state: State reached
        :param reward: Reward received on the transition
        """
        if next_state not in self._frequency:
            self._frequency[next_state] = 0.0

        for state, frequency in self._frequency.items():
            if state != next_state:
                self._frequency[state] = frequency + self._step_size * (0.0 - frequency)

        frequency = self._frequency[next_state]
        self._frequency[next_state] = frequency + self._step_size * (1.0 - frequency)

        self._reward[next_state] = reward

        assert self._frequency.keys() == self._reward.keys()

    def get_reward(self, state: Hashable) -> float:
        """
        :param state: A next state previously passed to `update`
        :return: Latest reward observed when reaching `state`
        :raises UnmodeledStateError: If `state` was never recorded
        """
        if state not in self._reward:
            raise UnmodeledStateError(f"State {state!r} is not modeled")
        return self._reward[state]

    def get_frequency(self, state: Hashable) -> float:
        if state not in self._frequency:
            raise UnmodeledStateError(f"State {state!r} is not modeled")
        return self._frequency[state]

    def get_next_state(self) -> Hashable:
        """
        Sample a next state.

        With probability `1 - greedy` a uniformly random known state is returned,
        otherwise a state is drawn proportionally to its frequency.

        :return: A recorded next state
        :raises EmptyModelError: If no transition was recorded yet
        """
        if not self._frequency:
            raise EmptyModelError("No transitions recorded")

        states = list(self._frequency)

        if self._rng.random() > self._greedy:
            return states[int(self._rng.integers(len(states)))]

        # Weighted selection: first state whose cumulative frequency exceeds the draw
        cumulative = np.cumsum([self._frequency[state] for state in states])
        frequency_sum = cumulative[-1]
        # uniform can round up to its upper end
        draw = min(
            self._rng.uniform(0.0, frequency_sum), np.nextafter(frequency_sum, 0.0)
        )
        index = int(np.searchsorted(cumulative, draw, side="right"))
        if index < len(states):
            return states[index]

        raise ModelConsistencyError(
            f"Weighted sampling exhausted {len(states)} states "
            f"(frequency sum {frequency_sum}) without selecting one"
        )

    def states(self) -> List[Hashable]:
        return list(self._frequency)

    def get_size(self) -> int:
        return len(self._frequency)

    def __len__(self) -> int:
        return len(self._frequency)

    def __contains__(self, state: Hashable) -> bool:
        return state in self._frequency

    def set_step_size(self, step_size: float) -> None:
        _check_step_size(step_size)
        self._step_size = float(step_size)

    def get_step_size(self) -> float:
        return self._step_size

    def set_greedy(self, greedy: float) -> None:
        _check_greedy(greedy)
        self._greedy = float(greedy)

    def get_greedy(self) -> float:
        return self._greedy

    def copy(self) -> "StateActionTransition":
        """
        Value copy of the model, e.g. to replay counterfactual transitions without touching the original.

        :return: New model with the same parameters and recorded transitions, and its own generator
        """
        model = StateActionTransition(
            self._greedy, self._step_size, seed=int(self._rng.integers(2**32))
        )
        model._frequency = dict(self._frequency)
        model._reward = dict(self._reward)
        return model

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(greedy={self._greedy}, "
            f"step_size={self._step_size}, states={len(self._frequency)})"
        )


def _check_greedy(greedy: float) -> None:
    if not 0.0 <= greedy <= 1.0:
        raise ValueError(f"greedy must be in [0, 1], got {greedy}")


def _check_step_size(step_size: float) -> None:
    if not 0.0 < step_size <= 1.0:
        raise ValueError(f"step_size must be in (0, 1], got {step_size}")
