from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

import numpy as np


class Policy(ABC):
    """
    Action selection from action values.

    Agents only hand a policy the available actions and a function returning the
    value of each action, they never depend on a concrete policy.
    """

    @abstractmethod
    def select_action(self, actions: Sequence, value_fn: Callable[[object], float]):
        """
        Select an action.

        :param actions: Available actions
        :param value_fn: Returns the current value estimate of an action
        :return: Selected action
        """
        pass

    def update_exploration(self, episode: int) -> None:
        """Hook called at the start of every training episode."""
        pass


def argmax_action(actions: Sequence, value_fn: Callable[[object], float]):
    """First action with the highest value."""
    values = [value_fn(action) for action in actions]
    return actions[int(np.argmax(values))]


class Greedy(Policy):
    """Always exploit."""

    def select_action(self, actions: Sequence, value_fn: Callable[[object], float]):
        return argmax_action(actions, value_fn)


class EpsilonGreedy(Policy):
    """
    Epsilon-greedy selection with an exponentially decaying epsilon.

    epsilon(episode) = epsilon_end + (epsilon_start - epsilon_end) * exp(-epsilon_decay * episode)
    """

    def __init__(
        self,
        epsilon_start: float = 1.0,
        epsilon_end: float = 0.05,
        epsilon_decay: float = 0.0005,
        seed: Optional[int] = None,
    ):
        """
        :param epsilon_start: Initial exploration probability
        :param epsilon_end: Minimum exploration probability
        :param epsilon_decay: Exponential decay rate for exploration probability
        :param seed: Seed of the policy's random generator
        """
        for name, value in (("epsilon_start", epsilon_start), ("epsilon_end", epsilon_end)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        self.epsilon_start = epsilon_start
        self.epsilon_end = epsilon_end
        self.epsilon_decay = epsilon_decay
        self.epsilon = epsilon_start
        self.rng = np.random.default_rng(seed)

    def update_exploration(self, episode: int) -> None:
        self.epsilon = self.epsilon_end + (
            self.epsilon_start - self.epsilon_end
        ) * np.exp(-self.epsilon_decay * episode)

    def select_action(self, actions: Sequence, value_fn: Callable[[object], float]):
        if self.rng.random() > self.epsilon:
            return argmax_action(actions, value_fn)  # Exploitation: choose best action
        return actions[int(self.rng.integers(len(actions)))]  # Exploration: random action


class Softmax(Policy):
    """Boltzmann selection: P(a) proportional to exp(Q(a) / temperature)."""

    def __init__(self, temperature: float = 1.0, seed: Optional[int] = None):
        if temperature <= 0:
            raise ValueError(f"temperature must be positive, got {temperature}")
        self.temperature = temperature
        self.rng = np.random.default_rng(seed)

    def select_action(self, actions: Sequence, value_fn: Callable[[object], float]):
        values = np.array([value_fn(action) for action in actions], dtype=float)
        preferences = (values - np.max(values)) / self.temperature
        probabilities = np.exp(preferences)
        probabilities /= probabilities.sum()
        return actions[int(self.rng.choice(len(actions), p=probabilities))]
