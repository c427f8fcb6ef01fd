from typing import Dict, Hashable, Optional, Set, Tuple

import numpy as np

from ..exceptions import UnmodeledStateError
from .q_agent import QLearningAgent
from .transition import StateActionTransition


class DynaQAgent(QLearningAgent):
    """
    Dyna-Q agent: Watkins' Q(lambda) plus planning with a learned model.

    Every real transition (s, a, r, s') updates the weights like Q-Learning, is
    recorded in the `StateActionTransition` model of (s, a) and is followed by
    `simulation_iteration_count` simulated updates. A simulated update picks a
    previously experienced (s, a) uniformly at random, samples s' and r from its
    model and applies the same TD update.

    Simulated updates use their own trace buffer, cleared before each of them,
    so they never disturb the traces accumulated from real experience.
    """

    def __init__(
        self,
        *args,
        simulation_iteration_count: int = 50,
        transition_greediness: float = 1.0,
        transition_step_size: float = 1.0,
        **kwargs,
    ):
        """
        Initialize Dyna-Q agent.

        :param simulation_iteration_count: Number of simulated updates after every real step
        :param transition_greediness: Greediness of the transition models, see `StateActionTransition`
        :param transition_step_size: Step size of the transition models' frequency estimates
        :param args: Arguments passed to BaseTileCodingAgent
        :param kwargs: Keyword arguments passed to BaseTileCodingAgent
        """
        super().__init__(*args, **kwargs)
        if simulation_iteration_count < 0:
            raise ValueError(
                f"simulation_iteration_count must be >= 0, got {simulation_iteration_count}"
            )
        # Raises ValueError for out-of-range model parameters
        StateActionTransition(transition_greediness, transition_step_size)

        self.simulation_iteration_count = simulation_iteration_count
        self.transition_greediness = transition_greediness
        self.transition_step_size = transition_step_size

        self.models: Dict[Tuple[Hashable, Hashable], StateActionTransition] = {}
        self.terminal_states: Set[Hashable] = set()
        self.planning_trace = np.zeros_like(self.weights)

    @staticmethod
    def state_key(state) -> Hashable:
        """Hashable identity of a state or action (scalars stay scalars, arrays become tuples)."""
        value = np.asarray(state)
        if value.ndim == 0:
            return value.item()
        return tuple(value.ravel().tolist())

    def get_model(self, state, action) -> StateActionTransition:
        """
        :param state: State
        :param action: Action
        :return: Transition model of (state, action)
        :raises UnmodeledStateError: If the pair was never experienced
        """
        key = (self.state_key(state), self.state_key(action))
        if key not in self.models:
            raise UnmodeledStateError(f"State-action pair {key!r} is not modeled")
        return self.models[key]

    def update_model(
        self, state, action, reward: float, next_state, done: bool = False
    ) -> None:
        """
        Record a real transition in the model of (state, action).

        :param state: Current state
        :param action: Action taken
        :param reward: Reward received
        :param next_state: Next state
        :param done: Whether `next_state` is terminal
        """
        key = (self.state_key(state), self.state_key(action))
        model = self.models.get(key)
        if model is None:
            model = StateActionTransition(
                self.transition_greediness,
                self.transition_step_size,
                seed=int(self.rng.integers(2**32)),
            )
            self.models[key] = model

        next_key = self.state_key(next_state)
        model.update(next_key, reward)
        if done:
            self.terminal_states.add(next_key)

    def simulate(self, state, action) -> Tuple[Hashable, float]:
        """
        Sample a transition of (state, action) from its model.

        :return: Tuple of (next_state, reward)
        """
        model = self.get_model(state, action)
        next_state = model.get_next_state()
        return next_state, model.get_reward(next_state)

    def plan(self, n_iterations: Optional[int] = None) -> None:
        """
        Apply simulated updates drawn from the learned models.

        :param n_iterations: Number of simulated updates. Defaults to `simulation_iteration_count`
        """
        if n_iterations is None:
            n_iterations = self.simulation_iteration_count
        if not self.models:
            return

        # Only pairs with at least one recorded transition are in the table
        pairs = list(self.models)

        for _ in range(n_iterations):
            state, action = pairs[int(self.rng.integers(len(pairs)))]
            next_state, reward = self.simulate(state, action)

            self.planning_trace.fill(0.0)
            self._td_update(
                state,
                action,
                reward,
                next_state,
                None,
                next_state in self.terminal_states,
                self.planning_trace,
            )

    def step(
        self,
        state,
        action,
        reward: float,
        next_state,
        next_action=None,
        done: bool = False,
    ) -> float:
        """
        Learn from one real transition, then plan.

        :return: TD error of the real update
        """
        td_error = super().step(state, action, reward, next_state, next_action, done)

        self.update_model(state, action, reward, next_state, done)
        self.plan()

        return td_error

    def print_statistics(self) -> None:
        super().print_statistics()
        print(f"Modeled state-action pairs: {len(self.models)}")
        print(f"Known terminal states: {len(self.terminal_states)}")
        print(f"Simulated updates per step: {self.simulation_iteration_count}\n")
