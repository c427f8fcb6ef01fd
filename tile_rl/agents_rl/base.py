import pickle
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

import gymnasium as gym
import numpy as np
from tqdm import tqdm

from ..coding import TileCode
from .policy import EpsilonGreedy, Policy, argmax_action


class BaseTileCodingAgent(ABC):
    """
    Base class for gradient-descent TD agents with eligibility traces.

    Action values are approximated by a tile code over the concatenated
    (state, action) vector. The agent does not copy the tile code's weight
    table: it updates `tile_code.weights` in place, so value queries through the
    tile code always reflect the latest update.

    One learning step (`step`) computes the TD error
        delta = r + gamma * Q(s', a') - Q(s, a)
    where the subclass decides which Q(s', a') is used, decays every trace by
    gamma * lambda, adds 1 to the traces of the active features and moves every
    weight with a non-negligible trace by learning_rate * delta * trace.
    """

    def __init__(
        self,
        tile_code: TileCode,
        actions: Optional[Sequence] = None,
        learning_rate: float = 0.1,
        gamma: float = 0.95,
        lambda_: float = 0.9,
        policy: Optional[Policy] = None,
        env: Optional[gym.Env] = None,
        reset_traces_on_episode: bool = True,
        trace_threshold: float = 1e-5,
        encoder: Optional[Callable[[object, object], Sequence[float]]] = None,
        seed: Optional[Union[int, np.random.SeedSequence]] = None,
    ):
        """
        Initialize the agent.

        :param tile_code: Approximator whose weight table is learned
        :param actions: Available actions. Defaults to `range(env.action_space.n)` when an environment is given
        :param learning_rate: Step size (alpha) of the weight updates
        :param gamma: Discount factor for future rewards
        :param lambda_: Trace decay parameter
        :param policy: Action selection policy used while training. Defaults to epsilon-greedy
        :param env: Gymnasium environment used by `train` and `evaluate`
        :param reset_traces_on_episode: Clear the eligibility traces when an episode starts
        :param trace_threshold: Traces at or below this value are treated as zero
        :param encoder: Maps (state, action) to the tile code parameter vector. Defaults to concatenating both
        :param seed: Seed of the agent's random generator. The default policy draws from a separate child stream
        """
        if actions is None:
            if env is None:
                raise ValueError("Either actions or an environment must be given")
            actions = range(env.action_space.n)
        if not 0.0 < learning_rate <= 1.0:
            raise ValueError(f"learning_rate must be in (0, 1], got {learning_rate}")
        if not 0.0 <= gamma <= 1.0:
            raise ValueError(f"gamma must be in [0, 1], got {gamma}")
        if not 0.0 <= lambda_ <= 1.0:
            raise ValueError(f"lambda_ must be in [0, 1], got {lambda_}")

        self.tile_code = tile_code
        self.actions: List = list(actions)
        self.learning_rate = learning_rate
        self.gamma = gamma
        self.lambda_ = lambda_
        self.env = env
        self.reset_traces_on_episode = reset_traces_on_episode
        self.trace_threshold = trace_threshold
        self.encoder = encoder
        if not isinstance(seed, np.random.SeedSequence):
            seed = np.random.SeedSequence(seed)
        agent_seed, policy_seed = seed.spawn(2)
        self.rng = np.random.default_rng(agent_seed)
        self.policy = policy if policy is not None else EpsilonGreedy(seed=policy_seed)

        self.weights = tile_code.weights
        self.eligibility_trace = np.zeros_like(self.weights)

    def encode(self, state, action) -> np.ndarray:
        """
        Build the tile code parameter vector of a state-action pair.

        :param state: State (scalar or vector)
        :param action: Action (scalar or vector)
        :return: Parameter vector, the concatenation of state and action unless an encoder was given
        """
        if self.encoder is not None:
            params = np.asarray(self.encoder(state, action), dtype=float).ravel()
        else:
            params = np.concatenate(
                (
                    np.atleast_1d(np.asarray(state, dtype=float)).ravel(),
                    np.atleast_1d(np.asarray(action, dtype=float)).ravel(),
                )
            )
        if params.shape[0] != self.tile_code.get_dimension():
            raise ValueError(
                f"State-action vector has {params.shape[0]} components, "
                f"the tile code expects {self.tile_code.get_dimension()}"
            )
        return params

    def get_active_features(self, state, action) -> np.ndarray:
        return self.tile_code.get_feature_vector(self.encode(state, action))

    def get_value(self, state, action) -> float:
        """
        :param state: State
        :param action: Action
        :return: Approximated Q(state, action)
        """
        return self.tile_code.get_value_from_feature_vector(
            self.get_active_features(state, action)
        )

    def get_action_values(self, state) -> np.ndarray:
        return np.array([self.get_value(state, action) for action in self.actions])

    def value_function(self, state) -> Callable[[object], float]:
        """Value lookup handed to a policy: maps an action to Q(state, action)."""
        return lambda action: self.get_value(state, action)

    def greedy_action(self, state):
        return argmax_action(self.actions, self.value_function(state))

    def select_action(self, state):
        return self.policy.select_action(self.actions, self.value_function(state))

    @abstractmethod
    def _next_value(self, next_state, next_action) -> float:
        """
        Value of the successor used to bootstrap the TD target.

        :param next_state: State reached
        :param next_action: Action chosen in `next_state` by the behaviour policy
        :return: Q estimate for the successor
        """
        pass

    def _update_traces(self, trace: np.ndarray, active_features: np.ndarray) -> None:
        trace *= self.gamma * self.lambda_
        # accumulating traces: repeated features add up
        np.add.at(trace, active_features, 1.0)

    def _update_weights(self, trace: np.ndarray, td_error: float) -> None:
        eligible = trace > self.trace_threshold
        trace[~eligible] = 0.0
        self.weights[eligible] += self.learning_rate * td_error * trace[eligible]

    def _td_update(
        self,
        state,
        action,
        reward: float,
        next_state,
        next_action,
        done: bool,
        trace: np.ndarray,
    ) -> float:
        active_features = self.get_active_features(state, action)
        current_value = self.tile_code.get_value_from_feature_vector(active_features)

        if done:
            # No future rewards if episode terminated
            next_value = 0.0
        else:
            next_value = self._next_value(next_state, next_action)

        td_error = reward + self.gamma * next_value - current_value

        self._update_traces(trace, active_features)
        self._update_weights(trace, td_error)
        return td_error

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
        Learn from one real transition.

        :param state: Current state
        :param action: Action taken
        :param reward: Reward received
        :param next_state: Next state
        :param next_action: Action the behaviour policy chose in `next_state`
        :param done: Whether `next_state` is terminal
        :return: TD error of the update
        """
        return self._td_update(
            state,
            action,
            reward,
            next_state,
            next_action,
            done,
            self.eligibility_trace,
        )

    def reset_traces(self) -> None:
        self.eligibility_trace.fill(0.0)

    def start_episode(self) -> None:
        """Called by the driver when a new episode begins."""
        if self.reset_traces_on_episode:
            self.reset_traces()

    def train_episode(self, max_steps: int) -> float:
        """
        Train the agent for one episode.

        The next action is chosen before the update, so on-policy agents
        bootstrap from the action they will actually take.

        :param max_steps: Maximum steps per episode
        :return: Total reward for the episode
        """
        observation, info = self.env.reset()
        self.start_episode()
        action = self.select_action(observation)

        episode_reward = 0.0

        for step in range(max_steps):
            next_observation, reward, terminated, truncated, info = self.env.step(
                action
            )
            next_action = self.select_action(next_observation)

            self.step(
                observation, action, reward, next_observation, next_action, terminated
            )
            episode_reward += reward

            if terminated or truncated:
                break

            observation = next_observation
            action = next_action

        return episode_reward

    def train(
        self, n_episodes: int, max_steps: int = 99, verbose: bool = True
    ) -> np.ndarray:
        """
        Train the agent.

        :param n_episodes: Number of training episodes
        :param max_steps: Maximum steps per episode
        :param verbose: Whether to show progress bar
        :return: Array of episode rewards
        """
        if self.env is None:
            raise ValueError("Training requires an environment")

        episode_rewards = []

        iterator = (
            tqdm(range(n_episodes), desc=f"Training {self.__class__.__name__}")
            if verbose
            else range(n_episodes)
        )

        for episode in iterator:
            self.policy.update_exploration(episode)

            episode_reward = self.train_episode(max_steps)
            episode_rewards.append(episode_reward)

            # Update progress bar with recent performance
            if verbose and episode > 0 and episode % 100 == 0:
                recent_avg = np.mean(episode_rewards[-100:])
                postfix = {"avg_reward_100": f"{recent_avg:.2f}"}
                if hasattr(self.policy, "epsilon"):
                    postfix["epsilon"] = f"{self.policy.epsilon:.3f}"
                iterator.set_postfix(postfix)

        return np.array(episode_rewards)

    def evaluate(
        self,
        n_episodes: int = 100,
        max_steps: int = 99,
        render: bool = False,
        verbose: bool = True,
    ) -> Tuple[float, float, np.ndarray]:
        """
        Evaluate the trained agent with the greedy policy.

        :param n_episodes: Number of evaluation episodes
        :param max_steps: Maximum steps per episode
        :param render: Whether to render the environment
        :param verbose: Whether to show progress bar
        :return: Tuple of (mean_reward, std_reward, episode_rewards)
        """
        if self.env is None:
            raise ValueError("Evaluation requires an environment")

        episode_rewards = []

        iterator = (
            tqdm(range(n_episodes), desc="Evaluating") if verbose else range(n_episodes)
        )

        for episode in iterator:
            observation, info = self.env.reset()
            episode_reward = 0.0

            for step in range(max_steps):
                action = self.greedy_action(observation)

                if render:
                    self.env.render()

                observation, reward, terminated, truncated, info = self.env.step(
                    action
                )
                episode_reward += reward

                if terminated or truncated:
                    break

            episode_rewards.append(episode_reward)

        episode_rewards = np.array(episode_rewards)
        mean_reward = np.mean(episode_rewards)
        std_reward = np.std(episode_rewards)

        return mean_reward, std_reward, episode_rewards

    def save(self, filepath: Union[str, Path]) -> None:
        """
        Save the weight table to a file.

        :param filepath: Path to save the weights
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "wb") as f:
            pickle.dump(self.weights, f)

        print(f"Weights saved to {filepath}")

    def load(self, filepath: Union[str, Path]) -> None:
        """
        Load a weight table saved with `save` into this agent's tile code.

        If `filepath` is a directory, it must contain a `weights.pkl` file.

        :param filepath: Path to an experiment directory or to `weights.pkl`
        """
        filepath = Path(filepath)
        if filepath.is_dir():
            filepath = filepath / "weights.pkl"

        if not filepath.exists():
            raise FileNotFoundError(f"Weights file not found: {filepath}")

        with open(filepath, "rb") as f:
            weights = pickle.load(f)

        if getattr(weights, "shape", None) != self.weights.shape:
            raise ValueError(
                f"Loaded weights shape {getattr(weights, 'shape', None)} does not match expected {self.weights.shape}"
            )

        # in place, the tile code shares this array
        self.weights[:] = weights
        self.reset_traces()

        print(f"Weights loaded from {filepath}")

    def print_statistics(self) -> None:
        """Print statistics about the weight table."""
        print("\n" + "=" * 50)
        print(f"{self.__class__.__name__} WEIGHT STATISTICS")
        print("=" * 50)
        print(f"Tile code: {self.tile_code.__class__.__name__}")
        print(f"Dimensions: {self.tile_code.get_dimension()}")
        print(f"Tilings: {self.tile_code.get_num_tilings()}")
        print(f"Number of actions: {len(self.actions)}")
        print(f"Weight table size: {self.weights.size}")
        print(f"Weights mean: {np.mean(self.weights):.4f}")
        print(f"Weights std: {np.std(self.weights):.4f}")
        print(f"Weights min: {np.min(self.weights):.4f}")
        print(f"Weights max: {np.max(self.weights):.4f}")
        print(f"Non-zero entries: {np.count_nonzero(self.weights)} / {self.weights.size}")
        print("=" * 50 + "\n")
