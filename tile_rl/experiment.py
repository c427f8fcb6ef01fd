import time
from datetime import datetime
from pathlib import Path
from typing import Optional

import gymnasium as gym
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from . import envs  # noqa: F401  registers RandomWalk-v0
from .agents_rl import (
    BaseTileCodingAgent,
    DynaQAgent,
    EpsilonGreedy,
    Greedy,
    Policy,
    QLearningAgent,
    SARSAAgent,
    Softmax,
)
from .coding import TileCode, TileCodeCorrect, TileCodeMt19937, TileCodeUNH
from .config_exp import (
    ExperimentConfig,
    PolicyMethod,
    RLAlgMethod,
    RLConfig,
    TileCodingConfig,
    TileCodingMethod,
)

TILE_CODE_CLASSES = {
    TileCodingMethod.UNH: TileCodeUNH,
    TileCodingMethod.MT19937: TileCodeMt19937,
}

AGENT_CLASSES = {
    RLAlgMethod.SARSA: SARSAAgent,
    RLAlgMethod.Q_LEARNING: QLearningAgent,
    RLAlgMethod.DYNA_Q: DynaQAgent,
}


def make_tile_code(config: TileCodingConfig) -> TileCode:
    """
    Creates the tile code described by the configuration.

    :param config: Tile coding configuration
    :return: Tile code with a zeroed weight table
    """
    descriptors = config.to_descriptors()
    if config.method == TileCodingMethod.CORRECT:
        return TileCodeCorrect(descriptors, config.num_tilings, seed=config.seed)
    return TILE_CODE_CLASSES[config.method](
        descriptors, config.num_tilings, config.size, seed=config.seed
    )


def make_policy(config: RLConfig, seed=None) -> Policy:
    """
    Creates the behaviour policy described by the configuration.

    :param config: Algorithm configuration
    :param seed: Seed or `SeedSequence` of the policy's generator. Defaults to `config.random_seed`
    :return: Policy instance
    """
    if seed is None:
        seed = config.random_seed
    if config.policy == PolicyMethod.EPSILON_GREEDY:
        return EpsilonGreedy(
            epsilon_start=config.epsilon_start,
            epsilon_end=config.epsilon_end,
            epsilon_decay=config.epsilon_decay,
            seed=seed,
        )
    if config.policy == PolicyMethod.SOFTMAX:
        return Softmax(temperature=config.temperature, seed=seed)
    return Greedy()


def make_agent(
    config: RLConfig, tile_code: TileCode, env: Optional[gym.Env] = None, actions=None
) -> BaseTileCodingAgent:
    """
    Creates the agent described by the configuration.

    :param config: Algorithm configuration
    :param tile_code: Tile code whose weights the agent learns
    :param env: Environment used for training and evaluation
    :param actions: Available actions, defaults to the environment's discrete actions
    :return: Agent instance
    """
    if config.algorithm not in AGENT_CLASSES:
        raise ValueError(f"Unsupported algorithm: {config.algorithm}")

    # Exploration and the agent's own draws use independent streams of one seed
    policy_seed, agent_seed = np.random.SeedSequence(config.random_seed).spawn(2)

    kwargs = {
        "tile_code": tile_code,
        "actions": actions,
        "learning_rate": config.learning_rate,
        "gamma": config.gamma,
        "lambda_": config.lambda_,
        "policy": make_policy(config, seed=policy_seed),
        "env": env,
        "reset_traces_on_episode": config.reset_traces_on_episode,
        "trace_threshold": config.trace_threshold,
        "seed": agent_seed,
    }
    if config.algorithm == RLAlgMethod.DYNA_Q:
        kwargs["simulation_iteration_count"] = config.simulation_iteration_count
        kwargs["transition_greediness"] = config.transition_greediness
        kwargs["transition_step_size"] = config.transition_step_size

    return AGENT_CLASSES[config.algorithm](**kwargs)


class ReinforcementLearningExperiment:
    """Builds an environment, a tile code and an agent from a configuration, then trains and evaluates the agent."""

    def __init__(self, config: ExperimentConfig):
        """
        Initializes the reinforcement learning experiment.

        :param config: Experiment configuration object containing all settings for the experiment
        """
        self.config = config
        self.env = gym.make(self.config.environment_name, **self.config.env_kwargs)
        if not isinstance(self.env.action_space, gym.spaces.Discrete):
            raise ValueError(
                f"Only discrete action spaces are supported, got {self.env.action_space}"
            )

        self.tile_code = make_tile_code(self.config.tile_coding)
        self.agent = make_agent(self.config.algorithm, self.tile_code, env=self.env)
        self.exp_dir = None

    def _setup_experiment_dir(self) -> Path:
        """Creates and returns the experiment directory."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        exp_dir = (
            self.config.experiments_dir
            / f"{self.config.environment_name}"
            / f"{self.config.algorithm.algorithm.value}_{timestamp}"
        )
        exp_dir.mkdir(parents=True, exist_ok=True)
        return exp_dir

    def _save_experiment_config(self) -> None:
        """Saves the experiment configuration."""
        self.config.save_json(self.exp_dir / "config.json")
        self.config.save_yaml(self.exp_dir / "config.yaml")

    def plot_training_results(
        self,
        episode_rewards: np.ndarray,
        eval_rewards: Optional[np.ndarray] = None,
        window_size: int = 100,
    ) -> Path:
        """
        Plot the learning curve and the reward distribution of the experiment.

        The moving average window shrinks to the number of episodes on short runs.
        Evaluation rewards, when given, are drawn next to the training rewards.

        :param episode_rewards: Array of rewards per training episode
        :param eval_rewards: Array of rewards per greedy evaluation episode
        :param window_size: Window size for moving average
        :return: Path of the saved figure
        """
        episode_rewards = np.asarray(episode_rewards, dtype=float)
        algorithm = self.config.algorithm
        tile_coding = self.config.tile_coding

        fig, (ax_curve, ax_dist) = plt.subplots(1, 2, figsize=(12, 5))
        fig.suptitle(
            f"{algorithm.algorithm.value} on {self.config.environment_name} | "
            f"{tile_coding.method.value} tile coding, {tile_coding.num_tilings} tilings, "
            f"{self.tile_code.get_size()} weights"
        )

        ax_curve.plot(episode_rewards, alpha=0.3, label="Episode Reward")
        window = min(window_size, len(episode_rewards))
        if window > 1:
            moving_avg = np.convolve(
                episode_rewards, np.ones(window) / window, mode="valid"
            )
            ax_curve.plot(
                range(window - 1, len(episode_rewards)),
                moving_avg,
                label=f"{window}-Episode Moving Average",
                linewidth=2,
            )
        ax_curve.set_xlabel("Episode")
        ax_curve.set_ylabel("Reward")
        ax_curve.set_title(
            f"alpha={algorithm.learning_rate}, gamma={algorithm.gamma}, lambda={algorithm.lambda_}"
        )
        ax_curve.legend()
        ax_curve.grid(True, alpha=0.3)

        ax_dist.hist(episode_rewards, bins=50, alpha=0.6, label="Training")
        if eval_rewards is not None and len(eval_rewards) > 0:
            ax_dist.hist(eval_rewards, bins=50, alpha=0.6, label="Greedy evaluation")
        ax_dist.set_xlabel("Reward")
        ax_dist.set_ylabel("Episodes")
        ax_dist.set_title("Reward Distribution")
        ax_dist.legend()
        ax_dist.grid(True, alpha=0.3)

        fig.tight_layout()
        figure_path = self.exp_dir / "training_results.png"
        fig.savefig(figure_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        return figure_path

    def save_training_logs(
        self, episode_rewards: np.ndarray, window_size: int = 100
    ) -> None:
        """
        Saves training logs every `window_size` episodes to a CSV file.

        Each row summarizes one block of episodes (a trailing shorter block is kept)
        with the mean, median, standard deviation, minimum and maximum reward.

        :param episode_rewards: Array of rewards per episode
        :param window_size: Number of episodes per logging block
        """
        rewards = np.asarray(episode_rewards, dtype=float)
        metrics_data = []

        for start_episode in range(0, len(rewards), window_size):
            block_rewards = rewards[start_episode : start_episode + window_size]
            end_episode = start_episode + len(block_rewards)
            metrics_data.append(
                {
                    "iteration": end_episode,
                    "window_start": start_episode + 1,
                    "window_end": end_episode,
                    "mean": float(np.mean(block_rewards)),
                    "median": float(np.median(block_rewards)),
                    "std": float(np.std(block_rewards)),
                    "min": float(np.min(block_rewards)),
                    "max": float(np.max(block_rewards)),
                }
            )

        df_metrics = pd.DataFrame(
            metrics_data,
            columns=[
                "iteration",
                "window_start",
                "window_end",
                "mean",
                "median",
                "std",
                "min",
                "max",
            ],
        )
        df_metrics.to_csv(self.exp_dir / "training_logs.csv", index=False)

    def run(self, verbose: bool = True) -> dict:
        """
        Runs the reinforcement learning experiment.

        :param verbose: Whether to show progress bars
        :return: Dictionary containing results and metrics from the experiment
        """
        self.exp_dir = self._setup_experiment_dir()
        algorithm = self.config.algorithm
        tile_coding = self.config.tile_coding

        print("=" * 80)
        print(f"EXPERIMENT: {self.exp_dir.name}")
        print("=" * 80)

        if algorithm.random_seed is not None:
            print(f"Seed: {algorithm.random_seed}")

        self._save_experiment_config()

        print(f"STARTING TRAINING - {self.config.environment_name}")
        print("-" * 70)
        print(f"Algorithm: {algorithm.algorithm.value}")
        print(f"Environment: {self.config.environment_name}")
        print(f"Environment kwargs: {self.config.env_kwargs}")
        print(f"Training episodes: {algorithm.n_training_episodes}")
        print(f"Learning rate: {algorithm.learning_rate}")
        print(f"Gamma: {algorithm.gamma}")
        print(f"Lambda: {algorithm.lambda_}")
        print(f"Policy: {algorithm.policy.value}")
        if algorithm.algorithm == RLAlgMethod.DYNA_Q:
            print(
                f"Planning: {algorithm.simulation_iteration_count} simulated steps "
                f"(greediness {algorithm.transition_greediness}, step size {algorithm.transition_step_size})"
            )
        print("=" * 70)

        print("TILE CODING")
        print("-" * 70)
        print(f"Method: {tile_coding.method.value}")
        print(f"Tilings: {tile_coding.num_tilings}")
        print(f"Dimensions: {len(tile_coding.dimensions)}")
        print(f"Weight table size: {self.tile_code.get_size()}")
        print(f"Observation space: {self.env.observation_space}")
        print(f"Action space: {self.env.action_space}")
        print("=" * 70 + "\n")

        start = time.time()
        episode_rewards = self.agent.train(
            n_episodes=algorithm.n_training_episodes,
            max_steps=algorithm.max_steps,
            verbose=verbose,
        )
        training_time = time.time() - start
        print(f"Training completed in {training_time:.2f} seconds")

        self.agent.print_statistics()

        # Evaluation
        print("Starting evaluation...\n")
        mean_reward, std_reward, eval_rewards = self.agent.evaluate(
            n_episodes=algorithm.n_eval_episodes,
            max_steps=algorithm.max_steps,
            render=False,
            verbose=verbose,
        )

        print("\n" + "=" * 70)
        print("EVALUATION RESULTS")
        print("=" * 70)
        print(f"Mean reward: {mean_reward:.2f} +/- {std_reward:.2f}")
        print(f"Min reward: {np.min(eval_rewards):.2f}")
        print(f"Max reward: {np.max(eval_rewards):.2f}")
        print("=" * 70 + "\n")

        print("Generating training visualization...")
        self.plot_training_results(episode_rewards, eval_rewards, window_size=100)
        self.save_training_logs(episode_rewards, window_size=100)
        self.agent.save(self.exp_dir / "weights.pkl")

        return {
            "exp_dir": self.exp_dir,
            "episode_rewards": episode_rewards,
            "eval_rewards": eval_rewards,
            "mean_reward": float(mean_reward),
            "std_reward": float(std_reward),
            "training_time": training_time,
        }

    def load_agent(self, path: Path | str) -> None:
        """Loads trained weights into the experiment's agent."""
        self.agent.load(path)
