import sys
from pathlib import Path

import gymnasium as gym

from tile_rl.config_exp import (
    DimensionConfig,
    ExperimentConfig,
    RLAlgMethod,
    RLConfig,
    TileCodingConfig,
    TileCodingMethod,
)
from tile_rl.experiment import ReinforcementLearningExperiment


def demonstrate(experiment: ReinforcementLearningExperiment, n_episodes: int = 5) -> None:
    """
    Runs the greedy policy and prints the visited states.

    :param experiment: Experiment whose agent has been trained
    :param n_episodes: Number of episodes to show
    """
    agent = experiment.agent
    env = gym.make(experiment.config.environment_name, **experiment.config.env_kwargs)

    print("\nDemonstrating learned policy:")
    print("-" * 70)
    for episode in range(n_episodes):
        observation, info = env.reset()
        episode_reward = 0.0
        trajectory = [observation]
        actions = []

        for step in range(experiment.config.algorithm.max_steps):
            action = agent.greedy_action(observation)
            actions.append(action)

            observation, reward, terminated, truncated, info = env.step(action)
            episode_reward += reward
            trajectory.append(observation)

            if terminated or truncated:
                break

        print(
            f"Episode {episode + 1}: Reward = {episode_reward:.1f}, Steps = {len(actions)}"
        )
        print(f"  Trajectory: {' -> '.join(map(str, trajectory[:10]))}")
        print(f"  Actions: {actions[:10]}")

    print("-" * 70)
    env.close()


if __name__ == "__main__":
    # python main.py [config.yaml]
    if len(sys.argv) > 1:
        config = ExperimentConfig.load_yaml(Path(sys.argv[1]))
    else:
        ALGORITHM = RLAlgMethod.DYNA_Q  # Options: SARSA, Q_LEARNING, DYNA_Q
        ENV_NAME = "RandomWalk-v0"
        ENV_KWARGS = {"n_states": 5}

        # For continuous observation spaces (e.g., MountainCar), uncomment:
        # ENV_NAME = "MountainCar-v0"
        # ENV_KWARGS = {}
        # TILE_CODING = TileCodingConfig(
        #     dimensions=[
        #         DimensionConfig(-1.2, 0.6, 8),  # position
        #         DimensionConfig(-0.07, 0.07, 8),  # velocity
        #         DimensionConfig(0.0, 2.0, 2),  # action
        #     ],
        #     num_tilings=8,
        #     method=TileCodingMethod.UNH,
        #     size=4096,
        # )
        TILE_CODING = TileCodingConfig(
            dimensions=[DimensionConfig(0.0, 6.0, 6), DimensionConfig(0.0, 1.0, 1)],
            num_tilings=1,
            method=TileCodingMethod.CORRECT,
        )

        config = ExperimentConfig(
            environment_name=ENV_NAME,
            env_kwargs=ENV_KWARGS,
            tile_coding=TILE_CODING,
            algorithm=RLConfig(
                algorithm=ALGORITHM,
                n_training_episodes=200,  # Number of training episodes
                max_steps=200,  # Max steps per episode
                learning_rate=0.1,  # Step size (alpha)
                gamma=0.9,  # Discount factor
                lambda_=0.5,  # Trace decay
                epsilon_start=0.5,  # Probability of choosing a random action at the start of training
                epsilon_end=0.0,  # Minimum probability of choosing a random action
                epsilon_decay=0.05,  # Decay rate for epsilon (how quickly it decreases)
                simulation_iteration_count=50,  # Simulated steps per real step (Dyna-Q only)
                transition_greediness=1.0,  # Sample the model by frequency (Dyna-Q only)
                transition_step_size=1.0,  # Deterministic environment memory (Dyna-Q only)
                n_eval_episodes=10,
            ),
        )

    experiment = ReinforcementLearningExperiment(config)
    experiment.run()
    demonstrate(experiment)
