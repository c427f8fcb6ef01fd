import gymnasium as gym
import numpy as np
import pandas as pd
import pytest

from tile_rl.agents_rl import QLearningAgent
from tile_rl.config_exp import ExperimentConfig, RLAlgMethod, RLConfig
from tile_rl.envs import RandomWalkEnv
from tile_rl.experiment import ReinforcementLearningExperiment


@pytest.fixture
def small_config(tmp_path):
    return ExperimentConfig(
        env_kwargs={"n_states": 5},
        algorithm=RLConfig(
            algorithm=RLAlgMethod.Q_LEARNING,
            n_training_episodes=20,
            max_steps=50,
            n_eval_episodes=3,
            random_seed=0,
        ),
        experiments_dir=tmp_path,
    )


def test_random_walk_env():
    env = RandomWalkEnv(n_states=3)
    observation, info = env.reset()
    assert observation == 2
    assert info == {}

    observation, reward, terminated, truncated, _ = env.step(1)
    assert (observation, reward, terminated, truncated) == (3, 0.0, False, False)
    observation, reward, terminated, truncated, _ = env.step(1)
    assert (observation, reward, terminated, truncated) == (4, 1.0, True, False)

    env.reset()
    env.step(0)
    observation, reward, terminated, _, _ = env.step(0)
    assert (observation, reward, terminated) == (0, 0.0, True)

    with pytest.raises(ValueError):
        env.step(2)
    assert env.render() == "A...T"


def test_random_walk_is_registered():
    env = gym.make("RandomWalk-v0", n_states=7)
    observation, _ = env.reset(seed=0)
    assert observation == 4
    assert env.action_space.n == 2
    env.close()


def test_run_writes_artifacts(small_config, tmp_path):
    experiment = ReinforcementLearningExperiment(small_config)
    assert isinstance(experiment.agent, QLearningAgent)
    assert experiment.agent.weights is experiment.tile_code.weights

    results = experiment.run(verbose=False)

    exp_dir = results["exp_dir"]
    assert exp_dir.parent == tmp_path / "RandomWalk-v0"
    assert exp_dir.name.startswith("q_learning_")
    for name in (
        "config.json",
        "config.yaml",
        "weights.pkl",
        "training_results.png",
        "training_logs.csv",
    ):
        assert (exp_dir / name).exists()

    logs = pd.read_csv(exp_dir / "training_logs.csv")
    assert logs["window_end"].tolist() == [20]
    assert logs["mean"].iloc[0] == pytest.approx(np.mean(results["episode_rewards"]))

    assert len(results["episode_rewards"]) == 20
    assert len(results["eval_rewards"]) == 3
    assert 0.0 <= results["mean_reward"] <= 1.0
    assert results["training_time"] >= 0.0

    assert ExperimentConfig.load_yaml(exp_dir / "config.yaml") == small_config


def test_load_agent_restores_weights(small_config):
    trained = ReinforcementLearningExperiment(small_config)
    results = trained.run(verbose=False)

    fresh = ReinforcementLearningExperiment(small_config)
    assert not fresh.agent.weights.any()
    fresh.load_agent(results["exp_dir"])

    np.testing.assert_array_equal(fresh.agent.weights, trained.agent.weights)
    np.testing.assert_array_equal(fresh.tile_code.weights, trained.tile_code.weights)


def test_rejects_continuous_actions(tmp_path):
    config = ExperimentConfig(environment_name="Pendulum-v1", experiments_dir=tmp_path)
    with pytest.raises(ValueError):
        ReinforcementLearningExperiment(config)


def test_training_logs_keep_trailing_block(small_config, tmp_path):
    experiment = ReinforcementLearningExperiment(small_config)
    experiment.exp_dir = tmp_path

    experiment.save_training_logs(np.arange(25, dtype=float), window_size=10)

    logs = pd.read_csv(tmp_path / "training_logs.csv")
    assert logs["window_start"].tolist() == [1, 11, 21]
    assert logs["window_end"].tolist() == [10, 20, 25]
    assert logs["mean"].tolist() == pytest.approx([4.5, 14.5, 22.0])
    assert logs["max"].tolist() == [9.0, 19.0, 24.0]


def test_plot_handles_short_runs(small_config, tmp_path):
    experiment = ReinforcementLearningExperiment(small_config)
    experiment.exp_dir = tmp_path

    figure_path = experiment.plot_training_results(
        np.array([0.0, 1.0, 0.0, 1.0, 1.0]), np.ones(3), window_size=100
    )

    assert figure_path == tmp_path / "training_results.png"
    assert figure_path.exists()
