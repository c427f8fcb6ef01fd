import numpy as np
import pytest

from tile_rl.agents_rl import DynaQAgent, EpsilonGreedy, Greedy, QLearningAgent, Softmax
from tile_rl.coding import TileCodeCorrect, TileCodeMt19937, TileCodeUNH
from tile_rl.config_exp import (
    DimensionConfig,
    ExperimentConfig,
    PolicyMethod,
    RLAlgMethod,
    RLConfig,
    TileCodingConfig,
    TileCodingMethod,
)
from tile_rl.experiment import make_agent, make_policy, make_tile_code


@pytest.fixture
def experiment_config(tmp_path):
    return ExperimentConfig(
        environment_name="RandomWalk-v0",
        env_kwargs={"n_states": 5},
        tile_coding=TileCodingConfig(
            dimensions=[DimensionConfig(0.0, 6.0, 6), DimensionConfig(0.0, 1.0, 1)],
            num_tilings=2,
            method=TileCodingMethod.UNH,
            size=128,
            seed=3,
        ),
        algorithm=RLConfig(
            algorithm=RLAlgMethod.DYNA_Q,
            policy=PolicyMethod.SOFTMAX,
            simulation_iteration_count=7,
            random_seed=42,
        ),
        experiments_dir=tmp_path / "results",
    )


def test_yaml_round_trip(experiment_config, tmp_path):
    experiment_config.save_yaml(tmp_path / "config.yaml")
    loaded = ExperimentConfig.load_yaml(tmp_path / "config.yaml")

    assert loaded == experiment_config
    assert loaded.algorithm.algorithm == RLAlgMethod.DYNA_Q
    assert loaded.tile_coding.method == TileCodingMethod.UNH
    assert isinstance(loaded.tile_coding.dimensions[0], DimensionConfig)


def test_json_round_trip(experiment_config, tmp_path):
    experiment_config.save_json(tmp_path / "config.json")
    loaded = ExperimentConfig.load_json(tmp_path / "config.json")
    assert loaded == experiment_config


def test_algorithm_config_round_trip(tmp_path):
    config = RLConfig(algorithm=RLAlgMethod.Q_LEARNING, learning_rate=0.3, lambda_=0.0)
    config.save_yaml(tmp_path / "rl.yaml")
    assert RLConfig.load_yaml(tmp_path / "rl.yaml") == config


def test_values_are_serialized_as_strings(experiment_config):
    config_dict = experiment_config.to_dict()
    assert config_dict["algorithm"]["algorithm"] == "dyna_q"
    assert config_dict["algorithm"]["policy"] == "softmax"
    assert config_dict["tile_coding"]["method"] == "unh"
    assert isinstance(config_dict["experiments_dir"], str)


def test_defaults_cover_random_walk():
    config = ExperimentConfig()
    tile_code = make_tile_code(config.tile_coding)
    assert isinstance(tile_code, TileCodeCorrect)
    assert tile_code.get_dimension() == 2
    assert tile_code.get_size() == 14


@pytest.mark.parametrize(
    "kwargs",
    [
        {"gamma": 1.5},
        {"lambda_": -0.1},
        {"learning_rate": 0.0},
        {"epsilon_end": 2.0},
        {"transition_greediness": -1.0},
        {"transition_step_size": 1.2},
        {"simulation_iteration_count": -5},
        {"temperature": 0.0},
        {"algorithm": "ppo"},
    ],
)
def test_invalid_algorithm_config(kwargs):
    with pytest.raises(ValueError):
        RLConfig(**kwargs)


def test_invalid_tile_coding_config():
    with pytest.raises(ValueError):
        TileCodingConfig(dimensions=[DimensionConfig(0.0, 1.0, 2)], method="unh")
    with pytest.raises(ValueError):
        TileCodingConfig(dimensions=[DimensionConfig(0.0, 1.0, 0)])
    with pytest.raises(ValueError):
        TileCodingConfig(dimensions=[DimensionConfig(1.0, 1.0, 2)])
    with pytest.raises(ValueError):
        TileCodingConfig(dimensions=[DimensionConfig(0.0, 1.0, 2)], num_tilings=0)


def test_invalid_experiment_dict():
    with pytest.raises(ValueError):
        ExperimentConfig.from_dict({"algorithm": {"algorithm": "ppo"}})
    with pytest.raises(ValueError):
        ExperimentConfig.from_dict({"algorithm": "sarsa"})
    with pytest.raises(ValueError):
        ExperimentConfig.from_dict({"tile_coding": [1, 2]})


def test_tile_coding_dict_accepts_plain_values():
    config = TileCodingConfig.from_dict(
        {
            "dimensions": [{"lower_bound": -1.0, "upper_bound": 1.0, "grid_count": 4}],
            "num_tilings": 4,
            "method": "mt19937",
            "size": 64,
        }
    )
    tile_code = make_tile_code(config)
    assert isinstance(tile_code, TileCodeMt19937)
    assert tile_code.get_size() == 64
    assert tile_code.get_num_tilings() == 4


def test_make_agent(experiment_config):
    tile_code = make_tile_code(experiment_config.tile_coding)
    assert isinstance(tile_code, TileCodeUNH)
    assert tile_code.get_size() == 128

    agent = make_agent(experiment_config.algorithm, tile_code, actions=[0, 1])
    assert isinstance(agent, DynaQAgent)
    assert isinstance(agent.policy, Softmax)
    assert agent.simulation_iteration_count == 7
    assert agent.weights is tile_code.weights


def test_make_policy():
    assert isinstance(make_policy(RLConfig()), EpsilonGreedy)
    assert isinstance(make_policy(RLConfig(policy=PolicyMethod.GREEDY)), Greedy)

    config = RLConfig(algorithm="q_learning", policy="epsilon_greedy", epsilon_start=0.5)
    policy = make_policy(config)
    assert policy.epsilon == 0.5

    tile_code = make_tile_code(ExperimentConfig().tile_coding)
    assert isinstance(make_agent(config, tile_code, actions=[0, 1]), QLearningAgent)


def test_wide_generalization_scale_needs_hashing():
    wide = DimensionConfig(0.0, 1.0, 4, generalization_scale=2.0)
    with pytest.raises(ValueError):
        TileCodingConfig(dimensions=[wide])
    with pytest.raises(ValueError):
        TileCodingConfig(dimensions=[DimensionConfig(0.0, 1.0, 4, -1.0)], method="unh", size=64)

    config = TileCodingConfig(dimensions=[wide], method="unh", size=64)
    assert isinstance(make_tile_code(config), TileCodeUNH)


def test_policy_and_agent_draw_from_separate_streams():
    config = RLConfig(algorithm=RLAlgMethod.DYNA_Q, random_seed=5)
    tile_code = make_tile_code(ExperimentConfig().tile_coding)
    agent = make_agent(config, tile_code, actions=[0, 1])
    assert not np.array_equal(agent.rng.random(8), agent.policy.rng.random(8))

    again = make_agent(config, make_tile_code(ExperimentConfig().tile_coding), actions=[0, 1])
    again.rng.random(8)
    np.testing.assert_array_equal(
        make_agent(config, tile_code, actions=[0, 1]).policy.rng.random(8),
        again.policy.rng.random(8),
    )
