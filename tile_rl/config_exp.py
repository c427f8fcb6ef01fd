import json
from copy import deepcopy
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .coding import DimensionDescriptor


class RLAlgMethod(Enum):
    """TD algorithms supported in this project."""

    SARSA = "sarsa"
    Q_LEARNING = "q_learning"
    DYNA_Q = "dyna_q"


class TileCodingMethod(Enum):
    """Indexing strategies of the tile code."""

    CORRECT = "correct"  # Collision-free, table size grows with the grid
    UNH = "unh"  # Hashed with the UNH CMAC hash
    MT19937 = "mt19937"  # Hashed with a seeded Mersenne Twister


class PolicyMethod(Enum):
    """Action selection policies used while training."""

    EPSILON_GREEDY = "epsilon_greedy"
    SOFTMAX = "softmax"
    GREEDY = "greedy"


@dataclass
class DimensionConfig:
    """Configuration of one tile code dimension"""

    lower_bound: float
    upper_bound: float
    grid_count: int
    generalization_scale: float = 1.0

    def to_descriptor(self) -> DimensionDescriptor:
        return DimensionDescriptor(
            self.lower_bound,
            self.upper_bound,
            self.grid_count,
            self.generalization_scale,
        )


@dataclass
class TileCodingConfig:
    """Configuration of the tile code. Dimensions cover the state first, then the action."""

    dimensions: List[DimensionConfig] = field(default_factory=list)
    num_tilings: int = 8
    method: TileCodingMethod = TileCodingMethod.CORRECT
    size: Optional[int] = None  # Required by the hashed methods
    seed: Optional[int] = None

    def __post_init__(self):
        """Validates the configuration and normalizes nested values."""
        self.dimensions = [
            DimensionConfig(**d) if isinstance(d, dict) else d for d in self.dimensions
        ]
        if isinstance(self.method, str):
            self.method = TileCodingMethod(self.method)
        if self.num_tilings <= 0:
            raise ValueError(f"num_tilings must be positive, got {self.num_tilings}")
        if self.method != TileCodingMethod.CORRECT and self.size is None:
            raise ValueError(f"Tile coding method '{self.method.value}' requires 'size'")
        # Descriptors reject degenerate ranges, grid counts and negative scales
        for dimension in self.dimensions:
            dimension.to_descriptor()
            if (
                self.method == TileCodingMethod.CORRECT
                and dimension.generalization_scale > 1.0
            ):
                raise ValueError(
                    "generalization_scale above 1 requires a hashed tile coding method"
                )

    def to_descriptors(self) -> List[DimensionDescriptor]:
        return [d.to_descriptor() for d in self.dimensions]

    def to_dict(self) -> Dict[str, Any]:
        config_dict = asdict(self)
        config_dict["method"] = self.method.value
        return config_dict

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "TileCodingConfig":
        return cls(**deepcopy(config_dict))


@dataclass
class AlgorithmConfig:
    """Base configuration for algorithms classes"""

    def _to_serializable_dict(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for subclass-specific serialization."""
        return config_dict

    @classmethod
    def _from_serializable_dict(cls, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Hook for subclass-specific deserialization."""
        return config_dict

    def to_dict(self) -> Dict[str, Any]:
        """Converts the algorithm configuration to a dictionary."""
        return self._to_serializable_dict(asdict(self))

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "AlgorithmConfig":
        """Creates an instance of the algorithm configuration from a dictionary."""
        normalized_config = cls._from_serializable_dict(deepcopy(config_dict))
        return cls(**normalized_config)

    def save_json(self, filepath: Path | str) -> None:
        """Saves the configuration to a JSON file."""
        filepath = Path(filepath)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_yaml(self, filepath: Path | str) -> None:
        """Saves the configuration to a YAML file."""
        filepath = Path(filepath)
        with open(filepath, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    @classmethod
    def load_json(cls, filepath: Path | str) -> "AlgorithmConfig":
        """Loads the configuration from a JSON file."""
        filepath = Path(filepath)
        with open(filepath, "r", encoding="utf-8") as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def load_yaml(cls, filepath: Path | str) -> "AlgorithmConfig":
        """Loads the configuration from a YAML file."""
        filepath = Path(filepath)
        with open(filepath, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
        return cls.from_dict(config_dict)


@dataclass
class RLConfig(AlgorithmConfig):
    """Configuration for tile-coded TD learning experiments."""

    algorithm: RLAlgMethod = RLAlgMethod.SARSA
    n_training_episodes: int = 500
    max_steps: int = 200
    learning_rate: float = 0.1
    gamma: float = 0.95
    lambda_: float = 0.9
    policy: PolicyMethod = PolicyMethod.EPSILON_GREEDY
    epsilon_start: float = 1.0
    epsilon_end: float = 0.05
    epsilon_decay: float = 0.01
    temperature: float = 1.0  # Only used when policy == softmax
    reset_traces_on_episode: bool = True
    trace_threshold: float = 1e-5
    n_eval_episodes: int = 100

    # Only used when algorithm == dyna_q
    simulation_iteration_count: int = 50
    transition_greediness: float = 1.0
    transition_step_size: float = 1.0

    random_seed: Optional[int] = None

    def __post_init__(self):
        """Rejects out-of-range hyperparameters before any agent is built."""
        if isinstance(self.algorithm, str):
            self.algorithm = RLAlgMethod(self.algorithm)
        if isinstance(self.policy, str):
            self.policy = PolicyMethod(self.policy)

        unit_ranges = {
            "gamma": self.gamma,
            "lambda_": self.lambda_,
            "epsilon_start": self.epsilon_start,
            "epsilon_end": self.epsilon_end,
            "transition_greediness": self.transition_greediness,
        }
        for name, value in unit_ranges.items():
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"'{name}' must be in [0, 1], got {value}")

        for name in ("learning_rate", "transition_step_size"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise ValueError(f"'{name}' must be in (0, 1], got {value}")

        if self.simulation_iteration_count < 0:
            raise ValueError("'simulation_iteration_count' must be >= 0")
        if self.temperature <= 0:
            raise ValueError("'temperature' must be positive")

    def _to_serializable_dict(self, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Converts enum fields to serializable values."""
        config_dict["algorithm"] = self.algorithm.value
        config_dict["policy"] = self.policy.value
        return config_dict

    @classmethod
    def _from_serializable_dict(cls, config_dict: Dict[str, Any]) -> Dict[str, Any]:
        """Converts serializable values to enum fields."""
        if "algorithm" in config_dict:
            config_dict["algorithm"] = RLAlgMethod(config_dict["algorithm"])
        if "policy" in config_dict:
            config_dict["policy"] = PolicyMethod(config_dict["policy"])
        return config_dict


def _default_tile_coding() -> TileCodingConfig:
    # RandomWalk-v0 with 5 states: positions 0..6, actions 0..1
    return TileCodingConfig(
        dimensions=[DimensionConfig(0.0, 6.0, 6), DimensionConfig(0.0, 1.0, 1)],
        num_tilings=1,
    )


@dataclass
class ExperimentConfig:
    """Full configuration for a TD learning experiment, including algorithm, tile coding and environment settings."""

    environment_name: str = "RandomWalk-v0"
    env_kwargs: Dict[str, Any] = field(default_factory=dict)
    tile_coding: TileCodingConfig = field(default_factory=_default_tile_coding)
    algorithm: RLConfig = field(default_factory=RLConfig)
    experiments_dir: Path = Path("results")

    def to_dict(self) -> Dict[str, Any]:
        """Converts the full configuration to a dictionary."""
        return {
            "environment_name": self.environment_name,
            "env_kwargs": self.env_kwargs,
            "tile_coding": self.tile_coding.to_dict(),
            "algorithm": self.algorithm.to_dict(),
            "experiments_dir": str(self.experiments_dir),
        }

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "ExperimentConfig":
        """
        Creates an instance from a dictionary.

        :param config_dict: A dictionary containing the configuration parameters. It should have the same structure as the one produced by `to_dict()`.
        :return: An instance of `ExperimentConfig` with the parameters set according to the provided dictionary.
        """
        config_dict = deepcopy(config_dict)
        if "algorithm" in config_dict:
            algorithm_config = config_dict["algorithm"]
            if not isinstance(algorithm_config, dict):
                raise ValueError("'algorithm' configuration must be a dictionary")

            algorithm_name = algorithm_config.get("algorithm", RLAlgMethod.SARSA.value)
            rl_algorithms = {method.value for method in RLAlgMethod}
            if algorithm_name not in rl_algorithms:
                raise ValueError(
                    f"Unsupported algorithm '{algorithm_name}'. Supported values are: {sorted(rl_algorithms)}"
                )
            config_dict["algorithm"] = RLConfig.from_dict(algorithm_config)
        if "tile_coding" in config_dict:
            if not isinstance(config_dict["tile_coding"], dict):
                raise ValueError("'tile_coding' configuration must be a dictionary")
            config_dict["tile_coding"] = TileCodingConfig.from_dict(
                config_dict["tile_coding"]
            )
        if "experiments_dir" in config_dict:
            config_dict["experiments_dir"] = Path(config_dict["experiments_dir"])
        return cls(**config_dict)

    def save_json(self, filepath: Path | str) -> None:
        """Saves the configuration in JSON format."""
        filepath = Path(filepath)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def save_yaml(self, filepath: Path | str) -> None:
        """Saves the configuration in YAML format."""
        filepath = Path(filepath)
        with open(filepath, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    @classmethod
    def load_json(cls, filepath: Path | str) -> "ExperimentConfig":
        """Loads the configuration from JSON."""
        filepath = Path(filepath)
        with open(filepath, "r", encoding="utf-8") as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    @classmethod
    def load_yaml(cls, filepath: Path | str) -> "ExperimentConfig":
        """Loads the configuration from YAML."""
        filepath = Path(filepath)
        with open(filepath, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)
        return cls.from_dict(config_dict)
