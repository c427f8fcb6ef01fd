import pytest

from tile_rl.coding import DimensionDescriptor, TileCodeCorrect
from tile_rl.envs import RandomWalkEnv


@pytest.fixture
def unit_tile_code():
    """1 dimension over [0, 1], one cell, one tiling."""
    return TileCodeCorrect([DimensionDescriptor(0.0, 1.0, 1)], 1, seed=0)


@pytest.fixture
def walk_tile_code():
    """Tabular coding of RandomWalkEnv(5): positions 0..6 and actions 0..1 each get their own cell."""
    return TileCodeCorrect(
        [DimensionDescriptor(0.0, 6.0, 6), DimensionDescriptor(0.0, 1.0, 1)],
        1,
        seed=0,
    )


@pytest.fixture
def square_dimensions():
    return [DimensionDescriptor(-0.5, 0.5, 3), DimensionDescriptor(-0.5, 0.5, 3)]


@pytest.fixture
def random_walk_env():
    return RandomWalkEnv(n_states=5)
