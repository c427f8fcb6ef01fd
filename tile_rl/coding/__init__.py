"""
Tile coding function approximators.

A tile code maps a continuous parameter vector to a small set of active features,
one per tiling, and approximates a value as the sum of their weights:
- TileCodeCorrect:
    Collision-free mixed-radix indexing. The weight table holds
    num_tilings * prod(grid_count + 1) entries.
- TileCodeUNH / TileCodeMt19937:
    Hash the grid coordinates into a fixed-size table. Memory no longer grows with
    the number of dimensions, but unrelated regions may share features.
"""

from .dimension import DimensionDescriptor
from .tile_code import TileCode, TileCodeCorrect
from .tile_code_hashed import TileCodeHashed, TileCodeMt19937, TileCodeUNH

__all__ = [
    "DimensionDescriptor",
    "TileCode",
    "TileCodeCorrect",
    "TileCodeHashed",
    "TileCodeMt19937",
    "TileCodeUNH",
]
