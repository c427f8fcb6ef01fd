from abc import abstractmethod
from typing import Optional, Sequence

import numpy as np

from .dimension import DimensionDescriptor
from .tile_code import TileCode

UNH_TABLE_SIZE = 2048
UNH_INCREMENT = 449


class TileCodeHashed(TileCode):
    """
    Tile coding with a fixed-size weight table.

    Grid coordinates are computed exactly like in `TileCodeCorrect`, then hashed
    and reduced modulo `size`. Unrelated regions may alias to the same feature,
    which only adds noise to the value estimate, in exchange for memory that does
    not depend on the number of dimensions.
    """

    def __init__(
        self,
        dimensions: Sequence[DimensionDescriptor],
        num_tilings: int,
        size: int,
        seed: Optional[int] = None,
    ):
        """
        :param dimensions: One descriptor per input dimension
        :param num_tilings: Number of overlapping tilings
        :param size: Size of the weight table
        :param seed: Seed for the random tiling offsets and hash tables
        """
        if size is None:
            raise ValueError("Hashed tile codes require an explicit table size")
        super().__init__(dimensions, num_tilings, size=size, seed=seed)

    @abstractmethod
    def hash(self, coordinates: np.ndarray, tiling: int) -> int:
        """
        Hash one tiling's grid coordinates.

        :param coordinates: Grid coordinates of the tiling, shape (D,)
        :param tiling: Index of the tiling
        :return: Non-negative integer, reduced modulo the table size by the caller
        """
        pass

    def get_feature_vector(self, parameters) -> np.ndarray:
        coordinates = self.grid_coordinates(parameters)
        fv = np.array(
            [
                self.hash(coordinates[tiling], tiling) % self._size
                for tiling in range(self._num_tilings)
            ],
            dtype=np.int64,
        )
        return self._check_feature_vector(fv)


class TileCodeUNH(TileCodeHashed):
    """
    Hashed tile coding with the UNH CMAC hash.

    A table of 2048 random integers is drawn at construction; a tiling's hash is
    the sum of the table entries selected by each coordinate, shifted by a
    per-position increment.
    """

    def __init__(
        self,
        dimensions: Sequence[DimensionDescriptor],
        num_tilings: int,
        size: int,
        seed: Optional[int] = None,
    ):
        super().__init__(dimensions, num_tilings, size, seed=seed)
        self._random_table = self._rng.integers(
            0, np.iinfo(np.int32).max, size=UNH_TABLE_SIZE, dtype=np.int64
        )

    def hash(self, coordinates: np.ndarray, tiling: int) -> int:
        ints = np.append(coordinates, tiling).astype(np.int64)
        positions = (ints + UNH_INCREMENT * np.arange(len(ints))) % UNH_TABLE_SIZE
        return int(self._random_table[positions].sum())


class TileCodeMt19937(TileCodeHashed):
    """
    Hashed tile coding that seeds a Mersenne Twister with the combined coordinate.

    The first draw of an MT19937 generator seeded with the tiling's mixed-radix
    coordinate is used as the hash, giving well spread indices at the cost of
    creating a generator per tiling and query.
    """

    def hash(self, coordinates: np.ndarray, tiling: int) -> int:
        combined = int(coordinates @ self._multipliers) + tiling * self._tiling_stride
        generator = np.random.Generator(np.random.MT19937(combined % (1 << 63)))
        return int(generator.integers(0, self._size))
