from abc import ABC, abstractmethod
from copy import deepcopy
from typing import Optional, Sequence

import numpy as np

from ..exceptions import FeatureIndexError
from .dimension import DimensionDescriptor


class TileCode(ABC):
    """
    Base class for tile coding function approximators.

    A D-dimensional parameter vector is mapped to `num_tilings` active features,
    one per tiling. Each tiling is the same grid shifted by a random offset drawn
    once at construction, so tilings overlap without coinciding. The value of a
    parameter vector is the sum of the weights of its active features.

    Subclasses decide how a tiling's grid coordinates turn into an index of the
    weight table.
    """

    def __init__(
        self,
        dimensions: Sequence[DimensionDescriptor],
        num_tilings: int,
        size: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        """
        :param dimensions: One descriptor per input dimension. They are copied, later changes to the originals have no effect
        :param num_tilings: Number of overlapping tilings
        :param size: Size of the weight table. Defaults to the collision-free size `num_tilings * prod(real grid counts)`
        :param seed: Seed of the generator used for the random tiling offsets
        """
        if len(dimensions) == 0:
            raise ValueError("At least one dimension is required")
        if num_tilings <= 0:
            raise ValueError(f"num_tilings must be positive, got {num_tilings}")

        self._dimensions = tuple(deepcopy(list(dimensions)))
        self._num_tilings = int(num_tilings)
        self._rng = np.random.default_rng(seed)

        self._lower_bounds = np.array(
            [d.get_lower_bound() for d in self._dimensions], dtype=float
        )
        self._grid_counts = np.array(
            [d.get_grid_count() for d in self._dimensions], dtype=float
        )
        self._range_magnitudes = np.array(
            [d.get_range_magnitude() for d in self._dimensions], dtype=float
        )
        self._real_grid_counts = np.array(
            [d.get_real_grid_count() for d in self._dimensions], dtype=np.int64
        )

        # x1 + x2*x1.grid + x3*x1.grid*x2.grid + ...
        self._multipliers = np.cumprod(
            np.concatenate(([1], self._real_grid_counts[:-1]))
        ).astype(np.int64)
        self._tiling_stride = int(np.prod(self._real_grid_counts))

        if size is None:
            size = self.calculate_size(self._dimensions, self._num_tilings)
        if size <= 0:
            raise ValueError(f"Weight table size must be positive, got {size}")
        self._size = int(size)

        # Drawn once so that repeated queries of the same parameters agree.
        scales = np.array(
            [d.get_offset() * d.get_generalization_scale() for d in self._dimensions]
        )
        self.random_offsets = (
            self._rng.uniform(0.0, 1.0, size=(self._num_tilings, len(self._dimensions)))
            * scales
        )

        self.weights = np.zeros(self._size, dtype=float)

    @staticmethod
    def calculate_size(
        dimensions: Sequence[DimensionDescriptor], num_tilings: int
    ) -> int:
        """
        Number of features needed so that no two (tiling, grid point) pairs share an index.

        :param dimensions: Dimension descriptors
        :param num_tilings: Number of tilings
        :return: num_tilings * prod(real grid counts)
        """
        size = 1
        for dimension in dimensions:
            size *= dimension.get_real_grid_count()
        return size * num_tilings

    def get_dimension(self) -> int:
        return len(self._dimensions)

    def get_num_tilings(self) -> int:
        return self._num_tilings

    def get_size(self) -> int:
        return self._size

    @property
    def dimensions(self) -> tuple:
        return self._dimensions

    def _check_parameters(self, parameters) -> np.ndarray:
        params = np.asarray(parameters, dtype=float).reshape(-1)
        if params.shape[0] != self.get_dimension():
            raise ValueError(
                f"Expected {self.get_dimension()} parameters, got {params.shape[0]}"
            )
        return params

    def param_to_grid_value(
        self, param: float, tiling_index: int, dimension_index: int
    ) -> int:
        """
        Grid coordinate of a single parameter in the given tiling.

        :param param: Value along the dimension
        :param tiling_index: Index of the tiling
        :param dimension_index: Index of the dimension
        :return: floor((param + offset - lower) * grid_count / |b - a|)
        """
        dimension = self._dimensions[dimension_index]
        random_offset = self.random_offsets[tiling_index, dimension_index]
        return int(
            np.floor(
                (param + random_offset - dimension.get_lower_bound())
                * dimension.get_grid_count()
                / dimension.get_range_magnitude()
            )
        )

    def grid_coordinates(self, parameters) -> np.ndarray:
        """
        Grid coordinates of a parameter vector in every tiling.

        :param parameters: Parameter vector of length D
        :return: Integer array of shape (num_tilings, D)
        """
        params = self._check_parameters(parameters)
        scaled = (
            (params[np.newaxis, :] + self.random_offsets - self._lower_bounds)
            * self._grid_counts
            / self._range_magnitudes
        )
        return np.floor(scaled).astype(np.int64)

    def _combine(self, coordinates: np.ndarray) -> np.ndarray:
        """Mixed-radix encoding of every tiling's coordinates, shifted so tilings never overlap."""
        tilings = np.arange(self._num_tilings, dtype=np.int64)
        return coordinates @ self._multipliers + tilings * self._tiling_stride

    def _check_feature_vector(self, feature_vector) -> np.ndarray:
        fv = np.asarray(feature_vector, dtype=np.int64)
        if np.any(fv < 0) or np.any(fv >= self._size):
            raise FeatureIndexError(
                f"Feature indices {fv.tolist()} outside weight table of size {self._size}"
            )
        return fv

    @abstractmethod
    def get_feature_vector(self, parameters) -> np.ndarray:
        """
        Map a parameter vector to its active features.

        :param parameters: Parameter vector of length D
        :return: Array of `num_tilings` indices into the weight table
        """
        pass

    def get_value_from_feature_vector(self, feature_vector) -> float:
        """
        Sum of the weights of the given features.

        :param feature_vector: Indices into the weight table
        :return: Approximated value
        """
        fv = self._check_feature_vector(feature_vector)
        return float(np.sum(self.weights[fv]))

    def get_value_from_parameters(self, parameters) -> float:
        return self.get_value_from_feature_vector(self.get_feature_vector(parameters))

    def at(self, index: int) -> float:
        """
        Bounds-checked weight lookup.

        :param index: Feature index
        :return: Weight at `index`
        """
        self._check_index(index)
        return float(self.weights[index])

    def set_at(self, index: int, value: float) -> None:
        self._check_index(index)
        self.weights[index] = value

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._size:
            raise FeatureIndexError(
                f"Index {index} outside weight table of size {self._size}"
            )

    def __len__(self) -> int:
        return self._size


class TileCodeCorrect(TileCode):
    """
    Collision-free tile coding for small and medium input spaces.

    Feature indices are built by mixed-radix encoding of the grid coordinates,
    offset by `tiling * prod(real grid counts)`, so distinct (tiling, grid point)
    pairs never share an index. The table grows multiplicatively with the number
    of dimensions, which makes this impractical for high-dimensional inputs; use
    a hashed tile code there.
    """

    def __init__(
        self,
        dimensions: Sequence[DimensionDescriptor],
        num_tilings: int,
        seed: Optional[int] = None,
    ):
        for index, dimension in enumerate(dimensions):
            # an offset wider than one cell would need a cell past grid_count + 1
            if dimension.get_generalization_scale() > 1.0:
                raise ValueError(
                    f"Dimension {index} has generalization_scale "
                    f"{dimension.get_generalization_scale()}, collision-free tile codes "
                    "accept at most 1.0 (use a hashed tile code for wider offsets)"
                )
        super().__init__(dimensions, num_tilings, size=None, seed=seed)

    def get_feature_vector(self, parameters) -> np.ndarray:
        coordinates = self.grid_coordinates(parameters)

        outside = (coordinates < 0) | (coordinates >= self._real_grid_counts)
        if np.any(outside):
            tiling, dimension = np.argwhere(outside)[0]
            raise FeatureIndexError(
                f"Parameters {np.asarray(parameters).tolist()} fall outside the grid of "
                f"dimension {dimension} (tiling {tiling}, bounds "
                f"[{self._dimensions[dimension].get_lower_bound()}, "
                f"{self._dimensions[dimension].get_upper_bound()}])"
            )

        return self._check_feature_vector(self._combine(coordinates))
