class DimensionDescriptor:
    """
    Describes one axis of the tile-coded input space.

    The axis covers the range [lower_bound, upper_bound] and is split into
    `grid_count` equally sized cells. A higher grid count means more precision,
    a lower one means more generalization.
    """

    def __init__(
        self,
        lower_bound: float,
        upper_bound: float,
        grid_count: int,
        generalization_scale: float = 1.0,
    ):
        """
        :param lower_bound: Lower end `a` of the range [a, b]
        :param upper_bound: Upper end `b` of the range [a, b]
        :param grid_count: Number of cells the range is split into (must be > 0)
        :param generalization_scale: Scales the random tiling offsets, must be >= 0. Values in [0, 1) shrink the offsets, values above 1 are only accepted by hashed tile codes
        """
        _check_bounds(lower_bound, upper_bound)
        _check_grid_count(grid_count)
        _check_generalization_scale(generalization_scale)
        self._lower_bound = lower_bound
        self._upper_bound = upper_bound
        self._grid_count = int(grid_count)
        self._generalization_scale = float(generalization_scale)

    def get_offset(self) -> float:
        """
        Width of one grid cell.

        :return: |b - a| / grid_count
        """
        return self.get_range_magnitude() / self._grid_count

    def get_real_grid_count(self) -> int:
        """Number of grid points actually reachable once tilings are offset."""
        return self._grid_count + 1

    def get_range_magnitude(self) -> float:
        """:return: |b - a|"""
        return abs(self._upper_bound - self._lower_bound)

    def get_grid_count(self) -> int:
        return self._grid_count

    def set_grid_count(self, grid_count: int) -> None:
        _check_grid_count(grid_count)
        self._grid_count = int(grid_count)

    def get_lower_bound(self) -> float:
        return self._lower_bound

    def set_lower_bound(self, lower_bound: float) -> None:
        _check_bounds(lower_bound, self._upper_bound)
        self._lower_bound = lower_bound

    def get_upper_bound(self) -> float:
        return self._upper_bound

    def set_upper_bound(self, upper_bound: float) -> None:
        _check_bounds(self._lower_bound, upper_bound)
        self._upper_bound = upper_bound

    def get_generalization_scale(self) -> float:
        return self._generalization_scale

    def set_generalization_scale(self, generalization_scale: float) -> None:
        _check_generalization_scale(generalization_scale)
        self._generalization_scale = float(generalization_scale)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(lower_bound={self._lower_bound}, "
            f"upper_bound={self._upper_bound}, grid_count={self._grid_count}, "
            f"generalization_scale={self._generalization_scale})"
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, DimensionDescriptor):
            return NotImplemented
        return (
            self._lower_bound == other._lower_bound
            and self._upper_bound == other._upper_bound
            and self._grid_count == other._grid_count
            and self._generalization_scale == other._generalization_scale
        )


def _check_grid_count(grid_count: int) -> None:
    if int(grid_count) <= 0:
        raise ValueError(f"grid_count must be positive, got {grid_count}")


def _check_bounds(lower_bound: float, upper_bound: float) -> None:
    if lower_bound == upper_bound:
        raise ValueError(
            f"Degenerate dimension range: lower and upper bound are both {lower_bound}"
        )


def _check_generalization_scale(generalization_scale: float) -> None:
    if not generalization_scale >= 0.0:
        raise ValueError(
            f"generalization_scale must be >= 0, got {generalization_scale}"
        )
