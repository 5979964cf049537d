"""
Ordered grid index for the expiry and swap-length axes of the cube.

A GridIndex holds strictly increasing year fractions. It only ever grows
by insertion, and every insertion keeps the ordering intact.
"""

from typing import Iterable, Tuple
import numpy as np

from .errors import InvalidGridError, IndexOutOfRangeError


class GridIndex:
    """
    Strictly increasing sequence of grid values.

    Attributes:
        name: Axis label used in error messages ("expiries", "lengths")
    """

    def __init__(self, values: Iterable[float], name: str = "grid"):
        arr = np.array(list(values), dtype=np.float64)
        self.name = name

        if arr.ndim != 1 or len(arr) < 2:
            raise InvalidGridError(
                f"{name}: need at least 2 grid values, got {arr.size}"
            )
        if not np.all(np.isfinite(arr)):
            raise InvalidGridError(f"{name}: grid values must be finite")
        if np.any(np.diff(arr) <= 0):
            raise InvalidGridError(f"{name}: grid values must be strictly increasing")

        self._values = arr

    @property
    def values(self) -> np.ndarray:
        """Copy of the grid values."""
        return self._values.copy()

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, i: int) -> float:
        return float(self._values[i])

    def __iter__(self):
        return iter(self._values.tolist())

    def __repr__(self) -> str:
        return f"GridIndex({self.name}, {self._values.tolist()})"

    def insertion_point(self, value: float) -> int:
        """Lower-bound position: first index whose value is >= value."""
        return int(np.searchsorted(self._values, value, side="left"))

    def contains(self, value: float) -> bool:
        """Binary search membership test (exact match)."""
        i = self.insertion_point(value)
        return i < len(self._values) and self._values[i] == value

    def index_of(self, value: float) -> int:
        """
        Index of a value that is on the grid.

        Raises:
            IndexOutOfRangeError: If the value is not a grid line
        """
        i = self.insertion_point(value)
        if i < len(self._values) and self._values[i] == value:
            return i
        raise IndexOutOfRangeError(f"{self.name}: {value} is not on the grid")

    def insert(self, value: float) -> Tuple[int, bool]:
        """
        Insert a value, keeping the grid strictly increasing.

        Returns:
            (index, inserted) where inserted is False if the value was
            already present
        """
        if not np.isfinite(value):
            raise InvalidGridError(f"{self.name}: cannot insert {value}")
        i = self.insertion_point(value)
        if i < len(self._values) and self._values[i] == value:
            return i, False
        self._values = np.insert(self._values, i, value)
        return i, True

    def bracket(self, value: float) -> int:
        """
        Lower index i of the interval [x[i], x[i+1]] used to interpolate value.

        Values below the first line use the first interval and values at or
        beyond the last line use the last interval.
        """
        i = int(np.searchsorted(self._values, value, side="right")) - 1
        return max(0, min(i, len(self._values) - 2))

    def copy(self) -> "GridIndex":
        return GridIndex(self._values, self.name)


__all__ = ["GridIndex"]
