"""
Layered tensor: a stack of 2D (expiry x length) layers.

Each layer stores one quantity per grid node (a SABR parameter, or the
volatility at one strike offset). Per-layer bilinear surfaces are derived
data: they are rebuilt by refresh() and never treated as the source of
truth. Querying a tensor that was mutated since the last refresh() raises
StaleInterpolatorError.
"""

import copy
import logging
from typing import List, Sequence
import numpy as np

from .errors import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidGridError,
    StaleInterpolatorError,
)
from .grid import GridIndex
from .interpolation import BilinearInterpolator

logger = logging.getLogger(__name__)


class LayeredTensor:
    """
    Stack of 2D layers addressed by (layer, expiry index, length index).

    Attributes:
        expiries: GridIndex of option expiries (year fractions)
        lengths: GridIndex of swap lengths (year fractions)
        layer_count: Number of layers, fixed at construction
        extrapolate: Whether layer surfaces extrapolate beyond the grid
    """

    def __init__(
        self,
        expiries: Sequence[float],
        lengths: Sequence[float],
        layer_count: int,
        extrapolate: bool = True
    ):
        if layer_count < 1:
            raise InvalidGridError(f"layer_count must be positive, got {layer_count}")

        self.expiries = GridIndex(expiries, "expiries")
        self.lengths = GridIndex(lengths, "lengths")
        self.layer_count = int(layer_count)
        self.extrapolate = extrapolate

        shape = (len(self.expiries), len(self.lengths))
        self._points: List[np.ndarray] = [np.zeros(shape) for _ in range(self.layer_count)]
        self._surfaces: List[BilinearInterpolator] = []
        self._dirty = True
        self.refresh()

    @property
    def shape(self):
        """(layer_count, n_expiries, n_lengths)."""
        return (self.layer_count, len(self.expiries), len(self.lengths))

    @property
    def points(self) -> List[np.ndarray]:
        """Copies of every layer."""
        return [p.copy() for p in self._points]

    def layer(self, k: int) -> np.ndarray:
        """Copy of layer k."""
        self._check_layer(k)
        return self._points[k].copy()

    def _check_layer(self, k: int) -> None:
        if not 0 <= k < self.layer_count:
            raise IndexOutOfRangeError(
                f"layer index {k} out of range [0, {self.layer_count})"
            )

    def _check_matrix(self, matrix: np.ndarray, what: str) -> np.ndarray:
        arr = np.array(matrix, dtype=np.float64)
        expected = (len(self.expiries), len(self.lengths))
        if arr.shape != expected:
            raise DimensionMismatchError(
                f"{what}: shape {arr.shape} does not match grid {expected}"
            )
        return arr

    def set_element(self, layer: int, expiry_idx: int, length_idx: int, value: float) -> None:
        """
        Write a single value. Does not rebuild the surfaces.

        Raises:
            IndexOutOfRangeError: If any index is out of bounds
        """
        self._check_layer(layer)
        if not 0 <= expiry_idx < len(self.expiries):
            raise IndexOutOfRangeError(
                f"expiry index {expiry_idx} out of range [0, {len(self.expiries)})"
            )
        if not 0 <= length_idx < len(self.lengths):
            raise IndexOutOfRangeError(
                f"length index {length_idx} out of range [0, {len(self.lengths)})"
            )
        self._points[layer][expiry_idx, length_idx] = value
        self._dirty = True

    def set_layer(self, layer: int, matrix: np.ndarray) -> None:
        """
        Replace one layer.

        Raises:
            DimensionMismatchError: If the matrix shape differs from the grid
        """
        self._check_layer(layer)
        self._points[layer] = self._check_matrix(matrix, f"set_layer({layer})")
        self._dirty = True

    def set_points(self, matrices: Sequence[np.ndarray]) -> None:
        """Replace every layer at once."""
        if len(matrices) != self.layer_count:
            raise DimensionMismatchError(
                f"set_points: got {len(matrices)} layers, expected {self.layer_count}"
            )
        self._points = [
            self._check_matrix(m, f"set_points[{k}]") for k, m in enumerate(matrices)
        ]
        self._dirty = True

    def set_point(self, expiry: float, length: float, values: Sequence[float]) -> None:
        """
        Write values[k] into layer k at (expiry, length), growing the grid
        when either coordinate is not already a grid line.

        Existing values keep their logical coordinates; new rows/columns are
        zero-filled before the write.
        """
        values = np.asarray(values, dtype=np.float64)
        if values.shape != (self.layer_count,):
            raise DimensionMismatchError(
                f"set_point: got {values.size} values, expected {self.layer_count}"
            )
        if not (np.isfinite(expiry) and np.isfinite(length)):
            raise InvalidGridError(f"set_point: non-finite coordinate ({expiry}, {length})")

        i, new_row = self.expiries.insert(expiry)
        j, new_col = self.lengths.insert(length)

        if new_row or new_col:
            for k in range(self.layer_count):
                layer = self._points[k]
                if new_row:
                    layer = np.insert(layer, i, 0.0, axis=0)
                if new_col:
                    layer = np.insert(layer, j, 0.0, axis=1)
                self._points[k] = layer
            logger.debug(
                "Grid grown at expiry=%.6g (row %s) length=%.6g (col %s) -> %s",
                expiry, new_row, length, new_col, self.shape
            )

        for k in range(self.layer_count):
            self._points[k][i, j] = values[k]
        self._dirty = True

    def value_at(self, layer: int, expiry: float, length: float) -> float:
        """Stored value at an exact grid coordinate (no interpolation)."""
        self._check_layer(layer)
        return float(
            self._points[layer][self.expiries.index_of(expiry), self.lengths.index_of(length)]
        )

    def refresh(self) -> None:
        """Rebuild every layer surface from the stored points."""
        x = self.expiries.values
        y = self.lengths.values
        surfaces = []
        for k in range(self.layer_count):
            surface = BilinearInterpolator(extrapolate=self.extrapolate)
            surface.fit(x, y, self._points[k])
            surfaces.append(surface)
        self._surfaces = surfaces
        self._dirty = False

    @property
    def is_stale(self) -> bool:
        return self._dirty

    def query(self, expiry: float, length: float) -> np.ndarray:
        """
        Evaluate every layer surface at (expiry, length).

        Returns:
            Array of layer_count values
        """
        if self._dirty:
            raise StaleInterpolatorError(
                "LayeredTensor mutated since last refresh(); call refresh() first"
            )
        return np.array([s(expiry, length) for s in self._surfaces])

    __call__ = query

    def copy(self) -> "LayeredTensor":
        """Deep copy independent of this tensor."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return (f"LayeredTensor(layers={self.layer_count}, "
                f"expiries={len(self.expiries)}, lengths={len(self.lengths)})")


__all__ = ["LayeredTensor"]
