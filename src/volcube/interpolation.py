"""
Interpolation primitives for curves, smiles and cube layers.

Provides:
- LinearInterpolator: Piecewise linear, flat or linear extrapolation
- CubicSplineInterpolator: Natural cubic spline, flat extrapolation
- BilinearInterpolator: 2D surface on a rectangular grid, optional
  linear extrapolation beyond the grid

1D interpolators are fitted on sorted x values. The bilinear surface takes
its x axis along matrix rows and its y axis along matrix columns.
"""

from abc import ABC, abstractmethod
from typing import Optional
import numpy as np


class Interpolator(ABC):
    """Abstract base class for 1D interpolation."""

    @abstractmethod
    def fit(self, x: np.ndarray, y: np.ndarray) -> None:
        """
        Fit the interpolator to data points.

        Args:
            x: Abscissae (sorted ascending after fitting)
            y: Ordinates
        """

    @abstractmethod
    def interpolate(self, x: float) -> float:
        """Interpolate at a single point."""

    def __call__(self, x: float) -> float:
        return self.interpolate(x)


def _sorted_xy(x: np.ndarray, y: np.ndarray):
    if len(x) != len(y):
        raise ValueError("x and y must have same length")
    if len(x) < 2:
        raise ValueError("Need at least 2 points for interpolation")
    idx = np.argsort(x)
    return np.array(x, dtype=np.float64)[idx], np.array(y, dtype=np.float64)[idx]


class LinearInterpolator(Interpolator):
    """
    Linear interpolation.

    Beyond the first/last knot the value is held flat by default; with
    extrapolation="linear" the end segments are extended instead.
    """

    def __init__(self, extrapolation: str = "flat"):
        if extrapolation not in ("flat", "linear"):
            raise ValueError(f"Unknown extrapolation: {extrapolation}")
        self.extrapolation = extrapolation
        self.x: Optional[np.ndarray] = None
        self.y: Optional[np.ndarray] = None

    def fit(self, x: np.ndarray, y: np.ndarray) -> None:
        self.x, self.y = _sorted_xy(x, y)

    def interpolate(self, t: float) -> float:
        if self.x is None:
            raise RuntimeError("Interpolator not fitted")

        if self.extrapolation == "flat":
            if t <= self.x[0]:
                return float(self.y[0])
            if t >= self.x[-1]:
                return float(self.y[-1])

        idx = np.searchsorted(self.x, t, side='right') - 1
        idx = max(0, min(idx, len(self.x) - 2))

        x0, x1 = self.x[idx], self.x[idx + 1]
        y0, y1 = self.y[idx], self.y[idx + 1]

        w = (t - x0) / (x1 - x0) if x1 != x0 else 0.0
        return float(y0 + w * (y1 - y0))


class CubicSplineInterpolator(Interpolator):
    """
    Natural cubic spline (second derivative = 0 at both ends).

    Two knots degenerate to a straight line. Extrapolates flat.
    """

    def __init__(self):
        self.x: Optional[np.ndarray] = None
        self.y: Optional[np.ndarray] = None
        self.coefficients: Optional[np.ndarray] = None  # (n-1, 4) for [a, b, c, d]

    def fit(self, x: np.ndarray, y: np.ndarray) -> None:
        """
        Solve the tridiagonal system for second derivatives, then build the
        per-interval polynomial coefficients.
        """
        self.x, self.y = _sorted_xy(x, y)
        n = len(self.x)
        h = np.diff(self.x)

        if n == 2:
            slope = (self.y[1] - self.y[0]) / h[0] if h[0] > 0 else 0.0
            self.coefficients = np.array([[self.y[0], slope, 0.0, 0.0]])
            return

        A = np.zeros((n, n))
        b = np.zeros(n)
        A[0, 0] = 1.0
        A[n-1, n-1] = 1.0

        for i in range(1, n-1):
            A[i, i-1] = h[i-1]
            A[i, i] = 2 * (h[i-1] + h[i])
            A[i, i+1] = h[i]
            b[i] = 6 * ((self.y[i+1] - self.y[i]) / h[i] -
                        (self.y[i] - self.y[i-1]) / h[i-1])

        M = np.linalg.solve(A, b)

        # S_i(x) = a_i + b_i*(x-x_i) + c_i*(x-x_i)^2 + d_i*(x-x_i)^3
        self.coefficients = np.zeros((n-1, 4))
        for i in range(n-1):
            self.coefficients[i, 0] = self.y[i]
            self.coefficients[i, 1] = (self.y[i+1] - self.y[i]) / h[i] - h[i] * (M[i+1] + 2*M[i]) / 6
            self.coefficients[i, 2] = M[i] / 2
            self.coefficients[i, 3] = (M[i+1] - M[i]) / (6 * h[i])

    def interpolate(self, t: float) -> float:
        if self.x is None or self.coefficients is None:
            raise RuntimeError("Interpolator not fitted")

        if t <= self.x[0]:
            return float(self.y[0])
        if t >= self.x[-1]:
            return float(self.y[-1])

        idx = np.searchsorted(self.x, t, side='right') - 1
        idx = max(0, min(idx, len(self.coefficients) - 1))

        dx = t - self.x[idx]
        a, b, c, d = self.coefficients[idx]
        return float(a + b*dx + c*dx**2 + d*dx**3)


class BilinearInterpolator:
    """
    Bilinear interpolation on a rectangular grid.

    z[i, j] is the value at (x[i], y[j]). With extrapolate=True, points
    outside the grid are evaluated on the nearest boundary cell's plane;
    otherwise they raise ValueError.
    """

    def __init__(self, extrapolate: bool = True):
        self.extrapolate = extrapolate
        self.x: Optional[np.ndarray] = None
        self.y: Optional[np.ndarray] = None
        self.z: Optional[np.ndarray] = None

    def fit(self, x: np.ndarray, y: np.ndarray, z: np.ndarray) -> None:
        x = np.array(x, dtype=np.float64)
        y = np.array(y, dtype=np.float64)
        z = np.array(z, dtype=np.float64)

        if len(x) < 2 or len(y) < 2:
            raise ValueError("Need at least 2 points on each axis")
        if np.any(np.diff(x) <= 0) or np.any(np.diff(y) <= 0):
            raise ValueError("Grid axes must be strictly increasing")
        if z.shape != (len(x), len(y)):
            raise ValueError(
                f"Surface shape {z.shape} does not match grid ({len(x)}, {len(y)})"
            )

        self.x, self.y, self.z = x, y, z

    def interpolate(self, x: float, y: float) -> float:
        if self.z is None:
            raise RuntimeError("Interpolator not fitted")

        if not self.extrapolate:
            if not (self.x[0] <= x <= self.x[-1] and self.y[0] <= y <= self.y[-1]):
                raise ValueError(
                    f"({x}, {y}) outside grid [{self.x[0]}, {self.x[-1]}] x "
                    f"[{self.y[0]}, {self.y[-1]}] and extrapolation is disabled"
                )

        i = np.searchsorted(self.x, x, side='right') - 1
        i = max(0, min(i, len(self.x) - 2))
        j = np.searchsorted(self.y, y, side='right') - 1
        j = max(0, min(j, len(self.y) - 2))

        u = (x - self.x[i]) / (self.x[i+1] - self.x[i])
        v = (y - self.y[j]) / (self.y[j+1] - self.y[j])

        # Exact nodes come back untouched
        if u == 0.0 and v == 0.0:
            return float(self.z[i, j])

        return float(
            (1 - u) * (1 - v) * self.z[i, j]
            + u * (1 - v) * self.z[i+1, j]
            + (1 - u) * v * self.z[i, j+1]
            + u * v * self.z[i+1, j+1]
        )

    def __call__(self, x: float, y: float) -> float:
        return self.interpolate(x, y)


def create_interpolator(method: str) -> Interpolator:
    """
    Factory function to create a 1D interpolator by name.

    Args:
        method: One of "linear", "linear_extrapolated", "cubic_spline"
    """
    method = method.lower().replace("-", "_").replace(" ", "_")

    if method in ("linear", "lin"):
        return LinearInterpolator()
    elif method in ("linear_extrapolated", "linear_extrap"):
        return LinearInterpolator(extrapolation="linear")
    elif method in ("cubic_spline", "cubic", "spline"):
        return CubicSplineInterpolator()
    else:
        raise ValueError(f"Unknown interpolation method: {method}")


__all__ = [
    "Interpolator",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "BilinearInterpolator",
    "create_interpolator",
]
