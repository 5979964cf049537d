"""
Exception hierarchy for the volatility cube.

All errors derive from VolCubeError. Input validation errors are also
ValueErrors so callers used to plain ValueError checks keep working.
"""

from typing import Optional


class VolCubeError(Exception):
    """Base class for all volcube errors."""


class InvalidInputError(VolCubeError, ValueError):
    """Market inputs failed a construction-time check."""


class InvalidGridError(InvalidInputError):
    """A grid index has too few entries or is not strictly increasing."""


class DimensionMismatchError(InvalidInputError):
    """A matrix or vector does not match the shape of the grid."""


class IndexOutOfRangeError(VolCubeError, IndexError):
    """Direct element access outside the stored grid."""


class StaleInterpolatorError(VolCubeError, RuntimeError):
    """A tensor was queried after a mutation without calling refresh()."""


class CalibrationAccuracyError(VolCubeError, RuntimeError):
    """
    SABR fit residual exceeds the accuracy tolerance.

    Attributes:
        rmse: Root-mean-square vol error achieved by the optimizer
        expiry: Expiry of the failing node, when known
        length: Swap length of the failing node, when known
    """

    def __init__(
        self,
        message: str,
        rmse: float,
        expiry: Optional[float] = None,
        length: Optional[float] = None
    ):
        super().__init__(message)
        self.rmse = rmse
        self.expiry = expiry
        self.length = length


__all__ = [
    "VolCubeError",
    "InvalidInputError",
    "InvalidGridError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "StaleInterpolatorError",
    "CalibrationAccuracyError",
]
