"""
Market collaborators of the volatility cube.

Provides:
- AtmVolatilityStructure: ATM volatility source with a native grid
- AtmVolatilityMatrix: ATM vols quoted on an (expiry x length) matrix
- ForwardRateProvider: ATM forward (fair swap rate) source
- SwapRateProvider: Forward par swap rates off discount/projection curves
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
import numpy as np

from .conventions import Conventions
from .curves import Curve
from .errors import DimensionMismatchError, InvalidInputError
from .grid import GridIndex
from .interpolation import BilinearInterpolator


class AtmVolatilityStructure(ABC):
    """
    ATM volatility reference.

    Implementations expose their native grid so the cube can densify onto
    it, and must extrapolate beyond that grid.
    """

    @abstractmethod
    def volatility(self, expiry: float, length: float, strike: float) -> float:
        """ATM volatility for the swaption (expiry, length) struck at strike."""

    @abstractmethod
    def native_expiries(self) -> np.ndarray:
        """Ordered expiries (years) the structure is quoted on."""

    @abstractmethod
    def native_tenors(self) -> np.ndarray:
        """Ordered swap lengths (years) the structure is quoted on."""


class AtmVolatilityMatrix(AtmVolatilityStructure):
    """
    ATM swaption vol matrix with bilinear interpolation in (expiry, length).

    The quote is strike independent: the strike argument is the ATM forward
    the caller priced and does not move the vol.
    """

    def __init__(
        self,
        expiries: Sequence[float],
        lengths: Sequence[float],
        vols: np.ndarray,
        extrapolate: bool = True
    ):
        self._expiries = GridIndex(expiries, "atm expiries")
        self._lengths = GridIndex(lengths, "atm lengths")
        vols = np.array(vols, dtype=np.float64)
        expected = (len(self._expiries), len(self._lengths))
        if vols.shape != expected:
            raise DimensionMismatchError(
                f"ATM vol matrix shape {vols.shape} does not match grid {expected}"
            )
        if np.any(vols <= 0):
            raise InvalidInputError("ATM volatilities must be positive")

        self._vols = vols
        self._surface = BilinearInterpolator(extrapolate=extrapolate)
        self._surface.fit(self._expiries.values, self._lengths.values, vols)

    def volatility(self, expiry: float, length: float, strike: float) -> float:
        return self._surface(expiry, length)

    def native_expiries(self) -> np.ndarray:
        return self._expiries.values

    def native_tenors(self) -> np.ndarray:
        return self._lengths.values

    @property
    def vols(self) -> np.ndarray:
        return self._vols.copy()


class ForwardRateProvider(ABC):
    """Source of ATM forwards for (expiry, length) swaptions."""

    @abstractmethod
    def fair_forward_rate(self, expiry: float, length: float) -> float:
        """Fair rate of the swap starting at expiry and running for length years."""


class SwapRateProvider(ForwardRateProvider):
    """
    Forward par swap rate from curves.

    S = (P_proj(start) - P_proj(end)) / annuity, where the annuity sums the
    discount factors on the fixed leg payment times. The swap starts
    settlement_days after expiry. Swaps no longer than short_tenor project
    off short_projection_curve when one is given.

    Attributes:
        discount_curve: Curve for the annuity
        projection_curve: Curve for the floating leg (defaults to discount)
        conventions: Fixed leg conventions
    """

    def __init__(
        self,
        discount_curve: Curve,
        projection_curve: Optional[Curve] = None,
        conventions: Optional[Conventions] = None,
        short_tenor: Optional[float] = None,
        short_projection_curve: Optional[Curve] = None
    ):
        if (short_tenor is None) != (short_projection_curve is None):
            raise InvalidInputError(
                "short_tenor and short_projection_curve must be given together"
            )
        self.discount_curve = discount_curve
        self.projection_curve = projection_curve or discount_curve
        self.conventions = conventions or Conventions()
        self.short_tenor = short_tenor
        self.short_projection_curve = short_projection_curve

    def _projection_for(self, length: float) -> Curve:
        if self.short_tenor is not None and length <= self.short_tenor:
            return self.short_projection_curve
        return self.projection_curve

    def annuity(self, expiry: float, length: float) -> float:
        """Fixed leg PV01 per unit notional."""
        freq = self.conventions.payment_frequency
        start = expiry + self.conventions.settlement_lag
        n_periods = max(int(round(length * freq)), 1)
        delta = length / n_periods

        annuity = 0.0
        for i in range(n_periods):
            annuity += delta * self.discount_curve.discount_factor(start + (i + 1) * delta)
        return annuity

    def fair_forward_rate(self, expiry: float, length: float) -> float:
        if length <= 0:
            raise InvalidInputError(f"Swap length must be positive, got {length}")

        start = expiry + self.conventions.settlement_lag
        projection = self._projection_for(length)
        df_start = projection.discount_factor(start)
        df_end = projection.discount_factor(start + length)

        annuity = self.annuity(expiry, length)
        if annuity <= 0:
            raise InvalidInputError(f"Non-positive annuity for ({expiry}, {length})")
        return (df_start - df_end) / annuity


__all__ = [
    "AtmVolatilityStructure",
    "AtmVolatilityMatrix",
    "ForwardRateProvider",
    "SwapRateProvider",
]
