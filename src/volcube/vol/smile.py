"""
Smile sections: the volatility smile of one (expiry, length) node.

Two flavours share the SmileSection contract:
- InterpolatedSmileSection: direct interpolation of (strike, vol) points
- SabrSmileSection: closed-form Hagan SABR curve from five parameters

variance(K) is always volatility(K)**2 * expiry.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
import numpy as np

from ..errors import InvalidInputError
from ..interpolation import create_interpolator
from .calibration import CalibrationContext, CalibrationResult, SabrCalibrator
from .sabr import SabrParameters, sabr_volatility


class SmileSection(ABC):
    """Volatility smile at a fixed expiry."""

    def __init__(self, expiry: float):
        if expiry <= 0:
            raise InvalidInputError(f"expiry must be positive, got {expiry}")
        self._expiry = float(expiry)

    @property
    def expiry(self) -> float:
        return self._expiry

    @property
    def forward(self) -> Optional[float]:
        """ATM forward of the section, when known."""
        return None

    @abstractmethod
    def volatility(self, strike: float) -> float:
        """Black volatility at strike."""

    def variance(self, strike: float) -> float:
        """Total variance volatility(strike)**2 * expiry."""
        vol = self.volatility(strike)
        return vol * vol * self._expiry

    def volatilities(self, strikes: Sequence[float]) -> np.ndarray:
        return np.array([self.volatility(k) for k in strikes])

    def atm_volatility(self) -> float:
        """Volatility at the section's own forward."""
        if self.forward is None:
            raise InvalidInputError(f"{type(self).__name__} has no forward")
        return self.volatility(self.forward)


class InterpolatedSmileSection(SmileSection):
    """
    Smile read directly off (strike, vol) points.

    Linear interpolation extends the end segments beyond the quoted strikes;
    "cubic_spline" uses a natural spline held flat outside them.
    """

    def __init__(
        self,
        expiry: float,
        strikes: Sequence[float],
        vols: Sequence[float],
        forward: Optional[float] = None,
        method: str = "linear"
    ):
        super().__init__(expiry)
        strikes = np.asarray(strikes, dtype=np.float64)
        vols = np.asarray(vols, dtype=np.float64)
        if len(strikes) < 2 or len(strikes) != len(vols):
            raise InvalidInputError("Need at least 2 (strike, vol) pairs of equal length")
        if np.any(np.diff(strikes) <= 0):
            raise InvalidInputError("strikes must be strictly increasing")

        self.strikes = strikes
        self.vols = vols
        self._forward = forward
        if method.lower() in ("linear", "lin"):
            method = "linear_extrapolated"
        self._interpolator = create_interpolator(method)
        self._interpolator.fit(strikes, vols)

    @classmethod
    def from_spread_points(
        cls,
        expiry: float,
        strikes: Sequence[float],
        vols: Sequence[float],
        forward: Optional[float] = None,
        method: str = "linear"
    ) -> "InterpolatedSmileSection":
        return cls(expiry, strikes, vols, forward=forward, method=method)

    @property
    def forward(self) -> Optional[float]:
        return self._forward

    def volatility(self, strike: float) -> float:
        return self._interpolator(strike)


class SabrSmileSection(SmileSection):
    """Closed-form SABR smile; valid for any positive strike."""

    def __init__(
        self,
        expiry: float,
        params: SabrParameters,
        calibration: Optional[CalibrationResult] = None
    ):
        super().__init__(expiry)
        self.params = params
        self.calibration = calibration

    @classmethod
    def from_sabr_parameters(cls, expiry: float, params) -> "SabrSmileSection":
        """
        Args:
            expiry: Time to expiry in years
            params: SabrParameters, or a sequence in PARAMETER_LAYERS order
        """
        if not isinstance(params, SabrParameters):
            params = SabrParameters.from_array(params)
        return cls(expiry, params)

    @classmethod
    def calibrated(
        cls,
        expiry: float,
        forward: float,
        strikes: Sequence[float],
        vols: Sequence[float],
        calibrator: Optional[SabrCalibrator] = None,
        context: Optional[CalibrationContext] = None
    ) -> "SabrSmileSection":
        """Fit SABR to (strike, vol) points and build the section."""
        calibrator = calibrator or SabrCalibrator()
        result = calibrator.calibrate(strikes, vols, expiry, forward, context)
        return cls(expiry, result.parameters, calibration=result)

    @property
    def forward(self) -> float:
        return self.params.forward

    def volatility(self, strike: float) -> float:
        return sabr_volatility(strike, self._expiry, self.params)


__all__ = [
    "SmileSection",
    "InterpolatedSmileSection",
    "SabrSmileSection",
]
