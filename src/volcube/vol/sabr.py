"""
SABR stochastic volatility model.

Implements:
- Hagan et al. lognormal (Black) implied volatility approximation
- ATM alpha inversion from an ATM Black vol
- SabrParameters: the five per-node quantities stored in the cube

References:
- Hagan, P.S. et al. (2002). "Managing Smile Risk." Wilmott Magazine.
"""

from dataclasses import dataclass
from typing import Dict, Sequence
import numpy as np
from scipy.optimize import brentq

from ..errors import InvalidInputError

# Layer order of a SABR parameter tensor
PARAMETER_LAYERS = ("alpha", "beta", "nu", "rho", "forward")

# Admissible box shared by calibration and interpolated parameters
ALPHA_BOUNDS = (1e-8, 10.0)
BETA_BOUNDS = (0.0, 1.0)
NU_BOUNDS = (0.0, 10.0)
RHO_BOUNDS = (-0.9999, 0.9999)


def _clip(value: float, bounds) -> float:
    return min(max(value, bounds[0]), bounds[1])


@dataclass(frozen=True)
class SabrParameters:
    """
    SABR parameters of one grid node.

    Attributes:
        alpha: Initial volatility level (> 0)
        beta: CEV exponent in [0, 1]
        nu: Volatility of volatility (>= 0)
        rho: Forward/vol correlation in (-1, 1)
        forward: ATM forward the parameters were calibrated against
    """
    alpha: float
    beta: float
    nu: float
    rho: float
    forward: float

    def __post_init__(self):
        if self.alpha <= 0:
            raise InvalidInputError(f"alpha must be positive, got {self.alpha}")
        if not 0 <= self.beta <= 1:
            raise InvalidInputError(f"beta must be in [0, 1], got {self.beta}")
        if self.nu < 0:
            raise InvalidInputError(f"nu must be non-negative, got {self.nu}")
        if not -1 < self.rho < 1:
            raise InvalidInputError(f"rho must be in (-1, 1), got {self.rho}")
        if self.forward <= 0:
            raise InvalidInputError(f"forward must be positive, got {self.forward}")

    def to_array(self) -> np.ndarray:
        """Values in PARAMETER_LAYERS order."""
        return np.array([self.alpha, self.beta, self.nu, self.rho, self.forward])

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "SabrParameters":
        """
        Build from values in PARAMETER_LAYERS order.

        Interpolated or extrapolated parameter vectors can leave the
        admissible region, so alpha, beta, nu and rho are each clipped into
        their box (ALPHA_BOUNDS, BETA_BOUNDS, NU_BOUNDS, RHO_BOUNDS). The
        forward is an anchor, not a model parameter, and is not clipped.
        """
        alpha, beta, nu, rho, forward = (float(v) for v in values)
        return cls(
            alpha=_clip(alpha, ALPHA_BOUNDS),
            beta=_clip(beta, BETA_BOUNDS),
            nu=_clip(nu, NU_BOUNDS),
            rho=_clip(rho, RHO_BOUNDS),
            forward=forward,
        )

    def to_dict(self) -> Dict[str, float]:
        return dict(zip(PARAMETER_LAYERS, self.to_array().tolist()))


def hagan_black_vol(
    F: float,
    K: float,
    T: float,
    alpha: float,
    beta: float,
    rho: float,
    nu: float,
) -> float:
    """
    Hagan et al. approximation for SABR Black implied volatility.

    Args:
        F: Forward rate
        K: Strike
        T: Time to expiry (years)
        alpha: SABR alpha (instantaneous vol)
        beta: CEV exponent
        rho: Correlation
        nu: Vol of vol

    Returns:
        Black implied volatility
    """
    if F <= 0 or K <= 0:
        raise InvalidInputError(f"Forward ({F}) and strike ({K}) must be positive")

    if abs(F - K) < 1e-10:
        return _hagan_atm_vol(F, T, alpha, beta, rho, nu)

    one_minus_beta = 1 - beta
    log_fk = np.log(F / K)
    fk_mid = (F * K) ** (one_minus_beta / 2)

    denom = fk_mid * (1 + one_minus_beta**2 / 24 * log_fk**2
                      + one_minus_beta**4 / 1920 * log_fk**4)

    z = nu / alpha * fk_mid * log_fk
    if abs(z) < 1e-10:
        z_over_x = 1.0
    else:
        sqrt_term = np.sqrt(1 - 2 * rho * z + z**2)
        z_over_x = z / np.log((sqrt_term + z - rho) / (1 - rho))

    term1 = one_minus_beta**2 * alpha**2 / (24 * fk_mid**2)
    term2 = rho * beta * nu * alpha / (4 * fk_mid)
    term3 = (2 - 3 * rho**2) * nu**2 / 24

    return float(alpha / denom * z_over_x * (1 + (term1 + term2 + term3) * T))


def _hagan_atm_vol(
    F: float,
    T: float,
    alpha: float,
    beta: float,
    rho: float,
    nu: float
) -> float:
    """ATM Black vol from Hagan formula."""
    F_beta = F ** (1 - beta)

    term1 = (1 - beta)**2 * alpha**2 / (24 * F**(2 - 2*beta))
    term2 = rho * beta * nu * alpha / (4 * F_beta)
    term3 = (2 - 3 * rho**2) * nu**2 / 24

    return float(alpha / F_beta * (1 + (term1 + term2 + term3) * T))


def sabr_volatility(strike: float, T: float, params: SabrParameters) -> float:
    """Black vol of params at strike."""
    return hagan_black_vol(
        params.forward, strike, T, params.alpha, params.beta, params.rho, params.nu
    )


def alpha_from_atm_vol(
    F: float,
    T: float,
    atm_vol: float,
    beta: float,
    rho: float,
    nu: float
) -> float:
    """
    Invert the ATM formula: alpha such that ATM Black vol equals atm_vol.

    Falls back to the leading-order alpha = atm_vol * F^(1-beta) when no
    root can be bracketed.
    """
    def objective(alpha):
        return _hagan_atm_vol(F, T, alpha, beta, rho, nu) - atm_vol

    alpha_init = atm_vol * F ** (1 - beta)
    alpha_low = alpha_init * 0.01
    alpha_high = alpha_init * 10.0

    if objective(alpha_low) * objective(alpha_high) > 0:
        return alpha_init
    return float(brentq(objective, alpha_low, alpha_high, xtol=1e-14))


__all__ = [
    "PARAMETER_LAYERS",
    "ALPHA_BOUNDS",
    "BETA_BOUNDS",
    "NU_BOUNDS",
    "RHO_BOUNDS",
    "SabrParameters",
    "hagan_black_vol",
    "sabr_volatility",
    "alpha_from_atm_vol",
]
