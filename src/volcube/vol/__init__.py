"""
Volatility module - SABR smiles and swaption volatility cubes.

Provides:
- SABR stochastic volatility model (Hagan lognormal approximation)
- Per-node and grid calibration
- Smile sections (interpolated and SABR)
- Market cube input, densification and the cube facades
"""

from .sabr import (
    PARAMETER_LAYERS,
    SabrParameters,
    hagan_black_vol,
    sabr_volatility,
    alpha_from_atm_vol,
)
from .calibration import CalibrationContext, CalibrationResult, SabrCalibrator
from .smile import SmileSection, InterpolatedSmileSection, SabrSmileSection
from .market_cube import MarketVolatilityCube
from .densification import BracketPolicy, DensificationEngine, bracket_index, interpolate_spread
from .cube import (
    SwaptionVolatilityCube,
    SpreadSwaptionVolatilityCube,
    SabrSwaptionVolatilityCube,
)

__all__ = [
    "PARAMETER_LAYERS",
    "SabrParameters",
    "hagan_black_vol",
    "sabr_volatility",
    "alpha_from_atm_vol",
    "CalibrationContext",
    "CalibrationResult",
    "SabrCalibrator",
    "SmileSection",
    "InterpolatedSmileSection",
    "SabrSmileSection",
    "MarketVolatilityCube",
    "BracketPolicy",
    "DensificationEngine",
    "bracket_index",
    "interpolate_spread",
    "SwaptionVolatilityCube",
    "SpreadSwaptionVolatilityCube",
    "SabrSwaptionVolatilityCube",
]
