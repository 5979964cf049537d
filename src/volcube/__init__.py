"""
VolCube: Swaption Volatility Cube Construction

A library for:
- Holding sparse market vol spreads over an ATM volatility reference
- Calibrating SABR smiles per (expiry, swap length) node
- Densifying the sparse cube onto the ATM grid at constant moneyness
- Querying volatility and variance at any (expiry, length, strike)

Scope: lognormal (Black) vols; no instrument pricing.
"""

__version__ = "0.1.0"

# Core modules
from .errors import (
    VolCubeError,
    InvalidInputError,
    InvalidGridError,
    DimensionMismatchError,
    IndexOutOfRangeError,
    StaleInterpolatorError,
    CalibrationAccuracyError,
)
from .conventions import Conventions
from .dates import DateUtils, to_years

# Grids and interpolation
from .grid import GridIndex
from .interpolation import (
    LinearInterpolator,
    CubicSplineInterpolator,
    BilinearInterpolator,
    create_interpolator,
)
from .tensor import LayeredTensor

# Curves and market inputs
from .curves import Curve, create_flat_curve
from .market import (
    AtmVolatilityStructure,
    AtmVolatilityMatrix,
    ForwardRateProvider,
    SwapRateProvider,
)

# Volatility (SABR, cubes)
from .vol import (
    SabrParameters,
    hagan_black_vol,
    CalibrationContext,
    CalibrationResult,
    SabrCalibrator,
    SmileSection,
    InterpolatedSmileSection,
    SabrSmileSection,
    MarketVolatilityCube,
    BracketPolicy,
    DensificationEngine,
    SwaptionVolatilityCube,
    SpreadSwaptionVolatilityCube,
    SabrSwaptionVolatilityCube,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "VolCubeError",
    "InvalidInputError",
    "InvalidGridError",
    "DimensionMismatchError",
    "IndexOutOfRangeError",
    "StaleInterpolatorError",
    "CalibrationAccuracyError",
    # Conventions
    "Conventions",
    # Dates
    "DateUtils",
    "to_years",
    # Grids and interpolation
    "GridIndex",
    "LinearInterpolator",
    "CubicSplineInterpolator",
    "BilinearInterpolator",
    "create_interpolator",
    "LayeredTensor",
    # Curves and market inputs
    "Curve",
    "create_flat_curve",
    "AtmVolatilityStructure",
    "AtmVolatilityMatrix",
    "ForwardRateProvider",
    "SwapRateProvider",
    # Volatility
    "SabrParameters",
    "hagan_black_vol",
    "CalibrationContext",
    "CalibrationResult",
    "SabrCalibrator",
    "SmileSection",
    "InterpolatedSmileSection",
    "SabrSmileSection",
    "MarketVolatilityCube",
    "BracketPolicy",
    "DensificationEngine",
    "SwaptionVolatilityCube",
    "SpreadSwaptionVolatilityCube",
    "SabrSwaptionVolatilityCube",
]
