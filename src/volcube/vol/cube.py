"""
Swaption volatility cubes.

Two cubes share one query contract (smile, volatility, variance):
- SpreadSwaptionVolatilityCube: ATM vol plus bilinearly interpolated market
  spreads, read off a linearly interpolated smile. No parametric model.
- SabrSwaptionVolatilityCube: SABR calibrated on the sparse market grid,
  densified onto the ATM reference's grid, then recalibrated; queries
  evaluate the dense SABR parameters.

Expiries and lengths may be passed as year fractions or tenor labels.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Executor
import logging
from typing import List, Optional
import numpy as np
import pandas as pd

from ..dates import to_years
from ..market import AtmVolatilityStructure, ForwardRateProvider
from ..tensor import LayeredTensor
from .calibration import CalibrationContext, CalibrationResult, SabrCalibrator
from .densification import BracketPolicy, DensificationEngine
from .market_cube import MarketVolatilityCube, TenorLike
from .sabr import PARAMETER_LAYERS
from .smile import InterpolatedSmileSection, SabrSmileSection, SmileSection

logger = logging.getLogger(__name__)


class SwaptionVolatilityCube(ABC):
    """Query contract shared by the cube variants."""

    @abstractmethod
    def smile(self, expiry: TenorLike, length: TenorLike) -> SmileSection:
        """Smile section at an arbitrary (expiry, length)."""

    @abstractmethod
    def atm_forward(self, expiry: TenorLike, length: TenorLike) -> float:
        """ATM forward used to anchor strikes at (expiry, length)."""

    def volatility(self, expiry: TenorLike, length: TenorLike, strike: float) -> float:
        return self.smile(expiry, length).volatility(strike)

    def variance(self, expiry: TenorLike, length: TenorLike, strike: float) -> float:
        return self.smile(expiry, length).variance(strike)


def _market_vols(
    market: MarketVolatilityCube,
    atm_reference: AtmVolatilityStructure,
    forward_provider: ForwardRateProvider
) -> LayeredTensor:
    """Absolute vols atm_vol + spread, one layer per strike offset."""
    tensor = LayeredTensor(market.expiries, market.lengths, market.n_strikes)
    spreads = market.spread_layers()
    atm_vols = np.array([
        [
            atm_reference.volatility(e, l, forward_provider.fair_forward_rate(e, l))
            for l in market.lengths
        ]
        for e in market.expiries
    ])
    tensor.set_points([atm_vols + s for s in spreads])
    tensor.refresh()
    return tensor


class SpreadSwaptionVolatilityCube(SwaptionVolatilityCube):
    """
    Cube from linearly interpolated vol spreads.

    smile(e, l) interpolates the points
    (F + offset_i, atm_vol(e, l) + spread_i(e, l)), where spread_i is the
    bilinear surface of the market spreads for offset i.
    """

    def __init__(
        self,
        atm_reference: AtmVolatilityStructure,
        forward_provider: ForwardRateProvider,
        market: MarketVolatilityCube,
        smile_method: str = "linear"
    ):
        self.atm_reference = atm_reference
        self.forward_provider = forward_provider
        self.market = market
        self.smile_method = smile_method

        spreads = LayeredTensor(market.expiries, market.lengths, market.n_strikes)
        spreads.set_points(market.spread_layers())
        spreads.refresh()
        self.spreads = spreads

    def atm_forward(self, expiry: TenorLike, length: TenorLike) -> float:
        return self.forward_provider.fair_forward_rate(to_years(expiry), to_years(length))

    def smile(self, expiry: TenorLike, length: TenorLike) -> InterpolatedSmileSection:
        expiry, length = to_years(expiry), to_years(length)
        forward = self.forward_provider.fair_forward_rate(expiry, length)
        atm_vol = self.atm_reference.volatility(expiry, length, forward)
        strikes = forward + self.market.strike_offsets
        vols = atm_vol + self.spreads.query(expiry, length)
        return InterpolatedSmileSection.from_spread_points(
            expiry, strikes, vols, forward=forward, method=self.smile_method
        )


class SabrSwaptionVolatilityCube(SwaptionVolatilityCube):
    """
    SABR cube densified onto the ATM reference's grid.

    Construction runs: market vols -> sparse calibration -> sparse smiles ->
    densification -> dense calibration. A calibration failure raises
    CalibrationAccuracyError and no cube is built.

    Attributes:
        market_vols: Absolute vols on the sparse grid (one layer per offset)
        sparse_parameters: SABR parameters on the sparse grid
        dense_vols: Absolute vols on the union grid
        dense_parameters: SABR parameters on the union grid, used by queries
    """

    def __init__(
        self,
        atm_reference: AtmVolatilityStructure,
        forward_provider: ForwardRateProvider,
        market: MarketVolatilityCube,
        calibrator: Optional[SabrCalibrator] = None,
        context: Optional[CalibrationContext] = None,
        warm_start: bool = False,
        executor: Optional[Executor] = None,
        bracket_policy: BracketPolicy = BracketPolicy.NEAREST_INTERVAL
    ):
        self.atm_reference = atm_reference
        self.forward_provider = forward_provider
        self.market = market
        self.calibrator = calibrator or SabrCalibrator()
        self.context = context or CalibrationContext()

        forward_fn = forward_provider.fair_forward_rate
        market_vols = _market_vols(market, atm_reference, forward_provider)

        logger.info("Sparse SABR calibration on %dx%d grid",
                    len(market.expiries), len(market.lengths))
        sparse_parameters, sparse_results = self.calibrator.calibrate_grid(
            market_vols, market.strike_offsets, forward_fn,
            context=self.context, warm_start=warm_start, executor=executor
        )

        self.engine = DensificationEngine(
            atm_reference, forward_provider, market.strike_offsets, bracket_policy
        )
        dense_vols = self.engine.densify(market_vols, sparse_parameters)

        logger.info("Dense SABR calibration on %dx%d grid",
                    len(dense_vols.expiries), len(dense_vols.lengths))
        dense_parameters, dense_results = self.calibrator.calibrate_grid(
            dense_vols, market.strike_offsets, forward_fn,
            context=self.context, warm_start=warm_start, executor=executor
        )

        self.market_vols = market_vols
        self.sparse_parameters = sparse_parameters
        self.sparse_results: List[List[CalibrationResult]] = sparse_results
        self.dense_vols = dense_vols
        self.dense_parameters = dense_parameters
        self.dense_results: List[List[CalibrationResult]] = dense_results

    def atm_forward(self, expiry: TenorLike, length: TenorLike) -> float:
        return self.forward_provider.fair_forward_rate(to_years(expiry), to_years(length))

    def smile(self, expiry: TenorLike, length: TenorLike) -> SabrSmileSection:
        """
        SABR smile from the bilinearly interpolated dense parameters.

        Off the dense grid the parameters are extrapolated. Whatever leaves
        the admissible region is clipped into it (see
        SabrParameters.from_array): alpha, beta, nu and rho alike, so a
        query never raises on an out-of-range parameter.
        """
        expiry, length = to_years(expiry), to_years(length)
        return SabrSmileSection.from_sabr_parameters(
            expiry, self.dense_parameters.query(expiry, length)
        )

    def sparse_smile(self, expiry: TenorLike, length: TenorLike) -> SabrSmileSection:
        """Smile from the sparse (pre-densification) parameters."""
        expiry, length = to_years(expiry), to_years(length)
        return SabrSmileSection.from_sabr_parameters(
            expiry, self.sparse_parameters.query(expiry, length)
        )

    def calibration_report(self) -> pd.DataFrame:
        """
        One row per dense node: parameters and fit diagnostics.

        The sparse_node column flags nodes quoted in the market input.
        """
        sparse_expiries = self.market_vols.expiries
        sparse_lengths = self.market_vols.lengths
        rows = []
        for j, expiry in enumerate(self.dense_parameters.expiries):
            for k, length in enumerate(self.dense_parameters.lengths):
                result = self.dense_results[j][k]
                rows.append({
                    "expiry": expiry,
                    "length": length,
                    **result.to_dict(),
                    "sparse_node": sparse_expiries.contains(expiry) and sparse_lengths.contains(length),
                })
        columns = ["expiry", "length", *PARAMETER_LAYERS, "rmse", "max_abs_error",
                   "num_quotes", "iterations", "method", "sparse_node"]
        return pd.DataFrame(rows)[columns]


__all__ = [
    "SwaptionVolatilityCube",
    "SpreadSwaptionVolatilityCube",
    "SabrSwaptionVolatilityCube",
]
