"""
Densification of a sparse SABR-calibrated cube onto the ATM grid.

Every cell of the union of the sparse grid and the ATM reference's native
grid that is not a sparse node gets a synthesized smile:

    vol(e, l, offset) = atm_vol(e, l) + spread(e, l, offset)

where the spread is interpolated bilinearly from the four bracketing sparse
SABR smiles, each read at the strike with the same moneyness
(atm_forward / strike) as the target strike. Reading at equal moneyness
keeps smiles anchored at different forward levels comparable.
"""

from enum import Enum
import logging
from typing import List, Sequence
import numpy as np

from ..errors import InvalidInputError
from ..grid import GridIndex
from ..interpolation import BilinearInterpolator
from ..market import AtmVolatilityStructure, ForwardRateProvider
from ..tensor import LayeredTensor
from .sabr import SabrParameters
from .smile import SabrSmileSection, SmileSection

logger = logging.getLogger(__name__)


class BracketPolicy(Enum):
    """
    How a target coordinate picks its two bracketing sparse grid lines.

    NEAREST_INTERVAL: the interval [x[i], x[i+1]] containing the target,
        clamped to the first/last interval outside the grid.
    LOWER_BOUND: i is the first line >= target, moved back one when it
        is the last line (or beyond the grid); interior targets are then
        extrapolated from the interval above them.
    """
    NEAREST_INTERVAL = "nearest_interval"
    LOWER_BOUND = "lower_bound"


def bracket_index(grid: GridIndex, value: float, policy: BracketPolicy) -> int:
    """Lower index i of the bracketing pair (i, i+1)."""
    if policy is BracketPolicy.NEAREST_INTERVAL:
        return grid.bracket(value)
    i = grid.insertion_point(value)
    return min(i, len(grid) - 2)


def interpolate_spread(
    expiry: float,
    length: float,
    moneyness: float,
    expiry_nodes: Sequence[float],
    length_nodes: Sequence[float],
    smiles: Sequence[Sequence[SmileSection]],
    forwards: np.ndarray,
) -> float:
    """
    Spread vol at (expiry, length) for a given moneyness.

    Args:
        expiry, length: Target coordinate
        moneyness: atm_forward / strike at the target
        expiry_nodes: The two bracketing expiries
        length_nodes: The two bracketing lengths
        smiles: 2x2 bracketing smiles, smiles[a][b] at (expiry_nodes[a], length_nodes[b])
        forwards: 2x2 ATM forwards of the bracketing cells

    Returns:
        Bilinear (extrapolating) interpolation of
        smile(forward / moneyness) - smile(forward) over the four cells
    """
    spreads = np.zeros((2, 2))
    for a in range(2):
        for b in range(2):
            smile = smiles[a][b]
            forward = forwards[a][b]
            spreads[a, b] = smile.volatility(forward / moneyness) - smile.volatility(forward)

    surface = BilinearInterpolator(extrapolate=True)
    surface.fit(expiry_nodes, length_nodes, spreads)
    return surface(expiry, length)


class DensificationEngine:
    """
    Fills the ATM grid from sparse SABR smiles.

    Attributes:
        atm_reference: ATM vol source exposing its native grid
        forward_provider: ATM forward source
        strike_offsets: Offsets from ATM of the cube's strike layers
        bracket_policy: Bracketing rule for targets between/outside sparse lines
    """

    def __init__(
        self,
        atm_reference: AtmVolatilityStructure,
        forward_provider: ForwardRateProvider,
        strike_offsets: Sequence[float],
        bracket_policy: BracketPolicy = BracketPolicy.NEAREST_INTERVAL
    ):
        self.atm_reference = atm_reference
        self.forward_provider = forward_provider
        self.strike_offsets = np.asarray(strike_offsets, dtype=np.float64)
        self.bracket_policy = bracket_policy

    def sparse_smiles(self, sparse_parameters: LayeredTensor) -> List[List[SabrSmileSection]]:
        """One SABR smile per sparse node, smiles[j][k]."""
        points = sparse_parameters.points
        expiries = sparse_parameters.expiries.values
        n_lengths = len(sparse_parameters.lengths)
        return [
            [
                SabrSmileSection(
                    expiry,
                    SabrParameters.from_array([layer[j, k] for layer in points])
                )
                for k in range(n_lengths)
            ]
            for j, expiry in enumerate(expiries)
        ]

    def spread_volatilities(
        self,
        expiry: float,
        length: float,
        sparse_parameters: LayeredTensor,
        smiles: Sequence[Sequence[SmileSection]]
    ) -> np.ndarray:
        """Interpolated spread vol at (expiry, length) for every strike offset."""
        expiries = sparse_parameters.expiries
        lengths = sparse_parameters.lengths
        j = bracket_index(expiries, expiry, self.bracket_policy)
        k = bracket_index(lengths, length, self.bracket_policy)

        expiry_nodes = [expiries[j], expiries[j + 1]]
        length_nodes = [lengths[k], lengths[k + 1]]
        local_smiles = [[smiles[j + a][k + b] for b in range(2)] for a in range(2)]
        forwards = np.array([
            [self.forward_provider.fair_forward_rate(e, l) for l in length_nodes]
            for e in expiry_nodes
        ])

        atm_forward = self.forward_provider.fair_forward_rate(expiry, length)
        result = np.zeros(len(self.strike_offsets))
        for i, offset in enumerate(self.strike_offsets):
            strike = atm_forward + offset
            if strike <= 0:
                raise InvalidInputError(
                    f"Non-positive strike {strike:.6g} at expiry={expiry:.4g} "
                    f"length={length:.4g} offset={offset:.6g}"
                )
            result[i] = interpolate_spread(
                expiry, length, atm_forward / strike,
                expiry_nodes, length_nodes, local_smiles, forwards
            )
        return result

    def densify(
        self,
        market_vols: LayeredTensor,
        sparse_parameters: LayeredTensor
    ) -> LayeredTensor:
        """
        Dense vol tensor on the union of the sparse and ATM grids.

        Sparse nodes keep their market vols; every other cell of the union
        grid is synthesized. The input tensors are left untouched.
        """
        if market_vols.layer_count != len(self.strike_offsets):
            raise InvalidInputError(
                f"{market_vols.layer_count} vol layers for {len(self.strike_offsets)} strike offsets"
            )

        sparse_expiries = market_vols.expiries.copy()
        sparse_lengths = market_vols.lengths.copy()
        target_expiries = np.union1d(sparse_expiries.values, self.atm_reference.native_expiries())
        target_lengths = np.union1d(sparse_lengths.values, self.atm_reference.native_tenors())

        smiles = self.sparse_smiles(sparse_parameters)
        dense = market_vols.copy()
        n_filled = 0

        for expiry in target_expiries:
            for length in target_lengths:
                if sparse_expiries.contains(expiry) and sparse_lengths.contains(length):
                    continue
                atm_forward = self.forward_provider.fair_forward_rate(expiry, length)
                atm_vol = self.atm_reference.volatility(expiry, length, atm_forward)
                spreads = self.spread_volatilities(expiry, length, sparse_parameters, smiles)
                dense.set_point(expiry, length, atm_vol + spreads)
                n_filled += 1
                logger.debug(
                    "Densified expiry=%.4g length=%.4g atm_vol=%.6g spreads=%s",
                    expiry, length, atm_vol, np.round(spreads, 8).tolist()
                )

        dense.refresh()
        logger.info(
            "Densified %d cells: grid %dx%d -> %dx%d",
            n_filled, len(sparse_expiries), len(sparse_lengths),
            len(dense.expiries), len(dense.lengths)
        )
        return dense


__all__ = [
    "BracketPolicy",
    "DensificationEngine",
    "bracket_index",
    "interpolate_spread",
]
