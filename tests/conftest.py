"""
Shared market fixtures for the cube tests.
"""

import numpy as np
import pytest

from volcube.conventions import Conventions
from volcube.curves import create_flat_curve
from volcube.market import AtmVolatilityMatrix, ForwardRateProvider, SwapRateProvider
from volcube.vol.market_cube import MarketVolatilityCube
from volcube.vol.sabr import alpha_from_atm_vol, hagan_black_vol


ATM_EXPIRIES = [0.5, 1.0, 2.0, 5.0, 10.0]
ATM_LENGTHS = [1.0, 2.0, 5.0, 10.0, 20.0]
SPARSE_EXPIRIES = [1.0, 5.0, 10.0]
SPARSE_LENGTHS = [2.0, 10.0]
OFFSETS = [-0.01, 0.0, 0.01]


class ConstantForward(ForwardRateProvider):
    """Same forward for every (expiry, length)."""

    def __init__(self, rate: float):
        self.rate = rate

    def fair_forward_rate(self, expiry: float, length: float) -> float:
        return self.rate


@pytest.fixture
def forward_provider():
    """Par swap rates off a flat 3% curve, annual fixed leg, T+2."""
    return SwapRateProvider(create_flat_curve(0.03), conventions=Conventions())


@pytest.fixture
def atm_matrix():
    """ATM vols between 18% and 24% on a 5x5 grid."""
    vols = np.array([
        [0.20 + 0.01 * i - 0.005 * j for j in range(len(ATM_LENGTHS))]
        for i in range(len(ATM_EXPIRIES))
    ])
    return AtmVolatilityMatrix(ATM_EXPIRIES, ATM_LENGTHS, vols)


@pytest.fixture
def zero_spread_market():
    """Sparse market with every spread equal to zero."""
    n_rows = len(SPARSE_EXPIRIES) * len(SPARSE_LENGTHS)
    return MarketVolatilityCube(SPARSE_EXPIRIES, SPARSE_LENGTHS, OFFSETS,
                                np.zeros((n_rows, len(OFFSETS))))


@pytest.fixture
def sabr_market(forward_provider, atm_matrix):
    """
    Sparse market whose smiles are exact beta=1 SABR smiles.

    Each node's alpha is solved so that the SABR ATM vol equals the ATM
    matrix, so the offset-0 spread is zero.
    """
    nu, rho = 0.4, -0.3
    rows = []
    for e in SPARSE_EXPIRIES:
        for l in SPARSE_LENGTHS:
            fwd = forward_provider.fair_forward_rate(e, l)
            atm_vol = atm_matrix.volatility(e, l, fwd)
            alpha = alpha_from_atm_vol(fwd, e, atm_vol, 1.0, rho, nu)
            atm_model = hagan_black_vol(fwd, fwd, e, alpha, 1.0, rho, nu)
            rows.append([
                hagan_black_vol(fwd, fwd + off, e, alpha, 1.0, rho, nu) - atm_model
                for off in OFFSETS
            ])
    return MarketVolatilityCube(SPARSE_EXPIRIES, SPARSE_LENGTHS, OFFSETS, np.array(rows))
