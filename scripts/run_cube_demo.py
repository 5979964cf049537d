#!/usr/bin/env python3
"""
Swaption Volatility Cube Demo Script

Demonstrates the complete cube workflow:
1. Build curves, ATM forwards and an ATM vol matrix
2. Load sparse market spreads from long-format quotes
3. Query the spread cube
4. Build the SABR cube (sparse fit, densification, dense fit)
5. Print calibration diagnostics
"""

import sys
from pathlib import Path
import logging

import numpy as np
import pandas as pd

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from volcube import (
    AtmVolatilityMatrix,
    Conventions,
    MarketVolatilityCube,
    SabrCalibrator,
    SabrSwaptionVolatilityCube,
    SpreadSwaptionVolatilityCube,
    SwapRateProvider,
    create_flat_curve,
    hagan_black_vol,
    to_years,
)
from volcube.vol import alpha_from_atm_vol

# Setup logging
logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

ATM_EXPIRIES = ["1M", "6M", "1Y", "2Y", "5Y", "10Y"]
ATM_LENGTHS = ["1Y", "2Y", "5Y", "10Y", "20Y", "30Y"]
ATM_VOLS = np.array([
    [0.32, 0.30, 0.27, 0.24, 0.22, 0.21],
    [0.30, 0.28, 0.26, 0.23, 0.21, 0.20],
    [0.28, 0.27, 0.25, 0.22, 0.20, 0.19],
    [0.26, 0.25, 0.23, 0.21, 0.19, 0.18],
    [0.23, 0.22, 0.21, 0.19, 0.18, 0.17],
    [0.20, 0.19, 0.18, 0.17, 0.16, 0.16],
])
OFFSETS = {"-100bp": -0.01, "-50bp": -0.005, "ATM": 0.0, "+50bp": 0.005, "+100bp": 0.01}


def print_section(title: str):
    """Print section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def market_quotes(atm, forwards, beta=0.7, rho=-0.25, nu=0.45) -> pd.DataFrame:
    """Spread quotes read off a reference SABR smile at each sparse node."""
    rows = []
    for expiry in ["1Y", "5Y", "10Y"]:
        for tenor in ["2Y", "10Y", "30Y"]:
            T, L = to_years(expiry), to_years(tenor)
            F = forwards.fair_forward_rate(T, L)
            alpha = alpha_from_atm_vol(F, T, atm.volatility(T, L, F), beta, rho, nu)
            atm_model = hagan_black_vol(F, F, T, alpha, beta, rho, nu)
            for label, offset in OFFSETS.items():
                spread = hagan_black_vol(F, F + offset, T, alpha, beta, rho, nu) - atm_model
                rows.append({"expiry": expiry, "tenor": tenor, "offset": label,
                             "spread": round(spread, 6)})
    return pd.DataFrame(rows)


def build_market():
    """Curves, ATM vols and sparse spreads."""
    print_section("1. Market Inputs")

    discount = create_flat_curve(0.030)
    projection = create_flat_curve(0.032)
    forwards = SwapRateProvider(discount, projection, Conventions.eur_swap())

    atm = AtmVolatilityMatrix(
        [to_years(t) for t in ATM_EXPIRIES],
        [to_years(t) for t in ATM_LENGTHS],
        ATM_VOLS,
    )
    quotes = market_quotes(atm, forwards)
    market = MarketVolatilityCube.from_frame(quotes)

    print(f"  ATM grid      : {len(ATM_EXPIRIES)} x {len(ATM_LENGTHS)}")
    print(f"  Sparse grid   : {len(market.expiries)} x {len(market.lengths)}")
    print(f"  Strike offsets: {list(OFFSETS)}")
    print(f"  5Y x 10Y fwd  : {forwards.fair_forward_rate(5.0, 10.0)*100:.3f}%")
    print("\nQuotes (5Y expiry):")
    print(quotes[quotes["expiry"] == "5Y"].to_string(index=False))
    return atm, forwards, market


def print_smile(cube, expiry, length):
    """Vol and variance across strikes around the ATM forward."""
    fwd = cube.atm_forward(expiry, length)
    print(f"\n{expiry} x {length} (F = {fwd*100:.3f}%):")
    print("-" * 36)
    print(f"{'Strike':>10} {'Vol':>10} {'Variance':>12}")
    print("-" * 36)
    for offset in [-0.01, -0.005, 0.0, 0.005, 0.01, 0.02]:
        K = fwd + offset
        print(f"{K*100:>9.3f}% {cube.volatility(expiry, length, K)*100:>9.3f}% "
              f"{cube.variance(expiry, length, K):>12.6f}")


def demo_spread_cube(atm, forwards, market):
    """Linear spread interpolation, no model."""
    print_section("2. Spread Cube")
    cube = SpreadSwaptionVolatilityCube(atm, forwards, market)
    print_smile(cube, "5Y", "10Y")
    print_smile(cube, "2Y", "5Y")


def demo_sabr_cube(atm, forwards, market):
    """SABR fit on the market grid, densified onto the ATM grid."""
    print_section("3. SABR Cube")
    cube = SabrSwaptionVolatilityCube(atm, forwards, market, calibrator=SabrCalibrator(beta=0.7))
    print_smile(cube, "5Y", "10Y")
    print_smile(cube, "2Y", "5Y")

    print_section("4. Calibration Report")
    report = cube.calibration_report()
    columns = ["expiry", "length", "alpha", "nu", "rho", "rmse", "sparse_node"]
    print(report[columns].to_string(index=False, float_format=lambda v: f"{v:.5f}"))
    print(f"\n  Dense nodes: {len(report)}, worst RMSE: {report['rmse'].max():.2e}")


def main():
    atm, forwards, market = build_market()
    demo_spread_cube(atm, forwards, market)
    demo_sabr_cube(atm, forwards, market)


if __name__ == "__main__":
    main()
