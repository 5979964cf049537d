"""
Sparse market input of a swaption volatility cube.

Holds the expiry and swap-length grid, the strike offsets from ATM and the
volatility spreads quoted against the ATM volatility. Rows of the spread
matrix run over (expiry, length) pairs with length varying fastest:
row j * n_lengths + k is expiry j, length k.
"""

from dataclasses import dataclass
from typing import List, Sequence, Union
import numpy as np
import pandas as pd

from ..dates import to_years
from ..errors import DimensionMismatchError, InvalidGridError, InvalidInputError

TenorLike = Union[str, float]


def _check_axis(values: np.ndarray, name: str, singular: str) -> None:
    if len(values) < 2:
        raise InvalidGridError(f"need at least 2 {name}, got {len(values)}")
    if not values[0] > 0:
        raise InvalidInputError(f"first {singular} is not positive")
    if np.any(np.diff(values) <= 0):
        raise InvalidInputError(f"non increasing {name}")


@dataclass(frozen=True, eq=False)
class MarketVolatilityCube:
    """
    Validated market volatility spreads.

    Attributes:
        expiries: Option expiries in years
        lengths: Swap lengths in years
        strike_offsets: Strike offsets from the ATM forward
        spreads: (n_expiries * n_lengths, n_offsets) vol spreads over ATM
    """
    expiries: np.ndarray
    lengths: np.ndarray
    strike_offsets: np.ndarray
    spreads: np.ndarray

    def __init__(
        self,
        expiries: Sequence[TenorLike],
        lengths: Sequence[TenorLike],
        strike_offsets: Sequence[float],
        spreads: np.ndarray
    ):
        expiries = np.array([to_years(e) for e in expiries], dtype=np.float64)
        lengths = np.array([to_years(t) for t in lengths], dtype=np.float64)
        offsets = np.array(strike_offsets, dtype=np.float64)
        spreads = np.array(spreads, dtype=np.float64)

        _check_axis(expiries, "expiries", "expiry")
        _check_axis(lengths, "lengths", "length")
        if len(offsets) < 2:
            raise InvalidInputError(f"too few strike offsets ({len(offsets)})")
        if np.any(np.diff(offsets) <= 0):
            raise InvalidInputError("non increasing strike offsets")

        if spreads.ndim != 2:
            raise DimensionMismatchError(f"spread matrix must be 2D, got {spreads.ndim}D")
        n_rows = len(expiries) * len(lengths)
        if spreads.shape[0] != n_rows:
            raise DimensionMismatchError(
                f"spread matrix has {spreads.shape[0]} rows, expected "
                f"n_expiries * n_lengths = {n_rows}"
            )
        if spreads.shape[1] != len(offsets):
            raise DimensionMismatchError(
                f"spread matrix has {spreads.shape[1]} columns, expected "
                f"n_offsets = {len(offsets)}"
            )
        if not np.all(np.isfinite(spreads)):
            raise InvalidInputError("spread matrix contains non-finite values")

        for name, arr in (("expiries", expiries), ("lengths", lengths),
                          ("strike_offsets", offsets), ("spreads", spreads)):
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def n_strikes(self) -> int:
        return len(self.strike_offsets)

    def spread(self, expiry_idx: int, length_idx: int, offset_idx: int) -> float:
        return float(self.spreads[expiry_idx * len(self.lengths) + length_idx, offset_idx])

    def spread_layers(self) -> List[np.ndarray]:
        """One (n_expiries, n_lengths) matrix per strike offset."""
        shaped = self.spreads.reshape(len(self.expiries), len(self.lengths), self.n_strikes)
        return [shaped[:, :, i].copy() for i in range(self.n_strikes)]

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "MarketVolatilityCube":
        """
        Build from long-format quotes.

        Expected columns: expiry, tenor, offset, spread. Expiry and tenor may
        be labels ("1Y") or year fractions; offsets may be numbers or
        "+25bp" style labels.
        """
        required = {"expiry", "tenor", "offset", "spread"}
        frame = df.rename(columns=lambda c: str(c).strip().lower())
        missing = required - set(frame.columns)
        if missing:
            raise InvalidInputError(f"Missing required columns: {sorted(missing)}")

        frame = frame.assign(
            expiry=frame["expiry"].map(to_years),
            tenor=frame["tenor"].map(to_years),
            offset=frame["offset"].map(_parse_offset),
        )
        if frame.duplicated(["expiry", "tenor", "offset"]).any():
            raise InvalidInputError("Duplicate (expiry, tenor, offset) quotes")

        table = frame.pivot_table(
            index=["expiry", "tenor"], columns="offset", values="spread", aggfunc="first"
        ).sort_index()
        expiries = sorted(frame["expiry"].unique())
        lengths = sorted(frame["tenor"].unique())
        full_index = pd.MultiIndex.from_product([expiries, lengths], names=["expiry", "tenor"])
        table = table.reindex(full_index)
        if table.isna().any().any():
            raise DimensionMismatchError("Quotes do not cover every (expiry, tenor, offset)")

        offsets = sorted(table.columns)
        return cls(expiries, lengths, offsets, table[offsets].to_numpy())

    def to_frame(self) -> pd.DataFrame:
        """Long-format view: one row per (expiry, tenor, offset)."""
        rows = []
        for j, expiry in enumerate(self.expiries):
            for k, length in enumerate(self.lengths):
                for i, offset in enumerate(self.strike_offsets):
                    rows.append({
                        "expiry": expiry,
                        "tenor": length,
                        "offset": offset,
                        "spread": self.spread(j, k, i),
                    })
        return pd.DataFrame(rows)


def _parse_offset(value) -> float:
    """Offset from a number, "ATM", or a "+25bp" / "-1%" label."""
    if isinstance(value, (int, float, np.floating, np.integer)):
        return float(value)
    text = str(value).strip().upper()
    if text == "ATM":
        return 0.0
    if text.endswith("BP"):
        return float(text[:-2]) / 10000.0
    if text.endswith("%"):
        return float(text[:-1]) / 100.0
    try:
        return float(text)
    except ValueError:
        raise InvalidInputError(f"Unknown strike offset format: {value}")


__all__ = ["MarketVolatilityCube", "TenorLike"]
