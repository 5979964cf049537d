"""
Tests for market cube input validation.
"""

import numpy as np
import pandas as pd
import pytest

from volcube.errors import DimensionMismatchError, InvalidGridError, InvalidInputError
from volcube.vol.market_cube import MarketVolatilityCube


@pytest.fixture
def spreads():
    """2 expiries x 3 lengths rows, 3 offsets."""
    return np.arange(18, dtype=float).reshape(6, 3) / 1000.0


class TestConstruction:
    """Tests for MarketVolatilityCube construction."""

    def test_tenor_labels(self, spreads):
        cube = MarketVolatilityCube(["1Y", "5Y"], ["2Y", "10Y", "30Y"], [-0.01, 0.0, 0.01], spreads)
        np.testing.assert_array_equal(cube.expiries, [1.0, 5.0])
        np.testing.assert_array_equal(cube.lengths, [2.0, 10.0, 30.0])
        assert cube.n_strikes == 3

    def test_mixed_labels_and_numbers(self, spreads):
        cube = MarketVolatilityCube(["6M", 2], [1.0, "5Y", 10], [-0.01, 0.0, 0.01], spreads)
        np.testing.assert_array_equal(cube.expiries, [0.5, 2.0])

    def test_row_layout(self, spreads):
        """Row j * n_lengths + k holds expiry j, length k."""
        cube = MarketVolatilityCube([1.0, 5.0], [2.0, 10.0, 30.0], [-0.01, 0.0, 0.01], spreads)
        assert cube.spread(1, 2, 0) == spreads[5, 0]
        assert cube.spread(0, 1, 2) == spreads[1, 2]
        layers = cube.spread_layers()
        assert len(layers) == 3
        assert layers[2].shape == (2, 3)
        assert layers[2][1, 0] == spreads[3, 2]

    def test_immutable(self, spreads):
        cube = MarketVolatilityCube([1.0, 5.0], [2.0, 10.0, 30.0], [-0.01, 0.0, 0.01], spreads)
        with pytest.raises(ValueError):
            cube.spreads[0, 0] = 1.0
        with pytest.raises(AttributeError):
            cube.expiries = np.array([1.0, 2.0])

    def test_input_copied(self, spreads):
        cube = MarketVolatilityCube([1.0, 5.0], [2.0, 10.0, 30.0], [-0.01, 0.0, 0.01], spreads)
        spreads[0, 0] = 99.0
        assert cube.spread(0, 0, 0) == 0.0


class TestValidation:
    """Each failed check raises with its own message."""

    def test_wrong_row_count(self, spreads):
        with pytest.raises(DimensionMismatchError, match="rows"):
            MarketVolatilityCube([1.0, 5.0], [2.0, 10.0], [-0.01, 0.0, 0.01], spreads)

    def test_wrong_column_count(self, spreads):
        with pytest.raises(DimensionMismatchError, match="columns"):
            MarketVolatilityCube([1.0, 5.0], [2.0, 10.0, 30.0], [-0.01, 0.01], spreads)

    def test_dimension_error_is_input_error(self, spreads):
        with pytest.raises(InvalidInputError):
            MarketVolatilityCube([1.0, 5.0], [2.0, 10.0], [-0.01, 0.0, 0.01], spreads)

    def test_too_few_expiries(self):
        with pytest.raises(InvalidGridError):
            MarketVolatilityCube([1.0], [2.0, 10.0], [-0.01, 0.01], np.zeros((2, 2)))

    def test_first_expiry_not_positive(self):
        with pytest.raises(InvalidInputError, match="first expiry is not positive"):
            MarketVolatilityCube([0.0, 1.0], [2.0, 10.0], [-0.01, 0.01], np.zeros((4, 2)))

    def test_non_increasing_lengths(self):
        with pytest.raises(InvalidInputError, match="non increasing lengths"):
            MarketVolatilityCube([1.0, 2.0], [10.0, 2.0], [-0.01, 0.01], np.zeros((4, 2)))

    def test_too_few_offsets(self):
        with pytest.raises(InvalidInputError, match="too few strike offsets"):
            MarketVolatilityCube([1.0, 2.0], [2.0, 10.0], [0.0], np.zeros((4, 1)))

    def test_non_increasing_offsets(self):
        with pytest.raises(InvalidInputError, match="non increasing strike offsets"):
            MarketVolatilityCube([1.0, 2.0], [2.0, 10.0], [0.01, 0.0], np.zeros((4, 2)))

    def test_non_finite_spread(self):
        spreads = np.zeros((4, 2))
        spreads[2, 1] = np.nan
        with pytest.raises(InvalidInputError):
            MarketVolatilityCube([1.0, 2.0], [2.0, 10.0], [-0.01, 0.01], spreads)


class TestFrames:
    """Tests for long-format import and export."""

    @pytest.fixture
    def quotes(self):
        rows = []
        for expiry in ["1Y", "5Y"]:
            for tenor in ["2Y", "10Y"]:
                for offset, spread in [("-100bp", 0.02), ("ATM", 0.0), ("+100bp", 0.01)]:
                    rows.append({"Expiry": expiry, "Tenor": tenor, "Offset": offset,
                                 "Spread": spread})
        return pd.DataFrame(rows)

    def test_from_frame(self, quotes):
        cube = MarketVolatilityCube.from_frame(quotes)
        np.testing.assert_array_equal(cube.expiries, [1.0, 5.0])
        np.testing.assert_array_equal(cube.lengths, [2.0, 10.0])
        np.testing.assert_allclose(cube.strike_offsets, [-0.01, 0.0, 0.01])
        assert cube.spread(1, 1, 0) == 0.02
        assert cube.spread(0, 0, 2) == 0.01

    def test_from_frame_missing_quote(self, quotes):
        with pytest.raises(DimensionMismatchError):
            MarketVolatilityCube.from_frame(quotes.iloc[1:])

    def test_from_frame_missing_column(self, quotes):
        with pytest.raises(InvalidInputError):
            MarketVolatilityCube.from_frame(quotes.drop(columns=["Spread"]))

    def test_from_frame_duplicate(self, quotes):
        with pytest.raises(InvalidInputError):
            MarketVolatilityCube.from_frame(pd.concat([quotes, quotes.iloc[:1]]))

    def test_round_trip(self, quotes):
        cube = MarketVolatilityCube.from_frame(quotes)
        again = MarketVolatilityCube.from_frame(cube.to_frame())
        np.testing.assert_array_equal(again.spreads, cube.spreads)
        assert len(cube.to_frame()) == 12
