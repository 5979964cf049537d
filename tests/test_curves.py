"""
Unit tests for interpolation primitives and curves.
"""

import numpy as np
import pytest

from volcube.curves import Curve, create_flat_curve
from volcube.interpolation import (
    BilinearInterpolator,
    CubicSplineInterpolator,
    LinearInterpolator,
    create_interpolator,
)


class TestInterpolators:
    """Tests for interpolation methods."""

    @pytest.fixture
    def sample_data(self):
        """Sample interpolation data."""
        x = np.array([0.0, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0])
        y = np.array([0.050, 0.051, 0.052, 0.053, 0.050, 0.048, 0.045])
        return x, y

    def test_linear_interpolator(self, sample_data):
        """Test linear interpolation."""
        x, y = sample_data
        interp = LinearInterpolator()
        interp.fit(x, y)

        # Test exact points
        assert abs(interp(0.0) - 0.050) < 1e-10
        assert abs(interp(1.0) - 0.053) < 1e-10

        # Test interpolated point
        assert interp(0.125) == pytest.approx(0.0505)

    def test_linear_flat_extrapolation(self, sample_data):
        x, y = sample_data
        interp = LinearInterpolator()
        interp.fit(x, y)
        assert interp(-1.0) == 0.050
        assert interp(20.0) == 0.045

    def test_linear_extrapolation(self, sample_data):
        """End segments are extended with extrapolation='linear'."""
        x, y = sample_data
        interp = LinearInterpolator(extrapolation="linear")
        interp.fit(x, y)
        assert interp(15.0) == pytest.approx(0.045 - 5 * 0.003 / 5)
        assert interp(-0.25) == pytest.approx(0.049)

    def test_unknown_extrapolation(self):
        with pytest.raises(ValueError):
            LinearInterpolator(extrapolation="cubic")

    def test_cubic_spline_interpolator(self, sample_data):
        """Test cubic spline interpolation."""
        x, y = sample_data
        interp = CubicSplineInterpolator()
        interp.fit(x, y)

        # Test exact points
        assert abs(interp(0.0) - 0.050) < 1e-10
        assert abs(interp(1.0) - 0.053) < 1e-10
        assert abs(interp(5.0) - 0.048) < 1e-10

        # Smooth, so it differs from the linear value between knots
        linear = LinearInterpolator()
        linear.fit(x, y)
        assert interp(3.0) != linear(3.0)

    def test_cubic_spline_two_points(self):
        """Two knots give a straight line."""
        interp = CubicSplineInterpolator()
        interp.fit(np.array([0.0, 1.0]), np.array([1.0, 3.0]))
        assert interp(0.5) == pytest.approx(2.0)

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            LinearInterpolator().fit(np.array([1.0]), np.array([1.0]))

    def test_factory(self):
        assert isinstance(create_interpolator("linear"), LinearInterpolator)
        assert create_interpolator("linear_extrapolated").extrapolation == "linear"
        assert isinstance(create_interpolator("cubic-spline"), CubicSplineInterpolator)
        with pytest.raises(ValueError):
            create_interpolator("akima")


class TestBilinearInterpolator:
    """Tests for the 2D surface."""

    @pytest.fixture
    def surface(self):
        # z = 1 + 2x + 3y is reproduced exactly by bilinear interpolation
        x = np.array([1.0, 2.0, 4.0])
        y = np.array([0.0, 10.0])
        z = np.array([[1 + 2 * xi + 3 * yi for yi in y] for xi in x])
        s = BilinearInterpolator()
        s.fit(x, y, z)
        return s

    def test_exact_nodes(self, surface):
        assert surface(2.0, 10.0) == 35.0
        assert surface(4.0, 0.0) == 9.0

    def test_plane_inside(self, surface):
        assert surface(3.0, 5.0) == pytest.approx(1 + 6 + 15)

    def test_plane_outside(self, surface):
        """Extrapolation continues the boundary cell's plane."""
        assert surface(6.0, 20.0) == pytest.approx(1 + 12 + 60)
        assert surface(0.0, -5.0) == pytest.approx(1 - 15)

    def test_no_extrapolation(self):
        s = BilinearInterpolator(extrapolate=False)
        s.fit([1.0, 2.0], [1.0, 2.0], np.ones((2, 2)))
        assert s(1.5, 2.0) == 1.0
        with pytest.raises(ValueError):
            s(0.5, 1.5)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            BilinearInterpolator().fit([1.0, 2.0], [1.0, 2.0], np.ones((3, 2)))


class TestCurve:
    """Tests for Curve class."""

    @pytest.fixture
    def sample_curve(self):
        """Flat 5% curve out to 30Y."""
        return create_flat_curve(0.05, max_tenor_years=30.0)

    def test_discount_factor_at_zero(self, sample_curve):
        """Test discount factor at time 0 is 1."""
        df = sample_curve.discount_factor(0.0)
        assert abs(df - 1.0) < 1e-10

    def test_discount_factor_future(self, sample_curve):
        """Test discount factor decreases with time."""
        df1 = sample_curve.discount_factor(1.0)
        df2 = sample_curve.discount_factor(2.0)

        assert df1 < 1.0
        assert df2 < df1

    def test_flat_zero_rate(self, sample_curve):
        for t in [0.1, 1.0, 7.5, 45.0]:
            assert sample_curve.zero_rate(t) == pytest.approx(0.05)
        assert sample_curve.discount_factor(2.0) == pytest.approx(np.exp(-0.1))

    def test_single_node_is_flat(self):
        curve = Curve()
        curve.add_node(2.0, np.exp(-0.04 * 2.0))
        assert curve.zero_rate(0.5) == pytest.approx(0.04)
        assert curve.zero_rate(10.0) == pytest.approx(0.04)

    def test_node_replacement(self):
        curve = Curve()
        curve.add_node(1.0, 0.97)
        curve.add_node(1.0, 0.96)
        assert len(curve.get_nodes()) == 1
        assert curve.discount_factor(1.0) == pytest.approx(0.96)

    def test_invalid_nodes(self):
        curve = Curve()
        with pytest.raises(ValueError):
            curve.add_node(0.0, 1.0)
        with pytest.raises(ValueError):
            curve.add_node(1.0, -0.5)
        with pytest.raises(ValueError):
            curve.build()
