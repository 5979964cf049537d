"""
Unit tests for the layered tensor.
"""

import numpy as np
import pytest

from volcube.errors import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InvalidGridError,
    StaleInterpolatorError,
)
from volcube.tensor import LayeredTensor


@pytest.fixture
def tensor():
    """2 layers on a 3x2 grid, layer 1 = 10 * layer 0."""
    t = LayeredTensor([1.0, 2.0, 5.0], [2.0, 10.0], 2)
    base = np.array([[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])
    t.set_points([base, 10 * base])
    t.refresh()
    return t


class TestConstruction:
    """Tests for LayeredTensor construction."""

    def test_zero_initialised(self):
        t = LayeredTensor([1.0, 2.0], [1.0, 5.0], 3)
        assert t.shape == (3, 2, 2)
        for layer in t.points:
            assert np.all(layer == 0.0)
        np.testing.assert_array_equal(t.query(1.5, 2.0), np.zeros(3))

    def test_too_few_grid_values(self):
        with pytest.raises(InvalidGridError):
            LayeredTensor([1.0], [1.0, 2.0], 1)

    def test_bad_layer_count(self):
        with pytest.raises(InvalidGridError):
            LayeredTensor([1.0, 2.0], [1.0, 2.0], 0)


class TestMutation:
    """Tests for set_element / set_layer / set_points / set_point."""

    def test_set_element_bad_indices(self, tensor):
        with pytest.raises(IndexOutOfRangeError):
            tensor.set_element(2, 0, 0, 1.0)
        with pytest.raises(IndexOutOfRangeError):
            tensor.set_element(0, 3, 0, 1.0)
        with pytest.raises(IndexOutOfRangeError):
            tensor.set_element(0, 0, -1, 1.0)

    def test_set_layer_shape_mismatch(self, tensor):
        with pytest.raises(DimensionMismatchError):
            tensor.set_layer(0, np.zeros((2, 2)))

    def test_set_points_wrong_layer_count(self, tensor):
        with pytest.raises(DimensionMismatchError):
            tensor.set_points([np.zeros((3, 2))])

    def test_set_point_wrong_value_count(self, tensor):
        with pytest.raises(DimensionMismatchError):
            tensor.set_point(3.0, 5.0, [1.0, 2.0, 3.0])

    def test_set_point_existing_node(self, tensor):
        tensor.set_point(2.0, 10.0, [7.0, 70.0])
        assert tensor.shape == (2, 3, 2)
        assert tensor.value_at(0, 2.0, 10.0) == 7.0
        assert tensor.value_at(1, 2.0, 10.0) == 70.0

    def test_set_point_grows_all_layers(self, tensor):
        tensor.set_point(3.0, 5.0, [9.0, 90.0])
        assert tensor.shape == (2, 4, 3)
        assert list(tensor.expiries) == [1.0, 2.0, 3.0, 5.0]
        assert list(tensor.lengths) == [2.0, 5.0, 10.0]
        assert tensor.value_at(0, 3.0, 5.0) == 9.0
        assert tensor.value_at(1, 3.0, 5.0) == 90.0
        # New row and column are zero-filled elsewhere
        assert tensor.value_at(0, 3.0, 2.0) == 0.0
        assert tensor.value_at(0, 1.0, 5.0) == 0.0

    def test_insertion_stability(self, tensor):
        """Stored values keep their logical coordinates after growth."""
        before = {
            (e, l): (tensor.value_at(0, e, l), tensor.value_at(1, e, l))
            for e in [1.0, 2.0, 5.0] for l in [2.0, 10.0]
        }
        tensor.set_point(0.5, 30.0, [1.0, 1.0])
        tensor.set_point(3.0, 5.0, [1.0, 1.0])
        for (e, l), (v0, v1) in before.items():
            assert tensor.value_at(0, e, l) == v0
            assert tensor.value_at(1, e, l) == v1

    def test_set_point_non_finite(self, tensor):
        with pytest.raises(InvalidGridError):
            tensor.set_point(np.nan, 5.0, [1.0, 1.0])

    def test_value_at_off_grid(self, tensor):
        with pytest.raises(IndexOutOfRangeError):
            tensor.value_at(0, 1.5, 2.0)


class TestQuery:
    """Tests for interpolation and refresh discipline."""

    def test_exact_nodes(self, tensor):
        """Queries at grid nodes return the stored values exactly."""
        for i, e in enumerate([1.0, 2.0, 5.0]):
            for j, l in enumerate([2.0, 10.0]):
                values = tensor.query(e, l)
                assert values[0] == tensor.layer(0)[i, j]
                assert values[1] == tensor.layer(1)[i, j]

    def test_bilinear_midpoint(self, tensor):
        values = tensor(1.5, 6.0)
        assert values[0] == pytest.approx(2.5)
        assert values[1] == pytest.approx(25.0)

    def test_extrapolation(self, tensor):
        # Layer 0 is 2 per expiry step on [1, 2] and 1 per 8y of length
        assert tensor.query(0.0, 2.0)[0] == pytest.approx(-1.0)
        assert tensor.query(1.0, 18.0)[0] == pytest.approx(3.0)

    def test_no_extrapolation(self):
        t = LayeredTensor([1.0, 2.0], [1.0, 2.0], 1, extrapolate=False)
        with pytest.raises(ValueError):
            t.query(3.0, 1.5)

    def test_stale_after_mutation(self, tensor):
        tensor.set_element(0, 0, 0, 100.0)
        assert tensor.is_stale
        with pytest.raises(StaleInterpolatorError):
            tensor.query(1.0, 2.0)
        tensor.refresh()
        assert tensor.query(1.0, 2.0)[0] == 100.0

    def test_stale_after_set_point(self, tensor):
        tensor.set_point(3.0, 5.0, [1.0, 2.0])
        with pytest.raises(StaleInterpolatorError):
            tensor(3.0, 5.0)
        tensor.refresh()
        np.testing.assert_array_equal(tensor(3.0, 5.0), [1.0, 2.0])

    def test_copy_is_independent(self, tensor):
        other = tensor.copy()
        other.set_point(3.0, 5.0, [1.0, 2.0])
        assert tensor.shape == (2, 3, 2)
        assert not tensor.is_stale
        assert other.is_stale

    def test_points_are_copies(self, tensor):
        points = tensor.points
        points[0][0, 0] = -1.0
        assert tensor.value_at(0, 1.0, 2.0) == 1.0
