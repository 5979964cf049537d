"""
Yield curve used to project and discount the swaps behind ATM forwards.

The Curve class provides discount factors P(0,t) and zero rates z(t) from
continuously compounded zero rates interpolated between nodes. Times are
year fractions from the valuation date.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple
import numpy as np

from .interpolation import Interpolator, create_interpolator


@dataclass
class CurveNode:
    """A single point on the curve."""
    time: float
    discount_factor: float
    zero_rate: float  # Continuously compounded

    @classmethod
    def from_discount_factor(cls, time: float, df: float) -> "CurveNode":
        if time <= 0:
            return cls(time=time, discount_factor=df, zero_rate=0.0)
        return cls(time=time, discount_factor=df, zero_rate=-np.log(df) / time)


class Curve:
    """
    Discount curve interpolated on zero rates.

    Attributes:
        interpolation_method: Name passed to create_interpolator
    """

    def __init__(self, interpolation_method: str = "linear"):
        self.interpolation_method = interpolation_method

        self._nodes: List[CurveNode] = []
        self._interpolator: Optional[Interpolator] = None

    def add_node(self, time: float, discount_factor: float) -> None:
        """
        Add (or replace) a discount factor node.

        Args:
            time: Year fraction from the valuation date, > 0
            discount_factor: Discount factor P(0,t)
        """
        if time <= 0:
            raise ValueError("Node time must be positive")
        if discount_factor <= 0:
            raise ValueError(f"Invalid discount factor: {discount_factor}")

        node = CurveNode.from_discount_factor(time, discount_factor)
        for i, n in enumerate(self._nodes):
            if abs(n.time - time) < 1e-10:
                self._nodes[i] = node
                self._interpolator = None
                return
        self._nodes.append(node)
        self._nodes.sort(key=lambda n: n.time)
        self._interpolator = None

    def build(self) -> None:
        """Fit the interpolator on the current nodes."""
        if not self._nodes:
            raise ValueError("Need at least 1 node to build curve")

        times = [n.time for n in self._nodes]
        rates = [n.zero_rate for n in self._nodes]
        if len(times) == 1:
            # Single node: flat zero curve
            times = [0.0, times[0]]
            rates = [rates[0], rates[0]]

        self._interpolator = create_interpolator(self.interpolation_method)
        self._interpolator.fit(np.array(times), np.array(rates))

    def zero_rate(self, t: float) -> float:
        """Continuously compounded zero rate z(t), flat beyond the nodes."""
        if self._interpolator is None:
            self.build()
        return self._interpolator.interpolate(max(t, 0.0))

    def discount_factor(self, t: float) -> float:
        """Discount factor P(0,t); 1.0 at or before time 0."""
        if t <= 0:
            return 1.0
        return float(np.exp(-self.zero_rate(t) * t))

    def get_nodes(self) -> List[Tuple[float, float, float]]:
        """(time, discount_factor, zero_rate) per node."""
        return [(n.time, n.discount_factor, n.zero_rate) for n in self._nodes]

    def __repr__(self) -> str:
        return f"Curve(nodes={len(self._nodes)}, method={self.interpolation_method})"


def create_flat_curve(rate: float, max_tenor_years: float = 60.0) -> Curve:
    """
    Flat continuously compounded curve.

    Args:
        rate: Flat zero rate
        max_tenor_years: Last node time
    """
    curve = Curve(interpolation_method="linear")
    for t in [0.25, 0.5, 1, 2, 5, 10, 20, 30, max_tenor_years]:
        if t <= max_tenor_years:
            curve.add_node(t, np.exp(-rate * t))
    curve.build()
    return curve


__all__ = ["Curve", "CurveNode", "create_flat_curve"]
