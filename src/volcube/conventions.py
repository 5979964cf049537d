"""
Fixed leg conventions of the swaps behind ATM forwards.

Accrual is on a year-fraction grid: a swap of length L with payment
frequency f pays on round(L * f) equal periods. Calendars and day counts
are left to the caller's curve construction.
"""

from dataclasses import dataclass


@dataclass
class Conventions:
    """
    Fixed leg conventions of the swap underlying a swaption.

    Attributes:
        payment_frequency: Fixed leg payments per year (1=annual, 2=semi)
        settlement_days: Calendar days between option expiry and swap start
    """
    payment_frequency: int = 1
    settlement_days: int = 2

    def __post_init__(self):
        if self.payment_frequency <= 0:
            raise ValueError(f"payment_frequency must be positive, got {self.payment_frequency}")
        if self.settlement_days < 0:
            raise ValueError(f"settlement_days must be non-negative, got {self.settlement_days}")

    @property
    def settlement_lag(self) -> float:
        """Settlement delay in years (calendar days over 365)."""
        return self.settlement_days / 365.0

    @classmethod
    def usd_swap(cls) -> "Conventions":
        """Standard USD IRS fixed leg: semi-annual, T+2."""
        return cls(payment_frequency=2, settlement_days=2)

    @classmethod
    def eur_swap(cls) -> "Conventions":
        """Standard EUR IRS fixed leg: annual, T+2."""
        return cls(payment_frequency=1, settlement_days=2)


__all__ = ["Conventions"]
