"""
Tenor utilities.

Converts market tenor labels ("6M", "1Y", "10Y") to year fractions so the
cube can be addressed either by label or by time.
"""

from typing import Tuple, Union
import re


class DateUtils:
    """Utility class for tenor manipulation."""

    # Tenor regex pattern: number + unit (D/W/M/Y)
    TENOR_PATTERN = re.compile(r'^(\d+)([DWMY])$', re.IGNORECASE)

    @staticmethod
    def parse_tenor(tenor: str) -> Tuple[int, str]:
        """
        Parse a tenor string into (amount, unit).

        Args:
            tenor: Tenor string like "1D", "3M", "2Y"

        Returns:
            Tuple of (amount, unit) where unit is D/W/M/Y

        Raises:
            ValueError: If tenor format is invalid
        """
        match = DateUtils.TENOR_PATTERN.match(tenor.upper().strip())
        if not match:
            raise ValueError(f"Invalid tenor format: {tenor}. Expected format like '3M', '2Y'")

        return int(match.group(1)), match.group(2).upper()

    @staticmethod
    def tenor_to_years(tenor: str) -> float:
        """
        Convert tenor to approximate year fraction.

        Days and weeks use a 365-day year, months are twelfths.
        """
        amount, unit = DateUtils.parse_tenor(tenor)

        if unit == 'D':
            return amount / 365.0
        elif unit == 'W':
            return amount * 7 / 365.0
        elif unit == 'M':
            return amount / 12.0
        elif unit == 'Y':
            return float(amount)
        else:
            raise ValueError(f"Unknown tenor unit: {unit}")


def to_years(value: Union[str, float]) -> float:
    """Year fraction from either a tenor label or a number."""
    if isinstance(value, str):
        return DateUtils.tenor_to_years(value)
    return float(value)


__all__ = ["DateUtils", "to_years"]
