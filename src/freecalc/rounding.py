# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

__version__ = "0.1.0"


# =============================================================================
# Rounding rules set by the lender
# =============================================================================

class RoundDirection(Enum):
    """Direction applied when a payment is rounded to the lender's precision."""
    NORMAL = "normal"  # half away from the cent below (x.5 goes up)
    UP = "up"
    DOWN = "down"


class RoundPrecision(Enum):
    """Smallest unit a payment is rounded to. The value is the scale factor."""
    CENT = 100
    INTEGER = 1


class Accuracy(Enum):
    """Convergence tolerance for serial loans, as a fraction of the principal."""
    FAST = "fast"
    NORMAL = "normal"
    EXTREMELY_ACCURATE = "extremely_accurate"

    def tolerance(self, principal: float) -> float:
        """
        Largest acceptable gap between the present value of the payments and
        the amount received.

        FAST:               principal / 5,000 (rounded to a whole unit)
        NORMAL:             principal / 50,000,000
        EXTREMELY_ACCURATE: principal / 5 x 10^13
        """
        if self is Accuracy.FAST:
            return round_half_up(principal / 5000)
        if self is Accuracy.NORMAL:
            return principal / 5e7
        return principal / 5e13


def round_half_up(number: float, scale: int = 1) -> float:
    """Round to 1/scale with ties going towards positive infinity."""
    if not math.isfinite(number):
        return number
    return math.floor(number * scale + 0.5) / scale


def roundoff(
        number: float,
        direction: RoundDirection = RoundDirection.NORMAL,
        precision: RoundPrecision = RoundPrecision.CENT
) -> float:
    """
    Round an amount the way the lender rounds its payments.

    Args:
        number: Unrounded amount
        direction: NORMAL (ties up), UP (ceiling) or DOWN (floor)
        precision: CENT (two decimals) or INTEGER (whole currency units)

    Returns:
        Rounded amount

    Example:
        >>> roundoff(8606.6429, RoundDirection.UP, RoundPrecision.CENT)
        8606.65
    """
    if not math.isfinite(number):
        # left for the effective-rate check to reject
        return number
    scale = precision.value
    if direction is RoundDirection.UP:
        return math.ceil(number * scale) / scale
    if direction is RoundDirection.DOWN:
        return math.floor(number * scale) / scale
    return round_half_up(number, scale)


@dataclass(frozen=True)
class RoundingPolicy:
    """Direction and precision pair applied to every rounded payment."""
    direction: RoundDirection = RoundDirection.NORMAL
    precision: RoundPrecision = RoundPrecision.CENT

    @property
    def scale(self) -> int:
        return self.precision.value

    def round(self, number: float) -> float:
        return roundoff(number, self.direction, self.precision)
