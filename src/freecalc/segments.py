# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

from dataclasses import dataclass, replace

__version__ = "0.1.0"


# =============================================================================
# Rate ladder
# =============================================================================

@dataclass(frozen=True)
class RateSegment:
    """
    One step of a lender's price ladder: a principal range carrying one
    nominal rate and one periodic fee.

    Segments are ordered ascending by limit and are contiguous, i.e. the
    upper limit of a segment equals the lower limit of the next one. The
    highest segment is normally unbounded (upper_limit is None).
    """
    annual_interest: float          # nominal annual rate in percent (e.g. 4.5)
    periodic_fee: float = 0.0       # fixed fee charged every payment period
    lower_limit: float = 0.0
    upper_limit: float | None = None  # None = no upper limit

    def __post_init__(self) -> None:
        if self.lower_limit < 0:
            raise ValueError(f"lower_limit must be non-negative, got {self.lower_limit}")
        if self.upper_limit is not None and self.upper_limit < self.lower_limit:
            raise ValueError(
                f"upper_limit ({self.upper_limit}) cannot be below "
                f"lower_limit ({self.lower_limit})"
            )

    @property
    def is_unbounded(self) -> bool:
        return self.upper_limit is None

    @property
    def width(self) -> float | None:
        """Size of the segment, None when unbounded."""
        if self.upper_limit is None:
            return None
        return self.upper_limit - self.lower_limit

    def contains(self, amount: float) -> bool:
        """True when lower_limit <= amount <= upper_limit (both inclusive)."""
        if amount < self.lower_limit:
            return False
        return self.upper_limit is None or amount <= self.upper_limit

    def upper_or(self, default: float) -> float:
        """The upper limit, or `default` for an unbounded segment."""
        return default if self.upper_limit is None else self.upper_limit


def normalize_segments(segments: list[RateSegment]) -> list[RateSegment]:
    """
    Close the gaps between adjacent segments and anchor the ladder at zero.

    Price lists are commonly published with gaps between the steps, e.g.
    0 - 999,999 followed by 1,000,000 - 1,999,999. The gap would leak into
    the rate computation, so each upper limit is moved to the next segment's
    lower limit. An unbounded segment followed by a segment starting at zero
    is left alone.

    A loan is paid down below the smallest amount the lender originates, at
    the rate of the lowest segment, so the first lower limit becomes 0.

    Args:
        segments: Segments as reported by the lender, ascending

    Returns:
        New list of corrected segments (inputs are not modified)
    """
    corrected: list[RateSegment] = []
    for segment in segments:
        if corrected:
            previous = corrected[-1]
            if not previous.is_unbounded or segment.lower_limit != 0:
                corrected[-1] = replace(previous, upper_limit=segment.lower_limit)
        corrected.append(segment)
    if corrected and corrected[0].lower_limit > 0:
        corrected[0] = replace(corrected[0], lower_limit=0.0)
    return corrected


def net_of_balloon(segments: list[RateSegment], balloon: float) -> list[RateSegment]:
    """
    Re-express the ladder for the part of the loan that is amortized.

    The balloon is never paid down by the installments, so the annuity
    part of the loan moves through the ladder as if every limit were
    `balloon` lower. Segments lying entirely below the balloon drop out.

    Example:
        Ladder 0-500k / 500k-1M / 1M+ with a 200k balloon becomes
        0-300k / 300k-800k / 800k+.
    """
    if balloon <= 0:
        return list(segments)
    shifted: list[RateSegment] = []
    for segment in segments:
        lower = max(segment.lower_limit - balloon, 0.0)
        if segment.upper_limit is None:
            shifted.append(replace(segment, lower_limit=lower))
        elif segment.upper_limit > balloon:
            shifted.append(replace(segment, lower_limit=lower, upper_limit=segment.upper_limit - balloon))
    return shifted


def balloon_interest_concurrent(
        segments: list[RateSegment],
        balloon: float,
        rate_divisor: float
) -> float:
    """
    Periodic interest on the balloon when segments accrue concurrently.

    The balloon occupies the bottom of the ladder. Each segment below the
    balloon's top contributes its own rate on the part of the balloon
    inside it:

        interest = Σ (min(balloon, upper_i) - lower_i) * rate_i / rate_divisor
    """
    interest = 0.0
    for segment in segments:
        if balloon > segment.lower_limit or segment.lower_limit == 0:
            high = segment.upper_or(balloon)
            interest += (min(balloon, high) - segment.lower_limit) * segment.annual_interest / rate_divisor
        if segment.upper_limit is None or segment.upper_limit >= balloon:
            break
    return interest
