# Requires Python 3.12+
"""
freecalc: effective interest rates for annuity loans, serial loans and
credit cards.

Payment schedules are built segment by segment over the lender's rate
ladder, with balloons, interest-only periods, periodic fees and payment
rounding, and the effective annual rate is solved with Newton's method.
"""

from __future__ import annotations

__version__ = "0.1.0"

# Rounding and errors
from freecalc.rounding import (
    RoundDirection,
    RoundPrecision,
    Accuracy,
    RoundingPolicy,
    round_half_up,
    roundoff,
)
from freecalc.errors import (
    ErrorCode,
    FreeCalcError,
    ConfigError,
)

# Rate ladder and schedule rows
from freecalc.segments import (
    RateSegment,
    normalize_segments,
    net_of_balloon,
    balloon_interest_concurrent,
)
from freecalc.periods import (
    PeriodKind,
    AnnuityTerms,
    SerialTerms,
    SchedulePeriod,
    annuity_period,
    serial_period,
    LoanResult,
    CardResult,
)

# Configuration
from freecalc.config import (
    LoanConfig,
    CardConfig,
)

# Solvers
from freecalc.newton import (
    NewtonResult,
    newton_solve,
    secant_solve,
    effective_rate,
    annuity_stream_value,
    solve_annuity_rate,
)
from freecalc.intervals import (
    interval_length,
    interval_length_concurrent,
    periods_to_pay_down,
)

# Loans and cards
from freecalc.annuity_loan import annuity_loan
from freecalc.serial_loan import serial_loan
from freecalc.card import card_rates

__all__ = [
    "__version__",
    # Rounding and errors
    "RoundDirection",
    "RoundPrecision",
    "Accuracy",
    "RoundingPolicy",
    "round_half_up",
    "roundoff",
    "ErrorCode",
    "FreeCalcError",
    "ConfigError",
    # Rate ladder and schedule rows
    "RateSegment",
    "normalize_segments",
    "net_of_balloon",
    "balloon_interest_concurrent",
    "PeriodKind",
    "AnnuityTerms",
    "SerialTerms",
    "SchedulePeriod",
    "annuity_period",
    "serial_period",
    "LoanResult",
    "CardResult",
    # Configuration
    "LoanConfig",
    "CardConfig",
    # Solvers
    "NewtonResult",
    "newton_solve",
    "secant_solve",
    "effective_rate",
    "annuity_stream_value",
    "solve_annuity_rate",
    "interval_length",
    "interval_length_concurrent",
    "periods_to_pay_down",
    # Loans and cards
    "annuity_loan",
    "serial_loan",
    "card_rates",
]
