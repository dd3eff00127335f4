# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import logging
import math

import numpy as np

from freecalc.config import LoanConfig
from freecalc.errors import ErrorCode, FreeCalcError
from freecalc.newton import effective_rate, retry_exhausted, secant_solve
from freecalc.periods import LoanResult, PeriodKind, SchedulePeriod, serial_period
from freecalc.rounding import round_half_up
from freecalc.segments import RateSegment

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


# =============================================================================
# Serial loans
# =============================================================================

def serial_loan(config: LoanConfig) -> LoanResult:
    """
    Effective annual rate and payment schedule of a serial loan.

    A serial loan repays the same installment every period:

        installment = (principal - balloon) / installment_periods

    Interest falls as the principal is paid down, so every period has its
    own payment. The schedule is simulated period by period. Each payment
    (interest + installment + fee) is rounded to the lender's precision,
    and the rounding is carried into the remaining principal before the
    next period.

    The rate is then found with the secant method, since the rounded
    payments have no closed-form derivative:

        Σ payment_i * k^i + remainder * k^n = received

    Args:
        config: Loan request and product terms

    Returns:
        LoanResult with one row per payment, in time order

    Raises:
        FreeCalcError: BALLOON_TOO_SMALL if the balloon exceeds the
            principal, PAYMENT_TOO_SMALL if a chosen payment cannot cover
            the interest, plus the product-term checks
    """
    segments = config.check_product_terms()

    principal = config.principal
    balloon = config.balloon
    if balloon > principal:
        raise FreeCalcError(ErrorCode.BALLOON_TOO_SMALL)

    capitalization = config.capitalization
    rate_divisor = config.rate_divisor
    active = _active_segment(segments, principal)
    active_segment = segments[active]

    if config.is_payment_mode:
        net_payment = (config.first_payment * 12 / capitalization
                       - active_segment.periodic_fee
                       - config.periodic_percentage_fee(principal))
        net_installment = net_payment - active_segment.annual_interest / rate_divisor * principal
        if net_installment <= 0:
            raise FreeCalcError(ErrorCode.PAYMENT_TOO_SMALL)
        term_number = math.ceil((principal - balloon) / net_installment)
    else:
        term_number = config.number_of_periods

    calculation_periods = math.ceil(term_number * capitalization / config.periods_per_year)
    grace_periods = config.interest_only_periods / config.periods_per_year * capitalization
    installment_periods = calculation_periods - grace_periods
    installment = (principal - balloon) / installment_periods if installment_periods != 0 else 0.0

    lower_interest = _lower_segment_interest(segments, active, principal, rate_divisor, config.rate_segments)
    rows, gross, last_unrounded, remaining = _simulate(
        config, segments, active, principal, installment, calculation_periods, grace_periods, lower_interest,
    )

    scale = config.rounding.scale
    settled = balloon if config.ignore_remainder else remaining
    last_payment = gross[-1] if gross else 0.0
    remainder = round_half_up(settled + last_unrounded, scale) - last_payment

    base_rate = segments[0].annual_interest
    with np.errstate(all="ignore"):
        periodic = np.power(base_rate / 100 + 1, 1 / capitalization) - 1
    if periodic == -1:
        raise FreeCalcError(ErrorCode.INTEREST_PERIOD_TOO_LONG)
    k0 = 1 / (1 + periodic)

    first = 0 if config.annuity_due else 1
    exponents = np.arange(first, calculation_periods + 1, dtype=np.float64)
    payments = np.array(gross, dtype=np.float64)

    def present_value(k: float) -> float:
        with np.errstate(all="ignore"):
            return float((payments * np.power(k, exponents)).sum()
                         + remainder * np.power(k, calculation_periods)
                         - config.received)

    tolerance = config.accuracy.tolerance(principal)
    logger.debug("Serial loan: %d payment(s), tolerance %.3g, k0=%.10f", len(rows), tolerance, k0)
    solved = secant_solve(present_value, k0, tolerance)
    solved = retry_exhausted(solved, present_value, label="serial present value")
    rate = effective_rate(solved.k, capitalization)

    logger.info(
        "Serial loan %.2f: %d payment(s), effective rate %.6f%% after %d round(s)",
        config.received, len(rows), rate, solved.rounds,
    )
    return LoanResult(
        effective_rate=rate,
        rounds=solved.rounds,
        payback_period_count=float(term_number),
        periods=rows,
        residue=remainder,
        shape=PeriodKind.SERIAL,
        converged=solved.converged,
        method=solved.method,
    )


# =============================================================================
# Helpers
# =============================================================================

def _active_segment(segments: list[RateSegment], principal: float) -> int:
    """Index of the highest segment the principal lies above, or the first one."""
    for index in range(len(segments) - 1, 0, -1):
        if principal > segments[index].lower_limit:
            return index
    return 0


def _lower_segment_interest(
        segments: list[RateSegment],
        active: int,
        principal: float,
        rate_divisor: float,
        concurrent: bool
) -> list[float]:
    """
    Periodic interest on the principal lying in the segments below each one.

    Entry i is what the principal up to the top of segment i costs per
    period while the loan sits in segment i + 1:

    - concurrent segments: each segment at its own rate, accumulated from
      the bottom
    - sequential thresholds: the whole amount up to the top of segment i at
      the rate of segment i + 1
    """
    interest = [0.0] * active
    for index in range(active):
        segment = segments[index]
        if not (segment.upper_or(math.inf) <= principal or segment.is_unbounded or index == 0):
            continue
        if concurrent:
            size = principal - segment.lower_limit if segment.is_unbounded else segment.width
            interest[index] = size * segment.annual_interest / rate_divisor
            if index > 0:
                interest[index] += interest[index - 1]
        else:
            size = segment.upper_or(principal)
            interest[index] = size * segments[index + 1].annual_interest / rate_divisor
    return interest


def _simulate(
        config: LoanConfig,
        segments: list[RateSegment],
        active: int,
        principal: float,
        installment: float,
        calculation_periods: int,
        grace_periods: float,
        lower_interest: list[float]
) -> tuple[list[SchedulePeriod], list[float], float, float]:
    """
    Period-by-period schedule with every payment rounded on its own.

    Returns:
        (rows, gross payments, last unrounded payment including fee,
        principal left after the last payment)
    """
    rate_divisor = config.rate_divisor
    first = 0 if config.annuity_due else 1
    periodic_percentage_fee = config.periodic_percentage_fee(principal)

    rows: list[SchedulePeriod] = []
    gross: list[float] = []
    remaining = principal
    current = active
    unrounded = 0.0

    for period in range(first, calculation_periods + 1):
        if current > 0 and remaining < segments[current].lower_limit:
            current -= 1

        if current == 0 or not config.rate_thresholds:
            active_balance = remaining
        else:
            active_balance = remaining - segments[current - 1].upper_limit

        if not config.rate_thresholds:
            periodic_rate = segments[active].annual_interest / rate_divisor
            interest_below = 0.0
        else:
            periodic_rate = segments[current].annual_interest / rate_divisor
            interest_below = lower_interest[current - 1] if current > 0 else 0.0

        # An advance payment in the last period falls before any interest accrues
        if config.annuity_due and period == calculation_periods:
            interest = 0.0
        else:
            interest = interest_below + active_balance * periodic_rate

        period_installment = 0.0 if period == 0 else installment
        unrounded = interest + period_installment if period > grace_periods else interest

        fee = segments[current].periodic_fee + periodic_percentage_fee
        unrounded += fee
        payment = config.rounding.round(unrounded)
        adjusted_installment = payment - interest - fee
        remaining -= adjusted_installment

        rows.append(serial_period(payment - fee, adjusted_installment, fee))
        gross.append(payment)
        logger.debug(
            "period %d: payment=%.2f interest=%.4f installment=%.4f remaining=%.4f",
            period, payment, interest, adjusted_installment, remaining,
        )

    return rows, gross, unrounded, remaining
