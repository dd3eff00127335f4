# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import logging
import math
from dataclasses import replace

from freecalc.config import LoanConfig
from freecalc.errors import ErrorCode, FreeCalcError
from freecalc.intervals import interval_length, interval_length_concurrent, periods_to_pay_down
from freecalc.newton import effective_rate, solve_annuity_rate
from freecalc.periods import LoanResult, PeriodKind, SchedulePeriod, annuity_period
from freecalc.rounding import round_half_up
from freecalc.segments import RateSegment, balloon_interest_concurrent, net_of_balloon

__version__ = "0.1.0"

logger = logging.getLogger(__name__)


# =============================================================================
# Annuity loans
# =============================================================================

def annuity_loan(config: LoanConfig) -> LoanResult:
    """
    Effective annual rate and payment schedule of an annuity loan.

    The schedule is built as a short list of rows, one per interest rate the
    loan passes through, instead of one row per payment:

    1. The principal (received plus origination fees) is split into the
       balloon and the part repaid by annuities. The rate ladder is moved
       down by the balloon.
    2. The ladder is walked from the top. Each segment the principal passes
       through yields one row from interval_length() (sequential thresholds)
       or interval_length_concurrent() (concurrent segments).
    3. The balloon's periodic interest is folded into every row's payment
       and the periodic fees are attached.
    4. An interest-only row is put in front when a grace period is
       requested.
    5. The rounding left over at the end of the loan, together with the
       balloon, is paid with the last payment (the global residue).
    6. Newton's method finds the discount factor at which the rows are worth
       what the borrower received.

    Args:
        config: Loan request and product terms

    Returns:
        LoanResult with rows in time order (grace row first)

    Raises:
        FreeCalcError: on rejected product terms, unsupported mode
            combinations, a payment too small to service the loan or a
            NaN effective rate

    Example:
        >>> result = annuity_loan(LoanConfig(
        ...     received=100_000, number_of_periods=12,
        ...     segments=[RateSegment(annual_interest=6.0)]))
        >>> result.periods[0].payment
        8606.64
    """
    segments = config.check_product_terms()

    if config.rate_segments and config.annuity_due:
        raise FreeCalcError(ErrorCode.UNSUPPORTED_COMBINATION_ADVANCE)

    principal = config.principal
    balloon = config.balloon
    if balloon > principal:
        raise FreeCalcError(ErrorCode.UNSUPPORTED_COMBINATION_ADVANCE)

    capitalization = config.capitalization
    rate_divisor = config.rate_divisor

    # Payment mode derives the period count per row instead
    calculation_periods = 0.0
    if not config.is_payment_mode:
        calculation_periods = config.number_of_periods / config.periods_per_year * capitalization
    grace_periods = config.interest_only_periods / config.periods_per_year * capitalization
    periods_remaining = calculation_periods - grace_periods

    if config.is_payment_mode:
        interest_only = principal * segments[0].annual_interest / rate_divisor
        if interest_only > config.first_payment:
            raise FreeCalcError(ErrorCode.PAYMENT_TOO_SMALL)
        if interest_only == config.first_payment and principal != balloon:
            raise FreeCalcError(ErrorCode.PAYMENT_TOO_SMALL)

    principal_ann = principal - balloon
    ladder = net_of_balloon(segments, balloon)
    balloon_interest = 0.0
    if balloon > 0 and config.rate_segments:
        balloon_interest = balloon_interest_concurrent(segments, balloon, rate_divisor)

    rows, top_segment, grace_interest = _segment_rows(
        config, ladder, principal, principal_ann, periods_remaining, balloon_interest, grace_periods,
    )
    if not rows:
        raise FreeCalcError(ErrorCode.NO_SEGMENT_FOUND)

    if grace_periods > 0:
        rows.insert(0, _grace_row(
            config, top_segment, principal, principal_ann, grace_periods, grace_interest, balloon_interest,
        ))

    residue = _global_residue(config, rows[-1], balloon)
    total_terms = sum(row.terms.term_count for row in rows)

    k0 = 1 / (1 + segments[0].annual_interest / rate_divisor)
    solved = solve_annuity_rate(rows, config.received, residue, total_terms, k0, advance=config.annuity_due)
    rate = effective_rate(solved.k, capitalization)

    logger.info(
        "Annuity loan %.2f: %d row(s), %s terms, effective rate %.6f%% after %d round(s)",
        config.received, len(rows), total_terms, rate, solved.rounds,
    )
    return LoanResult(
        effective_rate=rate,
        rounds=solved.rounds,
        payback_period_count=total_terms,
        periods=rows,
        residue=residue,
        shape=PeriodKind.ANNUITY,
        converged=solved.converged,
        method=solved.method,
    )


# =============================================================================
# Row construction
# =============================================================================

def _segment_rows(
        config: LoanConfig,
        ladder: list[RateSegment],
        principal: float,
        principal_ann: float,
        periods_remaining: float,
        balloon_interest: float,
        grace_periods: float
) -> tuple[list[SchedulePeriod], RateSegment | None, float]:
    """
    Walk the ladder from the top and build one row per segment the annuity
    part of the principal passes through.

    Returns:
        (rows in time order, top segment used, periodic interest of the
        grace period in concurrent mode)
    """
    rate_divisor = config.rate_divisor
    rows: list[SchedulePeriod] = []
    top_segment: RateSegment | None = None
    grace_interest = 0.0

    for index in range(len(ladder) - 1, -1, -1):
        segment = ladder[index]
        if not (segment.contains(principal_ann) or rows):
            continue

        if not config.rate_segments:
            if not config.rate_thresholds:
                # One rate for the whole loan
                lower, upper = 0.0, principal_ann
            else:
                lower = segment.lower_limit
                if principal_ann <= segment.upper_or(math.inf):
                    upper = principal_ann
                elif rows and rows[-1].terms.principal_floor > 0:
                    upper = rows[-1].terms.principal_floor
                else:
                    upper = segment.upper_or(principal_ann)

            rate = segment.annual_interest
            balloon_interest = config.balloon * rate / rate_divisor
            if config.is_payment_mode:
                net_payment = (config.first_payment * 12 / config.capitalization
                               - segment.periodic_fee
                               - upper * config.fee_period_perc / 100
                               - balloon_interest)
                periods_remaining = periods_to_pay_down(
                    upper, net_payment, rate / rate_divisor, config.annuity_due,
                )
            row = interval_length(
                upper, rate, lower, periods_remaining, rate_divisor,
                config.rounding, balloon_interest, config.annuity_due,
            )
        else:
            if grace_periods > 0:
                # Nothing is repaid during the grace period, so every slice is full
                grace_interest += (min(segment.upper_or(math.inf), principal_ann) - segment.lower_limit) \
                    * segment.annual_interest / rate_divisor
            upper = principal_ann if principal_ann <= segment.upper_or(math.inf) else segment.upper_limit
            if rows and 0 < rows[-1].terms.principal_floor < math.inf:
                upper = rows[-1].terms.principal_floor
            segment = replace(segment, upper_limit=upper)
            ladder[index] = segment
            row = interval_length_concurrent(
                ladder, index, periods_remaining, rate_divisor, config.rounding, balloon_interest,
            )

        if top_segment is None:
            top_segment = segment

        if config.balloon > 0:
            _fold_balloon_interest(config, row, balloon_interest)
        row.periodic_fee = segment.periodic_fee + config.periodic_percentage_fee(principal)
        periods_remaining -= row.terms.term_count
        rows.append(row)
        logger.debug(
            "row %d: payment=%.2f fee=%.2f terms=%s ceiling=%.2f floor=%.6f",
            len(rows), row.payment, row.periodic_fee, row.terms.term_count,
            row.terms.principal_ceiling, row.terms.principal_floor,
        )

        if not config.rate_thresholds and not config.rate_segments:
            break

    return rows, top_segment, grace_interest


def _fold_balloon_interest(config: LoanConfig, row: SchedulePeriod, balloon_interest: float) -> None:
    """Add the balloon's periodic interest to the row payment and re-round."""
    if config.ignore_remainder:
        unrounded = row.payment + balloon_interest + row.terms.remainder
        row.payment = config.rounding.round(unrounded)
        row.terms.remainder = unrounded - row.payment
    else:
        row.payment = config.rounding.round(row.payment + balloon_interest)


def _grace_row(
        config: LoanConfig,
        top_segment: RateSegment,
        principal: float,
        principal_ann: float,
        grace_periods: float,
        grace_interest: float,
        balloon_interest: float
) -> SchedulePeriod:
    """Interest-only row paid before the first installment."""
    if config.rate_segments:
        unrounded = grace_interest + balloon_interest
    else:
        # The whole principal, balloon included, sits in the top segment
        unrounded = principal * top_segment.annual_interest / config.rate_divisor
    payment = config.rounding.round(unrounded)
    return annuity_period(
        payment=payment,
        term_count=grace_periods,
        principal_floor=principal_ann,
        principal_ceiling=principal_ann,
        remainder=unrounded - payment,
        periodic_fee=top_segment.periodic_fee + config.periodic_percentage_fee(principal),
        is_grace=True,
    )


def _global_residue(config: LoanConfig, last: SchedulePeriod, balloon: float) -> float:
    """
    Amount settled together with the last payment.

    The last row's own rounding remainder, the principal its rounded
    annuity leaves unpaid, and the balloon are added to the last gross
    payment. The total is rounded to the lender's precision and the
    ordinary last payment is taken back out.
    """
    scale = config.rounding.scale
    if config.ignore_remainder:
        return round_half_up(balloon, scale)
    gross_last = last.payment + last.terms.remainder + last.terms.principal_floor + balloon + last.periodic_fee
    return round_half_up(gross_last, scale) - (last.payment + last.periodic_fee)
