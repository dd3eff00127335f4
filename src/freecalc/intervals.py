# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import logging

import numpy as np

from freecalc.errors import ErrorCode, FreeCalcError
from freecalc.newton import MAX_ROUNDS
from freecalc.periods import SchedulePeriod, annuity_period
from freecalc.rounding import RoundingPolicy
from freecalc.segments import RateSegment

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

INTERVAL_TOLERANCE = 0.001


# =============================================================================
# Period counts
# =============================================================================

def periods_to_pay_down(loan: float, annuity: float, rate: float, due: bool = False) -> float:
    """
    Number of payments of `annuity` that repay `loan` at periodic `rate`.

    Inverts the annuity formulas with logarithms (k = 1/(1+rate)):

        arrears: loan = annuity * (k - k^(n+1)) / (1-k)
                 => n = log(k - loan(1-k)/annuity) / log k - 1
        advance: loan = annuity * (1 - k^n) / (1-k)
                 => n = log(1 - loan(1-k)/annuity) / log k

    The result is real-valued. An annuity that does not cover the interest
    gives NaN.
    """
    with np.errstate(all="ignore"):
        k = 1 / (1 + np.float64(rate))
        if due:
            c = 1 - loan * (1 - k) / annuity
            return float(np.log(c) / np.log(k))
        c = k - loan * (1 - k) / annuity
        return float(np.log(c) / np.log(k) - 1)


# =============================================================================
# Segment-interval solver
# =============================================================================

def interval_length(
        upper: float,
        rate: float,
        lower: float,
        periods: float,
        rate_divisor: float,
        rounding: RoundingPolicy = RoundingPolicy(),
        interest_amount_res: float = 0.0,
        advance: bool = False
) -> SchedulePeriod:
    """
    How long one rate lasts: periods needed to pay the principal down from
    `upper` to below `lower`, and the principal actually reached.

    DERIVATION:
    -----------
    With k = 1/(1 + rate/rate_divisor), the annuity that repays `upper`
    over the `periods` still remaining is

        arrears: A = upper * (1-k) / (k - k^(periods+1))
        advance: A = upper * (1-k) / (1 - k^periods)

    The lender charges the rounded annuity a. The principal left after a
    payment still has `r` payments of a in front of it, so the time left
    when the principal equals `lower` solves

        arrears: lower = a * (k - k^(r+1)) / (1-k)
                 => r = (log(k - lower(1-k)/a) - log k) / log k
        advance: lower = a * (1 - k^r) / (1-k)
                 => r = log(1 - lower(1-k)/a) / log k

    r is floored so that the threshold is really crossed, never undershot,
    and the row spans elapsed = periods - r payments.

    Rounding moves the true principal away from the formula. The ceiling
    implied by the rounded annuity over the whole horizon differs from
    `upper` by a deviation. That deviation grows at the nominal periodic
    rate over the elapsed payments and is added to the discounted
    remaining principal:

        floor = a_true * (k - k^(r+1))/(1-k) + deviation * (1+i)^elapsed     (arrears)
        floor = a_true * (1 - k^r)/(1-k)     + deviation * (1+i)^(elapsed-1) (advance)

    Here a_true is the rounded annuity including the balloon interest, with
    that interest taken back out:

        a_true = round(A + interest_amount_res) - interest_amount_res

    Args:
        upper: Principal at the start of the row (segment ceiling)
        rate: Nominal annual rate in percent (must not be 0)
        lower: Principal floor to reach (segment lower limit)
        periods: Payments remaining in the loan
        rate_divisor: 100 * capitalizations per year
        rounding: Lender's rounding policy
        interest_amount_res: Periodic interest on the balloon
        advance: True for payments in advance

    Returns:
        Annuity row with payment a, term_count elapsed, principal_floor,
        principal_ceiling = upper and remainder A - a

    Raises:
        FreeCalcError: FAILING_CONVERGENCE for k < 0, or at the poles
            periods == 0 (arrears) and periods == 1 (advance)
    """
    with np.errstate(all="ignore"):
        k = 1 / (1 + np.float64(rate) / rate_divisor)
        if k < 0:
            raise FreeCalcError(ErrorCode.FAILING_CONVERGENCE)
        if advance:
            if periods == 1:
                raise FreeCalcError(ErrorCode.FAILING_CONVERGENCE)
            full = upper * (1 - k) / (1 - np.power(k, periods))
            a = rounding.round(float(full))
            remain = np.log(1 - lower * (1 - k) / a) / np.log(k)
        else:
            if periods == 0:
                raise FreeCalcError(ErrorCode.FAILING_CONVERGENCE)
            full = upper * (1 - k) / (k - np.power(k, periods + 1))
            a = rounding.round(float(full))
            remain = (np.log(k - lower * (1 - k) / a) - np.log(k)) / np.log(k)

        remain = np.floor(remain)
        remainder = full - a
        annuity_true = rounding.round(float(full + interest_amount_res)) - interest_amount_res
        elapsed = periods - remain

        growth = 1 + np.float64(rate) / rate_divisor
        if advance:
            upper_adjusted = annuity_true * (1 - np.power(k, periods)) / (1 - k)
            deviation = upper - upper_adjusted
            floor = annuity_true * (1 - np.power(k, remain)) / (1 - k) \
                + deviation * np.power(growth, elapsed - 1)
        else:
            upper_adjusted = annuity_true * (k - np.power(k, periods + 1)) / (1 - k)
            deviation = upper - upper_adjusted
            floor = annuity_true * (k - np.power(k, remain + 1)) / (1 - k) \
                + deviation * np.power(growth, elapsed)

    logger.debug(
        "interval %.2f -> %.2f at %.4f%%: payment=%.2f terms=%s floor=%.6f",
        upper, lower, rate, a, elapsed, floor,
    )
    return annuity_period(
        payment=a,
        term_count=float(elapsed),
        principal_floor=float(floor),
        principal_ceiling=upper,
        remainder=float(remainder),
    )


# =============================================================================
# Parallel-segment solver
# =============================================================================

def interval_length_concurrent(
        segments: list[RateSegment],
        step: int,
        periods_remaining: float,
        rate_divisor: float,
        rounding: RoundingPolicy = RoundingPolicy(),
        interest_amount_res: float = 0.0
) -> SchedulePeriod:
    """
    Segment-interval solver for segments that accrue interest at the same
    time, each at its own rate.

    Every segment up to `step` is treated as a separate annuity over the
    full remaining horizon. Installments are deducted from the top segment
    only, so the row ends when the top segment is used up. With separate
    rounded payments per segment there is no closed form, and the time is
    found in five steps:

    1. Initial estimate. The principal-weighted average rate of the active
       segments is handed to interval_length(). For the lowest segment the
       estimate is the whole remaining horizon.
    2. Flat annuities. For each segment with principal P_i and
       k_i = 1/(1 + rate_i/rate_divisor), the unrounded annuity over
       R = periods_remaining is

           ann_i = P_i (1-k_i) / (k_i - k_i^(R+1))

    3. Newton on t, the periods left once this segment is gone. The
       installments paid on all active segments until then must equal the
       top segment's size D:

           f(t)  = Σ (P_i - ann_i (k_i - k_i^(t+1)) / (1-k_i)) - D
           f'(t) = Σ ann_i k_i^(t+1) ln k_i / (1-k_i)

       The tolerance is 0.001 and at most 100 rounds are run.
    4. t is floored, and the row spans R - t payments.
    5. The row is re-simulated payment by payment with the rounded payment,
       which gives the exact principal left.

    Args:
        segments: Working ladder (0-based). Segments up to `step` must be
            bounded.
        step: Index of the top active segment
        periods_remaining: Payments remaining in the loan
        rate_divisor: 100 * capitalizations per year
        rounding: Lender's rounding policy
        interest_amount_res: Periodic interest on the balloon

    Returns:
        Annuity row with the same shape as interval_length()
    """
    active = segments[:step + 1]
    if any(s.upper_limit is None for s in active):
        raise ValueError("concurrent segments must be bounded; cap the top segment at the principal")
    top = active[-1]
    top_upper = float(top.upper_limit)

    start_principal = top_upper - active[0].lower_limit
    weighted_rate = sum(s.annual_interest * s.width / start_principal for s in active)

    if step > 0:
        estimate = interval_length(
            top_upper, weighted_rate, top.lower_limit, periods_remaining,
            rate_divisor, rounding, interest_amount_res, advance=False,
        ).terms.term_count
    else:
        estimate = periods_remaining

    with np.errstate(all="ignore"):
        principals = np.array([s.width for s in active], dtype=np.float64)
        rates = np.array([s.annual_interest for s in active], dtype=np.float64)
        ks = 1 / (1 + rates / rate_divisor)
        annuities = principals * (1 - ks) / (ks - np.power(ks, periods_remaining + 1))
        sum_annuity = float(annuities.sum())

        downpaid = top_upper - top.lower_limit
        remaintime = periods_remaining - estimate
        diff = np.float64(1.0)
        rounds = 0
        while abs(diff) > INTERVAL_TOLERANCE and rounds < MAX_ROUNDS:
            comptime = remaintime + 1
            remaining = annuities * (ks - np.power(ks, comptime)) / (1 - ks)
            sum_installments = (principals - remaining).sum()
            angle = (annuities * np.power(ks, comptime) * np.log(ks) / (1 - ks)).sum()
            diff = sum_installments - downpaid
            remaintime += -diff / angle
            rounds += 1
        if abs(diff) > INTERVAL_TOLERANCE:
            logger.debug("concurrent interval solve stopped after %d rounds, diff=%.6g", rounds, diff)

        remaintime = np.floor(remaintime)
        these_periods = periods_remaining - remaintime

        other_rate_amount = float((principals[:-1] * rates[:-1] / rate_divisor).sum())
        other_annuity = float(annuities[:-1].sum())
        other_principal = float(principals[:-1].sum())

        part_principal = top_upper - other_principal
        payment_with_balloon = rounding.round(float(annuities[-1]) + other_annuity + interest_amount_res)
        top_rate = rates[-1] / rate_divisor
        # Replay exactly the payments this row contains, so the next row starts from its floor
        simulated = int(np.floor(these_periods)) if np.isfinite(these_periods) else 0
        for _ in range(simulated):
            interest = part_principal * top_rate + other_rate_amount + interest_amount_res
            part_principal -= payment_with_balloon - interest

    payment = rounding.round(sum_annuity)
    logger.debug(
        "concurrent interval step %d: payment=%.2f terms=%s floor=%.6f (%d rounds)",
        step, payment, these_periods, other_principal + part_principal, rounds,
    )
    return annuity_period(
        payment=payment,
        term_count=float(these_periods),
        principal_floor=float(other_principal + part_principal),
        principal_ceiling=top_upper,
        remainder=sum_annuity - payment,
    )
