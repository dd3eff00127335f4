# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import logging
import math

import numpy as np

from freecalc.config import CardConfig
from freecalc.errors import ErrorCode, FreeCalcError
from freecalc.newton import MAX_ROUNDS, NewtonResult, newton_solve, retry_exhausted, solve_annuity_rate
from freecalc.periods import CardResult, annuity_period

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

CARD_TOLERANCE = 1e-5
DUE_DAYS = 45           # days from the start of the month until the bill is due
MONTH_DAYS = 30


# =============================================================================
# Credit cards
# =============================================================================

def card_rates(config: CardConfig) -> CardResult:
    """
    Regulatory and realistic effective rates of a credit card.

    The card balance (cash withdrawals and purchases plus their fees) is
    repaid by monthly annuities in arrears over `number_of_months`:

        annuity = loan * (1-k) / (k - k^(n+1)),   k = 1/(1 + rate/1200)

    The annual fee is paid in advance every started year. Its present value
    is re-amortized into the monthly annuity at the cash rate.

    GOVERNMENT RATE:
        Everything is drawn on day one and the rounded monthly annuity is
        paid from the end of the first month. The rate is solved with the
        same Newton iteration as annuity loans.

    REALISTIC RATE:
        Purchases enjoy an interest-free period, so the first bill falls
        `extra_days` after the end of the first month:

            extra_days = interest_free_days - 30   (if above 30)
                       = 45 - 30                   (otherwise)

        The purchase annuity is taken as an annuity in advance, and the
        remaining streams grow by the cash rate over the extra days. The
        whole stream is discounted by the extra fraction of a month,
        q = extra_days / 30:

            PV(k) = annu * (k - k^(n+1)) / (1-k) * k^q + remainder * k^(n+q)

    Args:
        config: Card usage and price terms

    Returns:
        CardResult with both rates and monthly payments

    Raises:
        FreeCalcError: ANNUITY_FALL_BELOW_MIN_PAYMENT when the annuity does
            not clear the card's minimum payment, EFFECTIVE_RATE_WAS_NAN
            when either rate cannot be resolved
    """
    months = config.number_of_months
    loan_purchase = config.loan_purchase
    loan_cash = config.loan_cash
    received = config.received

    with np.errstate(all="ignore"):
        kc = 1 / (1 + np.float64(config.rate_cash) / 1200)
        kp = 1 / (1 + np.float64(config.rate_purchase) / 1200)
        cash_annuity = _arrears_annuity(loan_cash, kc, months) if loan_cash > 0 else 0.0
        purchase_annuity = _arrears_annuity(loan_purchase, kp, months) if loan_purchase > 0 else 0.0

        # Annual fees are paid in advance for every started year
        ka = 1 / (1 + np.float64(config.rate_cash) / 100)
        years = math.ceil(months / 12)
        annual_fee_pv = config.fee_annual * (1 - np.power(ka, years)) / (1 - ka)
        annual_annuity = _arrears_annuity(annual_fee_pv, kc, months)

    sum_annuity = float(cash_annuity + purchase_annuity + annual_annuity + config.fee_period)
    rounded_annuity = config.rounding.round(sum_annuity)

    initial_debt = loan_cash + loan_purchase + config.fee_annual
    min_percentage_payment = config.minpay_perc / 100 * initial_debt
    if config.minpay_units > sum_annuity or min_percentage_payment > sum_annuity:
        raise FreeCalcError(ErrorCode.ANNUITY_FALL_BELOW_MIN_PAYMENT)

    government = _government_rate(config, rounded_annuity, sum_annuity, received, float(kp))

    # Realistic stream
    if config.interest_free_days > MONTH_DAYS:
        extra_days = config.interest_free_days - MONTH_DAYS
    else:
        extra_days = DUE_DAYS - MONTH_DAYS
    extra_months = extra_days / MONTH_DAYS
    with np.errstate(all="ignore"):
        purchase_due = loan_purchase * (1 - kp) / (1 - np.power(kp, months))
        other_annuity = sum_annuity - purchase_annuity - config.fee_period
        other_grown = other_annuity * (1 + config.rate_cash / 36000 * extra_days)
    annuity_unrounded = float(purchase_due + other_grown + config.fee_period)
    annuity = config.rounding.round(annuity_unrounded)
    if config.minpay_units > annuity:
        raise FreeCalcError(ErrorCode.ANNUITY_FALL_BELOW_MIN_PAYMENT)

    remainder = 0.0
    if not config.ignore_remainder:
        remainder = _realistic_remainder(config, annuity, annuity_unrounded, kp, months, extra_months)

    def func(k: float) -> tuple[float, float]:
        return _realistic_value(k, annuity, remainder, months, extra_months, received)

    logger.debug("Card realistic stream: annuity=%.2f remainder=%.2f extra_days=%d", annuity, remainder, extra_days)
    solved = newton_solve(func, kp, CARD_TOLERANCE, MAX_ROUNDS)
    solved = retry_exhausted(solved, lambda k: func(k)[0], label="card present value")

    government_rate = _annual_rate(government.k)
    realistic_rate = _annual_rate(solved.k)
    if math.isnan(government_rate) or math.isnan(realistic_rate):
        raise FreeCalcError(ErrorCode.EFFECTIVE_RATE_WAS_NAN)

    logger.info(
        "Card: government rate %.4f%% (payment %.2f), realistic rate %.4f%% (payment %.2f)",
        government_rate, rounded_annuity, realistic_rate, annuity,
    )
    return CardResult(
        government_effective_rate=government_rate,
        government_monthly_payment=rounded_annuity,
        effective_rate=realistic_rate,
        monthly_payment=annuity,
        remainder=remainder,
        rounds=solved.rounds,
        converged=solved.converged,
        government_rounds=government.rounds,
    )


# =============================================================================
# Helpers
# =============================================================================

def _arrears_annuity(loan: float, k: float, months: int) -> float:
    return loan * (1 - k) / (k - np.power(k, months + 1))


def _government_rate(
        config: CardConfig,
        rounded_annuity: float,
        sum_annuity: float,
        received: float,
        k0: float
) -> NewtonResult:
    """Solve the regulatory stream: one rounded arrears annuity over the whole term."""
    row = annuity_period(
        payment=rounded_annuity,
        term_count=config.number_of_months,
        principal_floor=0.0,
        principal_ceiling=received,
        remainder=sum_annuity - rounded_annuity,
    )
    return solve_annuity_rate([row], received, 0.0, config.number_of_months, k0, advance=False)


def _annual_rate(k: float) -> float:
    """Monthly discount factor to an effective annual rate in percent (NaN passes through)."""
    with np.errstate(all="ignore"):
        return float((np.power(1 / np.float64(k), 12) - 1) * 100)


def _realistic_remainder(
        config: CardConfig,
        annuity: float,
        annuity_unrounded: float,
        k: float,
        months: int,
        extra_months: float
) -> float:
    """
    Rounding gap between the unrounded and the rounded stream, carried to
    the last payment and rounded to the lender's precision.
    """
    with np.errstate(all="ignore"):
        factor = (k - np.power(k, months + 1)) / (1 - k) / np.power(1 / k, extra_months)
        gap_pv = (annuity_unrounded - annuity) * factor
        gap_fv = gap_pv * np.power(1 / k, months) * np.power(1 / k, extra_months)
    return config.rounding.round(config.rounding.round(float(annuity_unrounded + gap_fv)) - annuity)


def _realistic_value(
        k: float,
        annuity: float,
        remainder: float,
        months: int,
        extra_months: float,
        received: float
) -> tuple[float, float]:
    """y = PV(k) - received and dy/dk for the realistic card stream."""
    k = np.float64(k)
    exponent = months + extra_months
    stream = annuity * (k - np.power(k, months + 1)) / (1 - k)
    y = stream * np.power(k, extra_months) - received
    y += remainder * np.power(k, exponent)

    # Quotient rule on stream / (1/k)^q
    stream_dif = (annuity * (1 - (months + 1) * np.power(k, months)) * (1 - k)
                  + annuity * (k - np.power(k, months + 1))) / np.power(1 - k, 2)
    y_dif = (stream_dif * np.power(1 / k, extra_months)
             + stream * extra_months * np.power(1 / k, extra_months - 1) / np.power(k, 2)) \
        / np.power(1 / k, 2 * extra_months)
    y_dif += remainder * exponent * np.power(k, exponent - 1)
    return y, y_dif
