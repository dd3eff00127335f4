# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import logging
import math
import warnings
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from scipy.optimize import brentq

from freecalc.errors import ErrorCode, FreeCalcError
from freecalc.periods import AnnuityTerms, SchedulePeriod

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

MAX_ROUNDS = 100
ANNUITY_TOLERANCE = 1e-6
SECANT_STEP = 1e-6
BRACKET = (1e-9, 1.0 - 1e-9)


# =============================================================================
# Convergence result
# =============================================================================

@dataclass
class NewtonResult:
    """
    Outcome of an iterative solve for the discount factor k = 1/(1+e).

    `converged` is False when the round limit was hit before the present
    value matched the target (the Exhausted case). `k` then holds the last
    iterate.
    """
    k: float
    rounds: int
    converged: bool
    method: str = "newton"

    @property
    def exhausted(self) -> bool:
        return not self.converged


# =============================================================================
# Solvers
# =============================================================================

def newton_solve(
        func: Callable[[float], tuple[float, float]],
        k0: float,
        tolerance: float,
        max_rounds: int = MAX_ROUNDS
) -> NewtonResult:
    """
    Newton's method on the discount factor.

    Each round evaluates y = PV(k) - received together with its derivative
    and moves k to where the tangent crosses zero:

        k ← k - y / PV'(k)

    The annuity formulas have a pole at k = 1. A step that would land
    exactly on it is skipped and k stays put for that round.

    Args:
        func: Returns (y, dy/dk) for a given k
        k0: Initial guess, normally 1/(1 + nominal periodic rate)
        tolerance: Stop once |y| <= tolerance
        max_rounds: Hard cap on iterations

    Returns:
        NewtonResult. A NaN iterate ends the loop and is returned as is.
    """
    k = np.float64(k0)
    y = np.float64(np.inf)
    rounds = 0
    with np.errstate(all="ignore"):
        while abs(y) > tolerance and rounds < max_rounds:
            y, dy = func(k)
            delta = -np.float64(y) / dy
            if k + delta != 1:
                k += delta
            rounds += 1
            logger.debug("newton round %d: k=%.12f y=%.6g", rounds, k, y)
    converged = bool(abs(y) <= tolerance)
    return NewtonResult(k=float(k), rounds=rounds, converged=converged)


def secant_solve(
        present_value: Callable[[float], float],
        k0: float,
        tolerance: float,
        max_rounds: int = MAX_ROUNDS,
        step: float = SECANT_STEP
) -> NewtonResult:
    """
    Secant variant of newton_solve for payment streams without a
    closed-form derivative (period-by-period rounded serial loans).

    The slope is taken between k and a neighbour g = k - k*step, with g
    re-derived from the updated k in every round.

    Args:
        present_value: Returns PV(k) - received
        k0: Initial guess
        tolerance: Stop once |y| <= tolerance
        max_rounds: Hard cap on iterations
        step: Relative distance to the neighbour point
    """
    k = np.float64(k0)
    g = k - k * step
    y = np.float64(tolerance) + 1
    rounds = 0
    with np.errstate(all="ignore"):
        while abs(y) > tolerance and rounds < max_rounds:
            y = np.float64(present_value(k))
            z = present_value(g)
            gradient = (z - y) / (g - k)
            k += -y / gradient
            g = k - k * step
            rounds += 1
            logger.debug("secant round %d: k=%.12f y=%.6g", rounds, k, y)
    converged = bool(abs(y) <= tolerance)
    return NewtonResult(k=float(k), rounds=rounds, converged=converged, method="secant")


def retry_exhausted(
        result: NewtonResult,
        residual: Callable[[float], float],
        label: str = "present value"
) -> NewtonResult:
    """
    Bracketed retry for an iteration that ran out of rounds.

    An exhausted Newton/secant run is reported (log + RuntimeWarning) and
    the root is searched again with Brent's method on k in (0, 1). When the
    residual does not change sign over the bracket, e.g. for a negative
    effective rate, the exhausted result is returned unchanged.

    Converged and NaN results are returned as they are.

    Raises:
        FreeCalcError: FAILING_CONVERGENCE if brentq rejects the bracket
    """
    if result.converged or not math.isfinite(result.k):
        return result
    logger.warning(
        "%s solve exhausted after %d rounds (k=%.12f); retrying with brentq",
        label, result.rounds, result.k,
    )
    warnings.warn(
        f"{label} did not converge in {result.rounds} rounds, last k={result.k:.12f}",
        RuntimeWarning,
        stacklevel=3,
    )
    lower, upper = BRACKET
    with np.errstate(all="ignore"):
        f_lower = float(residual(lower))
        f_upper = float(residual(upper))
    if not (math.isfinite(f_lower) and math.isfinite(f_upper)) or f_lower * f_upper > 0:
        logger.warning("No sign change on k in (%g, %g); keeping last iterate", lower, upper)
        return result
    try:
        with np.errstate(all="ignore"):
            k, info = brentq(
                lambda x: float(residual(x)), lower, upper,
                xtol=1e-15, maxiter=MAX_ROUNDS, full_output=True, disp=False,
            )
    except ValueError as e:
        # brentq raises ValueError if the bracket holds no root
        raise FreeCalcError(ErrorCode.FAILING_CONVERGENCE) from e
    return NewtonResult(k=float(k), rounds=result.rounds + info.iterations,
                        converged=bool(info.converged), method="brentq")


def effective_rate(k: float, capitalization: int) -> float:
    """
    Effective annual rate in percent from the periodic discount factor.

    Since k = 1/(1+e), the periodic rate is e = 1/k - 1 and

        er = ((1/k)^capitalization - 1) * 100

    Raises:
        FreeCalcError: EFFECTIVE_RATE_WAS_NAN
    """
    with np.errstate(all="ignore"):
        er = (np.power(1 / np.float64(k), capitalization) - 1) * 100
    if np.isnan(er):
        raise FreeCalcError(ErrorCode.EFFECTIVE_RATE_WAS_NAN)
    return float(er)


# =============================================================================
# Present value of a stream of annuity rows
# =============================================================================

def annuity_stream_value(
        periods: list[SchedulePeriod],
        k: float,
        residue: float,
        total_terms: float,
        advance: bool = False
) -> tuple[float, float]:
    """
    Present value of interval rows, and its derivative with respect to k.

    Every row pays `payment + periodic_fee` for `term_count` periods. A row
    running from period s to period e (counted from the loan start) is the
    difference of two annuities from the start of the loan:

    ANNUITY-IMMEDIATE (arrears):
        PV  = p/(1-k) * (k^(s+1) - k^(e+1))
        PV' = p/(1-k)^2 * (k^(s+1) - k^(e+1))
              + p/(1-k) * ((s+1) k^s - (e+1) k^e)

    ANNUITY-DUE (advance):
        PV  = p/(1-k) * (k^s - k^e)
        PV' = p/(1-k)^2 * (k^s - k^e)
              + p/(1-k) * (s k^(s-1) - e k^(e-1))

    The residue is paid with the last payment (period N in arrears, N-1 in
    advance) and adds residue * k^N (resp. k^(N-1)) with the matching power
    rule derivative.

    Args:
        periods: Annuity rows in time order
        k: Discount factor
        residue: Global remainder settled with the last payment
        total_terms: N, the number of payments in the schedule
        advance: True for payments in advance

    Returns:
        (PV, dPV/dk)
    """
    k = np.float64(k)
    pv = np.float64(0.0)
    pv_dif = np.float64(0.0)
    interval_end = 0.0
    shift = 0 if advance else 1
    for period in periods:
        terms = period.terms
        if not isinstance(terms, AnnuityTerms):
            raise TypeError("annuity_stream_value expects annuity rows")
        payment = period.payment + period.periodic_fee
        interval_start = interval_end
        interval_end += terms.term_count
        s = interval_start + shift
        e = interval_end + shift
        b = np.power(k, s) - np.power(k, e)
        pv += payment / (1 - k) * b
        pv_dif += (payment / np.power(1 - k, 2)) * b \
            + (payment / (1 - k)) * (s * np.power(k, s - 1) - e * np.power(k, e - 1))
    n = total_terms - 1 + shift
    pv += residue * np.power(k, n)
    pv_dif += residue * n * np.power(k, n - 1)
    return pv, pv_dif


def solve_annuity_rate(
        periods: list[SchedulePeriod],
        received: float,
        residue: float,
        total_terms: float,
        k0: float,
        advance: bool = False,
        tolerance: float = ANNUITY_TOLERANCE
) -> NewtonResult:
    """
    Discount factor at which the rows (plus residue) are worth `received`.

    Shared by annuity loans and the regulatory credit-card rate.
    """
    def func(k: float) -> tuple[float, float]:
        pv, pv_dif = annuity_stream_value(periods, k, residue, total_terms, advance)
        return pv - received, pv_dif

    logger.debug("Solving %d annuity row(s) for received=%.2f, k0=%.10f", len(periods), received, k0)
    result = newton_solve(func, k0, tolerance)
    return retry_exhausted(result, lambda k: func(k)[0], label="annuity present value")
