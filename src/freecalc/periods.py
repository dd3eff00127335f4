# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__version__ = "0.1.0"


# =============================================================================
# Schedule rows
# =============================================================================

class PeriodKind(Enum):
    """Loan shape a schedule row belongs to."""
    ANNUITY = "annuity"
    SERIAL = "serial"


@dataclass
class AnnuityTerms:
    """
    Payload of an annuity row. One row spans every period paid at the same
    rate, so a whole segment of the price ladder is a single row.
    """
    term_count: float         # periods the row spans (may be fractional in payment mode)
    principal_floor: float    # principal left when the row ends
    principal_ceiling: float  # principal when the row starts
    remainder: float = 0.0    # unrounded - rounded payment
    is_grace: bool = False    # interest-only row


@dataclass
class SerialTerms:
    """Payload of a serial-loan row (one row per period)."""
    installment: float  # principal repaid by this period's payment


@dataclass
class SchedulePeriod:
    """
    One row of an amortization schedule.

    `payment` is the rounded amount excluding `periodic_fee`. The
    shape-specific fields live in `terms`.
    """
    payment: float
    periodic_fee: float
    terms: AnnuityTerms | SerialTerms

    @property
    def kind(self) -> PeriodKind:
        if isinstance(self.terms, AnnuityTerms):
            return PeriodKind.ANNUITY
        return PeriodKind.SERIAL

    @property
    def gross_payment(self) -> float:
        """What the borrower actually pays in the period."""
        return self.payment + self.periodic_fee


def annuity_period(
        payment: float,
        term_count: float,
        principal_floor: float,
        principal_ceiling: float,
        remainder: float = 0.0,
        periodic_fee: float = 0.0,
        is_grace: bool = False
) -> SchedulePeriod:
    """Build an annuity row."""
    return SchedulePeriod(
        payment=payment,
        periodic_fee=periodic_fee,
        terms=AnnuityTerms(
            term_count=term_count,
            principal_floor=principal_floor,
            principal_ceiling=principal_ceiling,
            remainder=remainder,
            is_grace=is_grace,
        ),
    )


def serial_period(payment: float, installment: float, periodic_fee: float = 0.0) -> SchedulePeriod:
    """Build a serial-loan row."""
    return SchedulePeriod(payment=payment, periodic_fee=periodic_fee, terms=SerialTerms(installment))


# =============================================================================
# Results
# =============================================================================

@dataclass
class LoanResult:
    """
    Outcome of an annuity or serial loan computation.

    `periods` is in time order. For annuity loans `residue` is the global
    remainder settled with the last payment. For serial loans it is the
    remainder of the final period.
    """
    effective_rate: float          # effective annual rate in percent
    rounds: int                    # solver iterations
    payback_period_count: float
    periods: list[SchedulePeriod]
    residue: float
    shape: PeriodKind
    converged: bool = True
    method: str = "newton"

    @property
    def grace_periods(self) -> float:
        return sum(
            p.terms.term_count for p in self.periods
            if isinstance(p.terms, AnnuityTerms) and p.terms.is_grace
        )

    @property
    def amortizing_periods(self) -> list[SchedulePeriod]:
        """Rows that repay principal (grace row excluded)."""
        return [
            p for p in self.periods
            if not (isinstance(p.terms, AnnuityTerms) and p.terms.is_grace)
        ]


@dataclass
class CardResult:
    """
    Outcome of a credit-card computation.

    The government rate assumes everything is drawn on day one and repaid
    by ordinary monthly annuities. The realistic rate accounts for the
    interest-free period.
    """
    government_effective_rate: float
    government_monthly_payment: float
    effective_rate: float
    monthly_payment: float
    remainder: float
    rounds: int = 0
    converged: bool = True
    government_rounds: int = 0
