# Requires Python 3.12+
# Uses native type hints: list[x], tuple[x, y], X | None (PEP 585, PEP 604)
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from freecalc.errors import ConfigError, ErrorCode, FreeCalcError
from freecalc.rounding import Accuracy, RoundingPolicy
from freecalc.segments import RateSegment, normalize_segments

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

DEFAULT_CAPITALIZATION = 12


# =============================================================================
# Loans (annuity and serial)
# =============================================================================

@dataclass
class LoanConfig:
    """
    Loan request together with the lender's product terms.

    Exactly one of `number_of_periods` (period mode) and `first_payment`
    (payment mode) selects what is solved for. A first payment of 0 counts
    as not given.

    Rates are annual percentages. Fee percentages are percentages too
    (fee_percentage=1.0 means 1%).

    Raises:
        ConfigError: listing every missing or invalid field
    """
    received: float | None = None     # net amount paid out to the borrower
    segments: list[RateSegment] = field(default_factory=list)
    number_of_periods: int | None = None
    first_payment: float | None = None
    periods_per_year: int = 12
    capitalization_freq: int = DEFAULT_CAPITALIZATION  # 0 means monthly
    balloon: float = 0.0              # residual settled with the last payment
    interest_only_periods: int = 0
    interest_only_periods_max: int = 0  # longest interest-only period offered
    annuity_due: bool = False         # payments in advance
    rounding: RoundingPolicy = field(default_factory=RoundingPolicy)
    ignore_remainder: bool = False
    ignore_origination: bool = False  # leave origination fees out of the principal
    fee_processing: float = 0.0
    fee_document: float = 0.0
    fee_percentage: float = 0.0       # origination fee, % of received + document fee
    fee_period_perc: float = 0.0      # per-period fee, % of the principal
    rate_thresholds: bool = False     # rate changes as principal crosses limits
    rate_segments: bool = False       # segments accrue interest concurrently
    accuracy: Accuracy = Accuracy.NORMAL

    def __post_init__(self) -> None:
        """Collect every problem before raising."""
        missing: list[str] = []
        invalid: list[str] = []

        if self.received is None:
            missing.append("received")
        elif self.received <= 0:
            invalid.append(f"received (must be positive, got {self.received})")

        if self.first_payment == 0:
            self.first_payment = None
        if self.number_of_periods is None and self.first_payment is None:
            missing.append("number_of_periods or first_payment")
        elif self.number_of_periods is not None and self.first_payment is not None:
            invalid.append("number_of_periods and first_payment are mutually exclusive")
        elif self.number_of_periods is not None and self.number_of_periods <= 0:
            invalid.append(f"number_of_periods (must be positive, got {self.number_of_periods})")
        elif self.first_payment is not None and self.first_payment < 0:
            invalid.append(f"first_payment (must be positive, got {self.first_payment})")

        if self.periods_per_year <= 0:
            invalid.append(f"periods_per_year (must be positive, got {self.periods_per_year})")
        if self.capitalization_freq < 0:
            invalid.append(f"capitalization_freq (must be non-negative, got {self.capitalization_freq})")
        if self.balloon < 0:
            invalid.append(f"balloon (must be non-negative, got {self.balloon})")
        if self.interest_only_periods < 0:
            invalid.append(f"interest_only_periods (must be non-negative, got {self.interest_only_periods})")
        for name in ("fee_processing", "fee_document", "fee_percentage", "fee_period_perc"):
            if getattr(self, name) < 0:
                invalid.append(f"{name} (must be non-negative, got {getattr(self, name)})")
        if not all(isinstance(s, RateSegment) for s in self.segments):
            invalid.append("segments (every entry must be a RateSegment)")

        if missing or invalid:
            raise ConfigError(missing, invalid)
        self.segments = list(self.segments)

    @property
    def is_payment_mode(self) -> bool:
        return self.first_payment is not None

    @property
    def capitalization(self) -> int:
        """Capitalizations per year (0 falls back to monthly)."""
        return self.capitalization_freq or DEFAULT_CAPITALIZATION

    @property
    def rate_divisor(self) -> int:
        """Turns an annual percentage into a rate per capitalization period."""
        return 100 * self.capitalization

    @property
    def principal(self) -> float:
        """
        Amount the borrower owes at the start.

        Origination fees are added to what the borrower receives unless
        `ignore_origination` is set:

            principal = (received + fee_document) * (100 + fee_percentage) / 100
                        + fee_processing
        """
        if self.ignore_origination:
            return self.received
        return (self.received + self.fee_document) * (100 + self.fee_percentage) / 100 + self.fee_processing

    def periodic_percentage_fee(self, base: float | None = None) -> float:
        """Per-period fee charged as a percentage of `base` (default: the principal)."""
        if self.fee_period_perc <= 0:
            return 0.0
        return (self.principal if base is None else base) * self.fee_period_perc / 100

    def check_product_terms(self) -> list[RateSegment]:
        """
        Reject requests the lender's product cannot serve.

        Returns:
            The normalized segment ladder (gaps closed, first lower limit 0)

        Raises:
            FreeCalcError: INTEREST_PERIOD_TOO_LONG, FIRST_SEGMENT_NOT_DEFINED,
                BALLOON_TOO_SMALL, BALLOON_TOO_BIG or
                UNSUPPORTED_COMBINATION_PERIODIC
        """
        if self.interest_only_periods > 0:
            if self.interest_only_periods_max == 0 or self.interest_only_periods > self.interest_only_periods_max:
                raise FreeCalcError(ErrorCode.INTEREST_PERIOD_TOO_LONG)
        if not self.segments:
            raise FreeCalcError(ErrorCode.FIRST_SEGMENT_NOT_DEFINED)
        if self.balloon < self.segments[0].lower_limit:
            raise FreeCalcError(ErrorCode.BALLOON_TOO_SMALL)
        top = self.segments[-1]
        if top.upper_limit is not None and top.upper_limit > 0 and self.balloon > top.upper_limit:
            raise FreeCalcError(ErrorCode.BALLOON_TOO_BIG)
        if self.is_payment_mode and self.rate_segments:
            raise FreeCalcError(ErrorCode.UNSUPPORTED_COMBINATION_PERIODIC)
        segments = normalize_segments(self.segments)
        logger.debug("Product terms accepted: %d segment(s), principal %.2f", len(segments), self.principal)
        return segments


# =============================================================================
# Credit cards
# =============================================================================

_CARD_MANDATORY = ("number_of_months", "rate_cash", "rate_purchase", "minpay_perc", "minpay_units")


@dataclass
class CardConfig:
    """
    Credit-card usage and the card's price terms.

    Interest rates are nominal annual percentages. Cash withdrawals and
    purchases carry separate rates. The minimum payment is both a percentage
    of the initial balance and an absolute amount, and the computed annuity
    must clear both.

    Raises:
        ConfigError: PARAMETER_MISSING naming every absent mandatory field
    """
    number_of_months: int | None = None
    rate_cash: float | None = None
    rate_purchase: float | None = None
    minpay_perc: float | None = None
    minpay_units: float | None = None
    received_cash: float = 0.0
    received_purchase: float = 0.0
    interest_free_days: int = 0
    rounding: RoundingPolicy = field(default_factory=RoundingPolicy)
    ignore_remainder: bool = False
    fee_cash_transaction: float = 0.0
    fee_purc_transaction: float = 0.0
    fee_origination: float = 0.0
    fee_annual: float = 0.0
    fee_period: float = 0.0

    def __post_init__(self) -> None:
        missing: list[str] = []
        invalid: list[str] = []
        if not self.received_cash and not self.received_purchase:
            missing.append("received_cash and/or received_purchase")
        for name in _CARD_MANDATORY:
            if getattr(self, name) is None:
                missing.append(name)
        if self.number_of_months is not None and self.number_of_months <= 0:
            invalid.append(f"number_of_months (must be positive, got {self.number_of_months})")
        if self.interest_free_days < 0:
            invalid.append(f"interest_free_days (must be non-negative, got {self.interest_free_days})")
        if missing or invalid:
            raise ConfigError(missing, invalid)

    @property
    def received(self) -> float:
        return self.received_cash + self.received_purchase

    @property
    def loan_purchase(self) -> float:
        return self.received_purchase + self.fee_purc_transaction

    @property
    def loan_cash(self) -> float:
        return self.received_cash + self.fee_cash_transaction + self.fee_origination
