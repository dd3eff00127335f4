# Requires Python 3.12+
from __future__ import annotations

from enum import IntEnum

__version__ = "0.1.0"


class ErrorCode(IntEnum):
    """
    Failure codes returned to callers. The integer values are stable and are
    what external callers record per input row.
    """
    INTEREST_PERIOD_TOO_LONG = -1
    FIRST_SEGMENT_NOT_DEFINED = -2
    BALLOON_TOO_SMALL = -3
    BALLOON_TOO_BIG = -4
    NO_SEGMENT_FOUND = -5
    FAILING_CONVERGENCE = -6
    UNSUPPORTED_COMBINATION_ADVANCE = -7
    PAYMENT_TOO_SMALL = -8
    UNSUPPORTED_COMBINATION_PERIODIC = -9
    EFFECTIVE_RATE_WAS_NAN = -10
    ANNUITY_FALL_BELOW_MIN_PAYMENT = -11
    PARAMETER_MISSING = -12
    PARAMETER_INVALID = -13

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INTEREST_PERIOD_TOO_LONG:
        "Request for longer interest-only period than the bank offers",
    ErrorCode.FIRST_SEGMENT_NOT_DEFINED:
        "First loan segment not defined",
    ErrorCode.BALLOON_TOO_SMALL:
        "Balloon smaller than smallest loan offered",
    ErrorCode.BALLOON_TOO_BIG:
        "Balloon bigger than biggest loan offered",
    ErrorCode.NO_SEGMENT_FOUND:
        "No segment found (normally because the requested loan amount is too small or too big)",
    ErrorCode.FAILING_CONVERGENCE:
        "Failing convergence at zero periods or -100% nominal interest rate",
    ErrorCode.UNSUPPORTED_COMBINATION_ADVANCE:
        "Freeloan does not support the combination of separate, concurrent interest rate segments and annuities in advance",
    ErrorCode.PAYMENT_TOO_SMALL:
        "The chosen periodic payment is too small to cover the interest on the loan",
    ErrorCode.UNSUPPORTED_COMBINATION_PERIODIC:
        "The combination of separate, concurrent interest rate segments and user chosen periodic payment is not supported",
    ErrorCode.EFFECTIVE_RATE_WAS_NAN:
        "After the calculations effective interest rate was NaN",
    ErrorCode.ANNUITY_FALL_BELOW_MIN_PAYMENT:
        "With the chosen payback time, the annuity will fall below the required minimum payment",
    ErrorCode.PARAMETER_MISSING:
        "Parameter missing: ",
    ErrorCode.PARAMETER_INVALID:
        "Parameter invalid: ",
}


class FreeCalcError(ValueError):
    """
    Terminal failure of a loan or card computation.

    Attributes:
        code: The ErrorCode describing the failure
        detail: Field name(s) for PARAMETER_MISSING / PARAMETER_INVALID
    """

    def __init__(self, code: ErrorCode, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        message = code.message
        if detail is not None:
            message += detail
        super().__init__(message)

    @property
    def err_num(self) -> int:
        return int(self.code)


class ConfigError(FreeCalcError):
    """
    Raised by a configuration dataclass that cannot be used.

    Every problem is collected before raising, so one error lists all
    missing fields and all invalid ones.
    """

    def __init__(self, missing: list[str], invalid: list[str] | None = None) -> None:
        self.missing = list(missing)
        self.invalid = list(invalid or [])
        if self.missing:
            code = ErrorCode.PARAMETER_MISSING
            detail = ", ".join(self.missing)
            if self.invalid:
                detail += "; invalid: " + ", ".join(self.invalid)
        else:
            code = ErrorCode.PARAMETER_INVALID
            detail = ", ".join(self.invalid)
        super().__init__(code, detail)
