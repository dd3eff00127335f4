"""
Unit tests for credit-card rates.

Version: 0.1.0
Status: Active

================================================================================
REFERENCE CARD
================================================================================

    10,000 of purchases repaid over 12 months at 15% nominal (20% on cash),
    minimum payment 3% of the balance and at least 100.

    Government rate:  the rounded monthly annuity from the end of month one,
                      ≈ 1.0125^12 - 1 = 16.0755%
    Realistic rate:   the same debt with the bill due 15 days after the end
                      of the first month, so strictly below the government
                      rate

================================================================================
"""

import unittest

from freecalc.card import _realistic_value, card_rates
from freecalc.errors import ErrorCode, FreeCalcError
from tests.utilities import (
    make_card,
    oracle_effective_rate,
    reference_effective_rate,
    rounded_reference_annuity,
)

# =============================================================================
# Test Parameters
# =============================================================================

RATE_DELTA: float = 0.01
DECIMAL_PLACES_FOR_ASSERTIONS: int = 4


# =============================================================================
# Test Classes
# =============================================================================

class TestReferenceCard(unittest.TestCase):

    def setUp(self):
        self.result = card_rates(make_card())

    def test_government_payment(self):
        self.assertEqual(self.result.government_monthly_payment, rounded_reference_annuity(10_000.0, 15.0, 12))

    def test_government_rate(self):
        self.assertAlmostEqual(self.result.government_effective_rate, reference_effective_rate(15.0),
                               delta=RATE_DELTA)
        self.assertGreater(self.result.government_rounds, 0)

    def test_government_rate_matches_oracle(self):
        flows = [(float(t), self.result.government_monthly_payment) for t in range(1, 13)]
        expected = oracle_effective_rate(flows, 10_000.0)
        self.assertAlmostEqual(self.result.government_effective_rate, expected,
                               places=DECIMAL_PLACES_FOR_ASSERTIONS)

    def test_interest_free_period_lowers_rate(self):
        self.assertGreater(self.result.effective_rate, 0.0)
        self.assertLess(self.result.effective_rate, self.result.government_effective_rate)
        self.assertLess(self.result.monthly_payment, self.result.government_monthly_payment)
        self.assertTrue(self.result.converged)

    def test_remainder_is_small(self):
        self.assertLess(abs(self.result.remainder), 1.0)


class TestCardTerms(unittest.TestCase):

    def test_longer_interest_free_period(self):
        default = card_rates(make_card())
        longer = card_rates(make_card(interest_free_days=50))
        self.assertLess(longer.effective_rate, default.effective_rate)
        self.assertEqual(longer.government_effective_rate, default.government_effective_rate)

    def test_annual_fee_raises_rates(self):
        default = card_rates(make_card())
        with_fee = card_rates(make_card(fee_annual=100.0))
        self.assertGreater(with_fee.government_monthly_payment, default.government_monthly_payment)
        self.assertGreater(with_fee.government_effective_rate, default.government_effective_rate)
        self.assertGreater(with_fee.effective_rate, default.effective_rate)

    def test_cash_only(self):
        result = card_rates(make_card(received_purchase=0.0, received_cash=5_000.0))
        self.assertAlmostEqual(result.government_effective_rate, reference_effective_rate(20.0), delta=RATE_DELTA)
        # cash withdrawals get no interest-free period
        self.assertGreater(result.monthly_payment, result.government_monthly_payment)

    def test_transaction_fees_raise_rate(self):
        default = card_rates(make_card())
        with_fee = card_rates(make_card(fee_purc_transaction=200.0))
        self.assertGreater(with_fee.government_effective_rate, default.government_effective_rate)

    def test_ignore_remainder(self):
        result = card_rates(make_card(ignore_remainder=True))
        self.assertEqual(result.remainder, 0.0)


class TestRealisticStream(unittest.TestCase):
    """The realistic rate against an independent solve of the delayed stream."""

    def _oracle(self, result, extra_months: float) -> float:
        flows = [(t + extra_months, result.monthly_payment) for t in range(1, 13)]
        flows.append((12 + extra_months, result.remainder))
        return oracle_effective_rate(flows, 10_000.0)

    def test_realistic_rate_matches_oracle(self):
        cases = [
            (0, 15 / 30),    # bill due 45 days after the start of the month
            (50, 20 / 30),
        ]
        for interest_free_days, extra_months in cases:
            with self.subTest(interest_free_days=interest_free_days):
                result = card_rates(make_card(interest_free_days=interest_free_days))
                self.assertAlmostEqual(result.effective_rate, self._oracle(result, extra_months),
                                       places=DECIMAL_PLACES_FOR_ASSERTIONS)

    def test_derivative_matches_finite_difference(self):
        h = 1e-7
        for k in (0.95, 1 / 1.0125, 0.999):
            for remainder in (0.0, 0.37):
                with self.subTest(k=k, remainder=remainder):
                    _, slope = _realistic_value(k, 891.44, remainder, 12, 0.5, 10_000.0)
                    y_up, _ = _realistic_value(k + h, 891.44, remainder, 12, 0.5, 10_000.0)
                    y_down, _ = _realistic_value(k - h, 891.44, remainder, 12, 0.5, 10_000.0)
                    numeric = (y_up - y_down) / (2 * h)
                    self.assertAlmostEqual(slope / numeric, 1.0, delta=1e-5)

    def test_value_at_solved_rate_is_zero(self):
        result = card_rates(make_card())
        k = (1 + result.effective_rate / 100) ** (-1 / 12)
        y, _ = _realistic_value(k, result.monthly_payment, result.remainder, 12, 0.5, 10_000.0)
        self.assertLess(abs(y), 1e-3)


class TestErrors(unittest.TestCase):

    def test_minimum_payment_not_cleared(self):
        cases = [
            {'minpay_units': 1_000.0},
            {'minpay_perc': 10.0},
        ]
        for overrides in cases:
            with self.subTest(**overrides):
                with self.assertRaises(FreeCalcError) as ctx:
                    card_rates(make_card(**overrides))
                self.assertEqual(ctx.exception.code, ErrorCode.ANNUITY_FALL_BELOW_MIN_PAYMENT)
                self.assertEqual(ctx.exception.err_num, -11)

    def test_zero_rate_is_nan(self):
        with self.assertRaises(FreeCalcError) as ctx:
            card_rates(make_card(rate_purchase=0.0))
        self.assertEqual(ctx.exception.code, ErrorCode.EFFECTIVE_RATE_WAS_NAN)


if __name__ == '__main__':
    unittest.main()
