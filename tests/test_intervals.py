"""
Unit tests for the segment-interval solvers.

Version: 0.1.0
Status: Active

================================================================================
CONTEXT
================================================================================

interval_length() answers "how many payments until the principal crosses the
segment's lower limit, and where does it land". With lower limit 0 a row
spans the whole remaining horizon and reproduces the plain annuity.

interval_length_concurrent() does the same for segments that accrue interest
at the same time. Installments come out of the top segment only, so the row
ends close to the top segment's lower limit.

================================================================================
"""

import math
import unittest

from freecalc.errors import ErrorCode, FreeCalcError
from freecalc.intervals import interval_length, interval_length_concurrent, periods_to_pay_down
from freecalc.periods import PeriodKind
from freecalc.segments import RateSegment
from tests.utilities import reference_annuity, rounded_reference_annuity

# =============================================================================
# Test Parameters
# =============================================================================

DECIMAL_PLACES_FOR_ASSERTIONS: int = 6
RATE_DIVISOR: int = 1200

# (principal, annual rate, periods)
SINGLE_ROW_CASES: list[tuple[float, float, int]] = [
    (100_000.0, 6.0, 12),
    (250_000.0, 4.5, 120),
    (1_000_000.0, 3.2, 360),
    (15_000.0, 11.9, 36),
]


# =============================================================================
# Test Classes
# =============================================================================

class TestPeriodsToPayDown(unittest.TestCase):

    def test_inverts_the_annuity(self):
        for principal, rate, periods in SINGLE_ROW_CASES:
            with self.subTest(principal=principal, rate=rate, periods=periods):
                annuity = reference_annuity(principal, rate, periods)
                n = periods_to_pay_down(principal, annuity, rate / RATE_DIVISOR)
                self.assertAlmostEqual(n, periods, places=DECIMAL_PLACES_FOR_ASSERTIONS)

    def test_inverts_the_annuity_due(self):
        for principal, rate, periods in SINGLE_ROW_CASES:
            with self.subTest(principal=principal, rate=rate, periods=periods):
                annuity_due = reference_annuity(principal, rate, periods) / (1 + rate / RATE_DIVISOR)
                n = periods_to_pay_down(principal, annuity_due, rate / RATE_DIVISOR, due=True)
                self.assertAlmostEqual(n, periods, places=DECIMAL_PLACES_FOR_ASSERTIONS)

    def test_interest_only_payment_is_nan(self):
        self.assertTrue(math.isnan(periods_to_pay_down(100_000.0, 400.0, 0.005)))


class TestIntervalLength(unittest.TestCase):

    def test_single_row_reproduces_annuity(self):
        for principal, rate, periods in SINGLE_ROW_CASES:
            with self.subTest(principal=principal, rate=rate, periods=periods):
                row = interval_length(principal, rate, 0.0, periods, RATE_DIVISOR)
                self.assertIs(row.kind, PeriodKind.ANNUITY)
                self.assertAlmostEqual(row.payment, rounded_reference_annuity(principal, rate, periods), places=2)
                self.assertEqual(row.terms.term_count, periods)
                self.assertEqual(row.terms.principal_ceiling, principal)
                # rounding leaves at most a cent per payment, grown with interest
                self.assertLess(abs(row.terms.principal_floor), 0.005 * periods * 3)
                unrounded = reference_annuity(principal, rate, periods)
                self.assertAlmostEqual(row.terms.remainder, unrounded - row.payment, places=4)

    def test_closed_form_example(self):
        row = interval_length(100_000.0, 6.0, 0.0, 12, RATE_DIVISOR)
        self.assertEqual(row.payment, 8606.64)
        self.assertGreater(row.terms.remainder, 0.0)
        self.assertLess(row.terms.remainder, 0.005)
        self.assertGreater(row.terms.principal_floor, 0.0)
        self.assertLess(row.terms.principal_floor, 0.05)

    def test_advance_payment(self):
        row = interval_length(100_000.0, 6.0, 0.0, 12, RATE_DIVISOR, advance=True)
        expected = reference_annuity(100_000.0, 6.0, 12) / 1.005
        self.assertAlmostEqual(row.payment, round(expected, 2), places=2)
        self.assertEqual(row.terms.term_count, 12)

    def test_threshold_is_crossed_not_undershot(self):
        upper, lower = 1_000_000.0, 500_000.0
        row = interval_length(upper, 4.0, lower, 240, RATE_DIVISOR)
        self.assertEqual(row.terms.term_count, math.floor(row.terms.term_count))
        self.assertGreater(row.terms.term_count, 0)
        self.assertLess(row.terms.term_count, 240)
        self.assertLessEqual(row.terms.principal_floor, lower + 1.0)
        self.assertGreater(row.terms.principal_floor, lower - row.payment - 1.0)

    def test_balloon_interest_changes_true_annuity(self):
        plain = interval_length(60_000.0, 6.0, 0.0, 12, RATE_DIVISOR)
        with_balloon = interval_length(60_000.0, 6.0, 0.0, 12, RATE_DIVISOR, interest_amount_res=200.004)
        # the charged annuity itself is unchanged, only the floor moves
        self.assertEqual(plain.payment, with_balloon.payment)
        self.assertNotEqual(plain.terms.principal_floor, with_balloon.terms.principal_floor)

    def test_poles_raise(self):
        cases = [
            {'periods': 0, 'advance': False, 'rate': 6.0},
            {'periods': 1, 'advance': True, 'rate': 6.0},
            {'periods': 12, 'advance': False, 'rate': -1300.0},
        ]
        for case in cases:
            with self.subTest(**case):
                with self.assertRaises(FreeCalcError) as ctx:
                    interval_length(100_000.0, case['rate'], 0.0, case['periods'], RATE_DIVISOR,
                                    advance=case['advance'])
                self.assertEqual(ctx.exception.code, ErrorCode.FAILING_CONVERGENCE)

    def test_zero_rate_is_nan(self):
        row = interval_length(100_000.0, 0.0, 0.0, 12, RATE_DIVISOR)
        self.assertTrue(math.isnan(row.payment))


class TestIntervalLengthConcurrent(unittest.TestCase):

    def test_single_segment_matches_sequential(self):
        segments = [RateSegment(annual_interest=6.0, upper_limit=100_000.0)]
        row = interval_length_concurrent(segments, 0, 12, RATE_DIVISOR)
        sequential = interval_length(100_000.0, 6.0, 0.0, 12, RATE_DIVISOR)
        self.assertEqual(row.payment, sequential.payment)
        self.assertEqual(row.terms.term_count, 12)
        self.assertLess(abs(row.terms.principal_floor), 0.05)

    def test_top_segment_is_used_up(self):
        segments = [
            RateSegment(annual_interest=3.0, upper_limit=100_000.0),
            RateSegment(annual_interest=5.0, lower_limit=100_000.0, upper_limit=300_000.0),
        ]
        row = interval_length_concurrent(segments, 1, 120, RATE_DIVISOR)
        expected_payment = reference_annuity(100_000.0, 3.0, 120) + reference_annuity(200_000.0, 5.0, 120)
        self.assertAlmostEqual(row.payment, round(expected_payment, 2), places=2)
        self.assertGreater(row.terms.term_count, 0)
        self.assertLess(row.terms.term_count, 120)
        self.assertEqual(row.terms.principal_ceiling, 300_000.0)
        # the lower segment keeps accruing on its full width, so the top
        # segment is overpaid slightly and the floor lands below 100,000
        self.assertLess(row.terms.principal_floor, 100_000.0 + row.payment)
        self.assertGreater(row.terms.principal_floor, 80_000.0)

    def test_floor_replays_the_row_payments(self):
        segments = [
            RateSegment(annual_interest=3.0, upper_limit=100_000.0),
            RateSegment(annual_interest=5.0, lower_limit=100_000.0, upper_limit=300_000.0),
        ]
        row = interval_length_concurrent(segments, 1, 120, RATE_DIVISOR)
        self.assertEqual(row.terms.term_count, math.floor(row.terms.term_count))

        # top segment balance after each of the row's payments
        top = 200_000.0
        lower_interest = 100_000.0 * 3.0 / RATE_DIVISOR
        for _ in range(int(row.terms.term_count)):
            top -= row.payment - (top * 5.0 / RATE_DIVISOR + lower_interest)
        self.assertAlmostEqual(row.terms.principal_floor, 100_000.0 + top,
                               places=DECIMAL_PLACES_FOR_ASSERTIONS)

    def test_unbounded_segment_rejected(self):
        segments = [RateSegment(annual_interest=6.0)]
        with self.assertRaises(ValueError):
            interval_length_concurrent(segments, 0, 12, RATE_DIVISOR)


if __name__ == '__main__':
    unittest.main()
