"""
Unit tests for payment rounding and serial-loan accuracy levels.

Version: 0.1.0
Status: Active

================================================================================
CONVENTIONS
================================================================================

    NORMAL rounds half away from the unit below (ties go up), UP is a
    ceiling and DOWN a floor, applied at cent or whole-unit precision.

    Non-finite amounts pass through unchanged so that a NaN schedule ends
    in EFFECTIVE_RATE_WAS_NAN rather than a rounding error.

================================================================================
"""

import math
import unittest

from freecalc.rounding import (
    Accuracy,
    RoundDirection,
    RoundingPolicy,
    RoundPrecision,
    round_half_up,
    roundoff,
)

# =============================================================================
# Test Parameters
# =============================================================================

DECIMAL_PLACES_FOR_ASSERTIONS: int = 10

# (amount, direction, precision, expected)
ROUNDING_CASES: list[tuple[float, RoundDirection, RoundPrecision, float]] = [
    (8606.6429, RoundDirection.NORMAL, RoundPrecision.CENT, 8606.64),
    (8606.6429, RoundDirection.UP, RoundPrecision.CENT, 8606.65),
    (8606.6429, RoundDirection.DOWN, RoundPrecision.CENT, 8606.64),
    (8606.6429, RoundDirection.NORMAL, RoundPrecision.INTEGER, 8607.0),
    (8606.6429, RoundDirection.UP, RoundPrecision.INTEGER, 8607.0),
    (8606.6429, RoundDirection.DOWN, RoundPrecision.INTEGER, 8606.0),
    (0.125, RoundDirection.NORMAL, RoundPrecision.CENT, 0.13),
    (2.5, RoundDirection.NORMAL, RoundPrecision.INTEGER, 3.0),
    (-2.5, RoundDirection.NORMAL, RoundPrecision.INTEGER, -2.0),
]


# =============================================================================
# Test Classes
# =============================================================================

class TestRoundoff(unittest.TestCase):
    """Direction x precision grid."""

    def test_rounding_grid(self):
        for amount, direction, precision, expected in ROUNDING_CASES:
            with self.subTest(amount=amount, direction=direction.name, precision=precision.name):
                self.assertAlmostEqual(
                    roundoff(amount, direction, precision), expected, places=DECIMAL_PLACES_FOR_ASSERTIONS
                )

    def test_policy_matches_roundoff(self):
        for amount, direction, precision, expected in ROUNDING_CASES:
            with self.subTest(amount=amount, direction=direction.name, precision=precision.name):
                policy = RoundingPolicy(direction, precision)
                self.assertEqual(policy.round(amount), roundoff(amount, direction, precision))

    def test_policy_scale(self):
        self.assertEqual(RoundingPolicy().scale, 100)
        self.assertEqual(RoundingPolicy(precision=RoundPrecision.INTEGER).scale, 1)

    def test_non_finite_passes_through(self):
        self.assertTrue(math.isnan(roundoff(math.nan)))
        self.assertEqual(roundoff(math.inf, RoundDirection.UP), math.inf)
        self.assertTrue(math.isnan(round_half_up(math.nan, 100)))


class TestRoundHalfUp(unittest.TestCase):

    def test_ties_go_up(self):
        self.assertEqual(round_half_up(0.5), 1.0)
        self.assertEqual(round_half_up(1.5), 2.0)
        self.assertEqual(round_half_up(-0.5), 0.0)

    def test_scale(self):
        self.assertAlmostEqual(round_half_up(40000.0449, 100), 40000.04, places=DECIMAL_PLACES_FOR_ASSERTIONS)
        self.assertAlmostEqual(round_half_up(40000.0451, 100), 40000.05, places=DECIMAL_PLACES_FOR_ASSERTIONS)


class TestAccuracy(unittest.TestCase):
    """Serial-loan convergence tolerance as a fraction of the principal."""

    def test_tolerances(self):
        principal = 1_000_000.0
        expected = {
            Accuracy.FAST: 200.0,
            Accuracy.NORMAL: 0.02,
            Accuracy.EXTREMELY_ACCURATE: 2e-8,
        }
        for accuracy, tolerance in expected.items():
            with self.subTest(accuracy=accuracy.name):
                self.assertAlmostEqual(accuracy.tolerance(principal), tolerance, places=12)

    def test_fast_is_whole_units(self):
        self.assertEqual(Accuracy.FAST.tolerance(123_456.0), 25.0)


if __name__ == '__main__':
    unittest.main()
