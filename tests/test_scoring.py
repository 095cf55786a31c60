import unittest

from cld_loops.pipeline.scoring import composite_value, factor_frequency, round3, score_loops
from cld_loops.types import ScoringCoefficients

WEIGHTS = {
    ("A", "B"): 2.0,
    ("B", "A"): 0.5,
    ("B", "C"): 2.0,
    ("C", "A"): 1.0,
}
CYCLES = [["A", "B"], ["A", "B", "C"]]


def weight(a, b):
    return WEIGHTS.get((a, b), 0.0)


class HelperTests(unittest.TestCase):
    def test_round3_is_half_up(self):
        self.assertEqual(round3(2.0625), 2.063)
        self.assertEqual(round3(2.5), 2.5)
        self.assertEqual(round3(0.1234), 0.123)
        self.assertIsNone(round3(float("inf")))
        self.assertIsNone(round3(None))

    def test_factor_frequency(self):
        self.assertEqual(factor_frequency(CYCLES), {"A": 2, "B": 2, "C": 1})

    def test_composite_value_includes_wrap_around(self):
        self.assertAlmostEqual(composite_value(["A", "B", "C"], weight), 4.0)
        self.assertAlmostEqual(composite_value(["A", "B"], weight), 1.0)

    def test_non_finite_weight_counts_as_one(self):
        self.assertAlmostEqual(composite_value(["A", "B"], lambda a, b: float("nan")), 1.0)


class ScoreLoopsTests(unittest.TestCase):
    def test_pipeline_values(self):
        short, long_ = score_loops(CYCLES, weight, steering_factors={"C"})

        self.assertEqual(short.raw_composite_value, 1.0)
        self.assertEqual(short.adjusted_composite_value, 1.0)
        self.assertEqual(long_.raw_composite_value, 4.0)
        self.assertEqual(long_.adjusted_composite_value, 1.587)

        self.assertEqual(short.normalized_composite_value, 0.63)
        self.assertEqual(long_.normalized_composite_value, 1.0)

        self.assertEqual(short.steering_factor_count, 0)
        self.assertEqual(short.normalized_steering_factor_count, 0.0)
        self.assertEqual(long_.steering_factor_count, 1)
        self.assertEqual(long_.normalized_steering_factor_count, 1.0)

        self.assertEqual(short.total_overlap, 4)
        self.assertEqual(long_.total_overlap, 5)
        self.assertEqual(short.normalized_overlap, 0.8)
        self.assertEqual(long_.normalized_overlap, 1.0)

        self.assertAlmostEqual(short.adjusted_independent_value, 1.6)
        self.assertAlmostEqual(long_.adjusted_independent_value, 3.0)
        self.assertEqual(short.normalized_adjusted_independent_value, 0.533)
        self.assertEqual(long_.normalized_adjusted_independent_value, 1.0)

        self.assertEqual(short.conditional_independence_value, 0.8)
        self.assertAlmostEqual(short.weighted_loop_value, 143.0)
        self.assertAlmostEqual(long_.weighted_loop_value, 300.0)
        self.assertAlmostEqual(short.normalized_weighted_loop_value, 47.667)
        self.assertEqual(long_.normalized_weighted_loop_value, 100.0)

    def test_adjusted_independence_toggle(self):
        short, long_ = score_loops(CYCLES, weight, steering_factors={"C"}, use_adjusted_independence=True)
        self.assertEqual(short.conditional_independence_value, 0.533)
        self.assertAlmostEqual(short.weighted_loop_value, 116.3)
        self.assertAlmostEqual(short.normalized_weighted_loop_value, 38.767)
        self.assertEqual(long_.normalized_weighted_loop_value, 100.0)

    def test_higher_overlap_raises_independence_value(self):
        short, long_ = score_loops(CYCLES, weight)
        self.assertGreater(long_.total_overlap, short.total_overlap)
        self.assertGreater(long_.conditional_independence_value, short.conditional_independence_value)

    def test_coefficients(self):
        coefficients = ScoringCoefficients(composite=2, steer=0, independence=0)
        short, long_ = score_loops(CYCLES, weight, steering_factors={"C"}, coefficients=coefficients)
        self.assertAlmostEqual(short.weighted_loop_value, 126.0)
        self.assertAlmostEqual(long_.weighted_loop_value, 200.0)
        self.assertAlmostEqual(short.normalized_weighted_loop_value, 63.0)

    def test_empty_steering_set_gives_none(self):
        scores = score_loops(CYCLES, weight)
        for score in scores:
            self.assertEqual(score.steering_factor_count, 0)
            self.assertIsNone(score.normalized_steering_factor_count)

    def test_zero_weights_give_none_not_nan(self):
        scores = score_loops(CYCLES, lambda a, b: 0.0)
        for score in scores:
            self.assertEqual(score.raw_composite_value, 0.0)
            self.assertEqual(score.adjusted_composite_value, 0.0)
            self.assertIsNone(score.normalized_composite_value)
            self.assertIsNotNone(score.normalized_weighted_loop_value)

    def test_all_zero_weighted_values(self):
        coefficients = ScoringCoefficients(composite=0, steer=0, independence=0)
        for score in score_loops(CYCLES, weight, coefficients=coefficients):
            self.assertEqual(score.weighted_loop_value, 0.0)
            self.assertIsNone(score.normalized_weighted_loop_value)

    def test_negative_product_uses_magnitude(self):
        (score,) = score_loops([["A", "B"]], lambda a, b: -2.0 if a == "A" else 2.0)
        self.assertEqual(score.raw_composite_value, -4.0)
        self.assertEqual(score.adjusted_composite_value, 2.0)
        self.assertEqual(score.normalized_composite_value, 1.0)

    def test_no_loops(self):
        self.assertEqual(score_loops([], weight), [])


if __name__ == "__main__":
    unittest.main()
