import math
import unittest

from band_normalizer import BandNormalizer, DEFAULT_ADJUSTMENT_FACTOR


class TestBandNormalizer(unittest.TestCase):
    def test_first_reading_uses_default_factor(self):
        norm = BandNormalizer()
        self.assertEqual(norm.factor, DEFAULT_ADJUSTMENT_FACTOR)
        self.assertAlmostEqual(norm.normalize(5.0), 0.5, places=9)
        self.assertEqual(norm.factor, DEFAULT_ADJUSTMENT_FACTOR)

    def test_overflow_tightens_once_then_holds(self):
        # 20 * 0.1 = 2 > 1, so the factor halves and later readings sit at exactly 1
        norm = BandNormalizer()
        gain = 1.5
        vals = [norm.normalize(20.0, gain) for _ in range(3)]

        self.assertEqual(vals, [gain, gain, gain])
        self.assertAlmostEqual(norm.factor, 0.05, places=12)

    def test_factor_never_loosens(self):
        norm = BandNormalizer()
        norm.normalize(40.0)
        tightened = norm.factor
        for raw in (0.0, 1.0, 3.0, 10.0):
            norm.normalize(raw)
            self.assertEqual(norm.factor, tightened)

    def test_preserves_relative_dynamics(self):
        norm = BandNormalizer()
        norm.normalize(20.0)
        quiet = norm.normalize(5.0)
        loud = norm.normalize(10.0)
        self.assertAlmostEqual(loud, 2 * quiet, places=9)

    def test_output_within_zero_and_gain(self):
        norm = BandNormalizer()
        gain = 2.0
        for raw in (0.0, 3.0, -12.0, 150.0, 1e9, 0.25, 7.0):
            val = norm.normalize(raw, gain)
            self.assertGreaterEqual(val, 0.0)
            self.assertLessEqual(val, gain)

    def test_negative_raw_uses_magnitude(self):
        norm = BandNormalizer()
        self.assertAlmostEqual(norm.normalize(-4.0), 0.4, places=9)

    def test_non_finite_raw_reads_as_zero(self):
        norm = BandNormalizer()
        self.assertEqual(norm.normalize(math.inf), 0.0)
        self.assertEqual(norm.normalize(math.nan), 0.0)
        self.assertEqual(norm.factor, DEFAULT_ADJUSTMENT_FACTOR)

    def test_reset_restores_seed(self):
        norm = BandNormalizer()
        norm.normalize(100.0)
        norm.reset()
        self.assertEqual(norm.factor, DEFAULT_ADJUSTMENT_FACTOR)


if __name__ == "__main__":
    unittest.main()
