"""
Tests for fitness scoring.
"""

import math
import unittest

import numpy as np

from genetic_reverb.acoustics import analyze
from genetic_reverb.data_models import (
    AcousticDescriptors,
    FitnessWeights,
    InvalidConfigurationError,
    TargetDescriptors,
)
from genetic_reverb.fitness import active_descriptors, evaluate_fitness, score_descriptors


class TestScoreDescriptors(unittest.TestCase):
    """Test scoring of measured descriptors."""

    def setUp(self):
        """Set up a target and a matching measurement."""
        self.target = TargetDescriptors(t60=1.0, itdg=0.005, edt=0.1, c80=1.0, br=1.1)
        self.measured = AcousticDescriptors(
            t60=1.0, edt=0.1, itdg=0.005, predelay=0.0, c80=1.0, br=-4.0
        )

    def test_perfect_match_scores_zero(self):
        """Exact descriptors give zero fitness."""
        fitness, errors = score_descriptors(self.measured, self.target)

        self.assertEqual(fitness, 0.0)
        self.assertEqual(errors.t60, 0.0)

    def test_bass_ratio_ignored_by_default(self):
        """BR has weight 0 unless configured."""
        fitness, errors = score_descriptors(self.measured, self.target)

        self.assertEqual(fitness, 0.0)
        self.assertIsNone(errors.br)

    def test_bass_ratio_scored_when_weighted(self):
        """A non-zero BR weight makes the BR error count."""
        weights = FitnessWeights(br=1.0)
        fitness, errors = score_descriptors(self.measured, self.target, weights)

        self.assertAlmostEqual(errors.br, -5.1)
        self.assertAlmostEqual(fitness, (5.1 / 1.1) ** 2)

    def test_relative_squared_error(self):
        """Errors are squared relative to the target magnitude."""
        measured = AcousticDescriptors(t60=1.5, edt=0.1, itdg=0.005, predelay=0.0, c80=1.0, br=0.0)
        fitness, errors = score_descriptors(measured, self.target)

        self.assertAlmostEqual(errors.t60, 0.5)
        self.assertAlmostEqual(fitness, 0.25)

    def test_weights_scale_terms(self):
        """Each squared error is multiplied by its weight."""
        measured = AcousticDescriptors(t60=1.5, edt=0.1, itdg=0.005, predelay=0.0, c80=1.0, br=0.0)
        fitness, _ = score_descriptors(measured, self.target, FitnessWeights(t60=4.0))

        self.assertAlmostEqual(fitness, 1.0)

    def test_zero_target_uses_absolute_error(self):
        """A zero target falls back to the absolute error."""
        target = TargetDescriptors(t60=1.0, itdg=0.005, edt=0.1, c80=0.0)
        measured = AcousticDescriptors(t60=1.0, edt=0.1, itdg=0.005, predelay=0.0, c80=2.0, br=0.0)
        fitness, _ = score_descriptors(measured, target)

        self.assertAlmostEqual(fitness, 4.0)

    def test_non_finite_descriptor_gives_infinity(self):
        """An infinite active descriptor makes the candidate unselectable."""
        measured = AcousticDescriptors(
            t60=math.inf, edt=0.1, itdg=0.005, predelay=0.0, c80=1.0, br=0.0
        )
        fitness, _ = score_descriptors(measured, self.target)
        self.assertEqual(fitness, math.inf)

        measured = AcousticDescriptors(
            t60=1.0, edt=0.1, itdg=0.005, predelay=0.0, c80=math.nan, br=0.0
        )
        fitness, _ = score_descriptors(measured, self.target)
        self.assertEqual(fitness, math.inf)

    def test_active_descriptors(self):
        """Descriptors without a target or weight are skipped."""
        target = TargetDescriptors(t60=1.0, itdg=0.005, edt=0.1, c80=1.0)
        names = active_descriptors(target, FitnessWeights(br=1.0, itdg=0.0))

        self.assertEqual(names, ['t60', 'edt', 'c80'])


class TestFitnessWeights(unittest.TestCase):
    """Test weight construction."""

    def test_from_dict_defaults(self):
        """Missing entries keep their defaults."""
        weights = FitnessWeights.from_dict({'br': 0.5})

        self.assertEqual(weights.t60, 1.0)
        self.assertEqual(weights.br, 0.5)
        self.assertEqual(FitnessWeights.from_dict(None), FitnessWeights())

    def test_from_dict_unknown(self):
        """Unknown descriptor names are rejected."""
        with self.assertRaises(InvalidConfigurationError):
            FitnessWeights.from_dict({'rt60': 1.0})

    def test_negative_weight_rejected(self):
        """Weights can not push fitness below zero."""
        with self.assertRaises(InvalidConfigurationError):
            FitnessWeights.from_dict({'t60': -1.0})
        with self.assertRaises(InvalidConfigurationError):
            FitnessWeights(c80=-0.5)

    def test_non_finite_weight_rejected(self):
        """Infinite and NaN weights are rejected."""
        with self.assertRaises(InvalidConfigurationError):
            FitnessWeights(t60=math.inf)
        with self.assertRaises(InvalidConfigurationError):
            FitnessWeights.from_dict({'edt': float('nan')})

    def test_zero_weight_allowed(self):
        """A zero weight switches a descriptor off."""
        self.assertEqual(FitnessWeights.from_dict({'itdg': 0.0}).itdg, 0.0)


class TestEvaluateFitness(unittest.TestCase):
    """Test end-to-end evaluation of an IR."""

    def setUp(self):
        """Set up a decaying noise IR."""
        self.sample_rate = 16000
        rng = np.random.default_rng(11)
        t = np.arange(16000) / self.sample_rate
        self.ir = rng.uniform(-1, 1, len(t)) * 10.0 ** (-3.0 * t)

    def test_silence_is_infinite(self):
        """An all-zero IR scores +inf."""
        target = TargetDescriptors(t60=1.0, itdg=0.005, edt=0.1, c80=1.0)
        fitness, _, _ = evaluate_fitness(np.zeros(16000), target, self.sample_rate)

        self.assertEqual(fitness, math.inf)

    def test_own_descriptors_score_zero(self):
        """An IR scored against its own descriptors is a perfect match."""
        measured = analyze(self.ir, self.sample_rate)
        target = TargetDescriptors(
            t60=measured.t60, itdg=measured.itdg, edt=measured.edt, c80=measured.c80
        )

        fitness, errors, descriptors = evaluate_fitness(self.ir, target, self.sample_rate)

        self.assertEqual(fitness, 0.0)
        self.assertEqual(descriptors, measured)

    def test_fitness_non_negative(self):
        """Fitness is a sum of weighted squares."""
        target = TargetDescriptors(t60=2.0, itdg=0.01, edt=0.3, c80=-2.0)
        fitness, _, _ = evaluate_fitness(self.ir, target, self.sample_rate)

        self.assertGreaterEqual(fitness, 0.0)


def run_tests():
    """Run all tests in this module."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestScoreDescriptors))
    suite.addTests(loader.loadTestsFromTestCase(TestFitnessWeights))
    suite.addTests(loader.loadTestsFromTestCase(TestEvaluateFitness))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


if __name__ == '__main__':
    import sys
    success = run_tests()
    sys.exit(0 if success else 1)
