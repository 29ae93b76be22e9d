"""
Tests for GA operations: initialization, ranking, crossover, and mutation.
"""

import math
import unittest

import numpy as np

from genetic_reverb.data_models import Population
from genetic_reverb.population import (
    decay_envelope,
    initialize_population,
    population_statistics,
    sort_population,
)
from genetic_reverb.crossover import (
    apply_crossover,
    choose_crossover_point,
    is_quiet_point,
    one_point_crossover,
)
from genetic_reverb.mutation import mutate_population, mutation_statistics


class TestPopulation(unittest.TestCase):
    """Test population initialization and sorting."""

    def test_initial_shape(self):
        """Initializer produces population_size x num_samples."""
        rng = np.random.default_rng(0)
        population = initialize_population(400, 6, 16000, 0.5, rng)

        self.assertEqual(population.samples.shape, (6, 400))
        self.assertEqual(len(population), 6)
        self.assertEqual(population.num_samples, 400)
        self.assertTrue(np.all(np.isinf(population.fitness)))
        self.assertEqual(population.errors, [None] * 6)

    def test_initial_population_deterministic(self):
        """Same seed, same population."""
        first = initialize_population(200, 4, 16000, 0.5, np.random.default_rng(5))
        second = initialize_population(200, 4, 16000, 0.5, np.random.default_rng(5))

        np.testing.assert_array_equal(first.samples, second.samples)

    def test_initial_population_within_envelope(self):
        """Every sample lies inside the decay envelope."""
        envelope = decay_envelope(1000, 16000, 0.2)
        population = initialize_population(1000, 5, 16000, 0.2, np.random.default_rng(1))

        self.assertTrue(np.all(np.abs(population.samples) <= envelope))

    def test_decay_envelope(self):
        """Envelope falls 60 dB over T60."""
        envelope = decay_envelope(16001, 16000, 1.0)

        self.assertEqual(envelope[0], 1.0)
        self.assertAlmostEqual(20 * math.log10(envelope[16000]), -60.0)

    def test_sort_keeps_rows_together(self):
        """Sorting permutes samples, fitness and errors together."""
        samples = np.arange(12, dtype=float).reshape(4, 3)
        population = Population(samples, fitness=[3.0, 1.0, 2.0, 0.5], errors=['a', 'b', 'c', 'd'])

        sort_population(population)

        np.testing.assert_array_equal(population.fitness, [0.5, 1.0, 2.0, 3.0])
        self.assertEqual(population.errors, ['d', 'b', 'c', 'a'])
        np.testing.assert_array_equal(population.samples[0], [9.0, 10.0, 11.0])
        self.assertTrue(population.is_sorted())

    def test_sort_is_stable_and_nan_last(self):
        """Ties keep order; NaN ranks with +inf."""
        samples = np.arange(5, dtype=float).reshape(5, 1)
        population = Population(samples, fitness=[np.nan, 1.0, np.inf, 1.0, 0.0])

        population.sort()

        np.testing.assert_array_equal(population.samples[:, 0], [4.0, 1.0, 3.0, 0.0, 2.0])

    def test_population_validation(self):
        """Mismatched lengths are rejected."""
        with self.assertRaises(ValueError):
            Population(np.zeros((3, 4)), fitness=[1.0, 2.0])
        with self.assertRaises(ValueError):
            Population(np.zeros(4))

    def test_statistics(self):
        """Statistics ignore non-finite fitness values."""
        population = Population(np.zeros((4, 2)), fitness=[1.0, 3.0, np.inf, 2.0])
        stats = population_statistics(population)

        self.assertEqual(stats['finite_count'], 3)
        self.assertEqual(stats['best'], 1.0)
        self.assertEqual(stats['median'], 2.0)
        self.assertEqual(stats['worst'], 3.0)


class TestCrossover(unittest.TestCase):
    """Test crossover operators."""

    def setUp(self):
        """Set up a sorted population."""
        self.rng = np.random.default_rng(42)
        self.num_samples = 50
        samples = np.vstack([np.full(self.num_samples, float(i + 1)) for i in range(8)])
        self.population = Population(
            samples,
            fitness=np.arange(8, dtype=float),
            errors=[f'e{i}' for i in range(8)]
        )

    def test_one_point_crossover(self):
        """Child is the prefix of one parent and the suffix of the other."""
        a = np.zeros(10)
        b = np.ones(10)
        child = one_point_crossover(a, b, 4)

        np.testing.assert_array_equal(child, [0, 0, 0, 0, 1, 1, 1, 1, 1, 1])
        self.assertEqual(len(child), 10)

    def test_elites_unchanged(self):
        """The first selection_size rows survive untouched."""
        new_population, _ = apply_crossover(
            self.population, 3, 8, self.num_samples, self.rng
        )

        np.testing.assert_array_equal(new_population.samples[:3], self.population.samples[:3])
        np.testing.assert_array_equal(new_population.fitness[:3], [0.0, 1.0, 2.0])
        self.assertEqual(new_population.errors[:3], ['e0', 'e1', 'e2'])

    def test_children_from_two_elites(self):
        """Each child is a splice of two distinct elites."""
        new_population, _ = apply_crossover(
            self.population, 3, 8, self.num_samples, self.rng
        )

        for child in new_population.samples[3:]:
            values = np.unique(child)
            self.assertEqual(len(values), 2)
            self.assertTrue(set(values) <= {1.0, 2.0, 3.0})
            # Prefix parent then suffix parent
            switch = int(np.flatnonzero(child != child[0])[0])
            self.assertTrue(1 <= switch <= self.num_samples - 1)
            self.assertTrue(np.all(child[switch:] == child[-1]))

    def test_children_unevaluated(self):
        """Children get +inf fitness and no errors."""
        new_population, _ = apply_crossover(
            self.population, 3, 8, self.num_samples, self.rng
        )

        self.assertTrue(np.all(np.isinf(new_population.fitness[3:])))
        self.assertEqual(new_population.errors[3:], [None] * 5)

    def test_input_population_untouched(self):
        """Crossover returns a new population."""
        original = self.population.samples.copy()
        apply_crossover(self.population, 3, 8, self.num_samples, self.rng)

        np.testing.assert_array_equal(self.population.samples, original)

    def test_point_range(self):
        """Unconstrained points are drawn from [1, N-1]."""
        a, b = np.ones(5), np.ones(5)
        points = {choose_crossover_point(a, b, 5, self.rng)[0] for _ in range(200)}

        self.assertEqual(points, {1, 2, 3, 4})

    def test_quiet_point(self):
        """Threshold-constrained points are quiet in both parents."""
        a = np.ones(100)
        b = np.ones(100)
        quiet = [10, 55, 80]
        a[quiet] = 0.0
        b[quiet] = 1e-6

        for _ in range(20):
            point, fell_back = choose_crossover_point(a, b, 100, self.rng, noise_threshold=1e-3)
            self.assertFalse(fell_back)
            self.assertIn(point, quiet)
            self.assertTrue(is_quiet_point(a, b, point, 1e-3))

    def test_fallback_warning(self):
        """Exhausted retries fall back to an unconstrained point with a warning."""
        a = np.ones(20)
        b = np.ones(20)

        with self.assertLogs('genetic_reverb.crossover', level='WARNING'):
            point, fell_back = choose_crossover_point(
                a, b, 20, self.rng, noise_threshold=1e-3, max_retries=10
            )

        self.assertTrue(fell_back)
        self.assertTrue(1 <= point <= 19)

    def test_fallback_count(self):
        """apply_crossover reports one fallback per child."""
        with self.assertLogs('genetic_reverb.crossover', level='WARNING'):
            _, fallbacks = apply_crossover(
                self.population, 3, 8, self.num_samples, self.rng,
                noise_threshold=1e-3, max_retries=5
            )

        self.assertEqual(fallbacks, 5)

    def test_too_short(self):
        """Individuals of a single sample can not be spliced."""
        population = Population(np.ones((4, 1)))
        with self.assertRaises(ValueError):
            apply_crossover(population, 2, 4, 1, self.rng)


class TestMutation(unittest.TestCase):
    """Test mutation operators."""

    def setUp(self):
        """Set up an evaluated population."""
        self.rng = np.random.default_rng(7)
        samples = self.rng.uniform(-1, 1, size=(6, 200))
        self.population = Population(samples, fitness=np.arange(6, dtype=float), errors=list('abcdef'))

    def test_rate_zero(self):
        """Rate 0 leaves everything as is."""
        original = self.population.samples.copy()
        count = mutate_population(self.population, 0.0, self.rng)

        self.assertEqual(count, 0)
        np.testing.assert_array_equal(self.population.samples, original)
        np.testing.assert_array_equal(self.population.fitness, np.arange(6))

    def test_rate_one(self):
        """Rate 1 perturbs every sample of every individual."""
        original = self.population.samples.copy()
        count = mutate_population(self.population, 1.0, self.rng)

        stats = mutation_statistics(original, self.population.samples)
        self.assertEqual(count, original.size)
        self.assertEqual(stats['individuals_changed'], 6)
        self.assertGreater(stats['change_rate'], 0.99)

    def test_mutated_rows_invalidated(self):
        """Touched individuals need re-evaluation."""
        mutate_population(self.population, 1.0, self.rng)

        self.assertTrue(np.all(np.isinf(self.population.fitness)))
        self.assertEqual(self.population.errors, [None] * 6)

    def test_zero_samples_stay_zero(self):
        """Perturbations are relative to the sample magnitude."""
        population = Population(np.zeros((3, 50)))
        mutate_population(population, 1.0, self.rng)

        self.assertFalse(np.any(population.samples))

    def test_mutation_rate_statistics(self):
        """The fraction of mutated samples follows the rate."""
        population = Population(np.ones((10, 1000)))
        count = mutate_population(population, 0.1, self.rng)

        self.assertAlmostEqual(count / population.samples.size, 0.1, delta=0.02)

    def test_deterministic(self):
        """Same seed, same mutation."""
        first = self.population.copy()
        second = self.population.copy()
        mutate_population(first, 0.3, np.random.default_rng(3))
        mutate_population(second, 0.3, np.random.default_rng(3))

        np.testing.assert_array_equal(first.samples, second.samples)


def run_tests():
    """Run all tests in this module."""
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestPopulation))
    suite.addTests(loader.loadTestsFromTestCase(TestCrossover))
    suite.addTests(loader.loadTestsFromTestCase(TestMutation))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return result.wasSuccessful()


if __name__ == '__main__':
    import sys
    success = run_tests()
    sys.exit(0 if success else 1)
