"""
Crossover operators for genetic reverb synthesis.

Implements elitist one-point crossover, optionally restricted to split
points where both parents are quieter than a noise threshold so that
splices do not produce audible clicks.
"""

from typing import Optional, Tuple
import logging

import numpy as np

from .data_models import Population


logger = logging.getLogger(__name__)


def one_point_crossover(
    parent_a: np.ndarray,
    parent_b: np.ndarray,
    point: int
) -> np.ndarray:
    """
    Splice two parents at `point`.

    Args:
        parent_a: Parent supplying the prefix
        parent_b: Parent supplying the suffix
        point: Split index in [1, N-1]

    Returns:
        New array parent_a[:point] ++ parent_b[point:]
    """
    return np.concatenate((parent_a[:point], parent_b[point:]))


def is_quiet_point(
    parent_a: np.ndarray,
    parent_b: np.ndarray,
    point: int,
    noise_threshold: float
) -> bool:
    """True if both parents are below the noise threshold at `point`."""
    return abs(parent_a[point]) < noise_threshold and abs(parent_b[point]) < noise_threshold


def choose_crossover_point(
    parent_a: np.ndarray,
    parent_b: np.ndarray,
    num_samples: int,
    rng: np.random.Generator,
    noise_threshold: Optional[float] = None,
    max_retries: int = 1000
) -> Tuple[int, bool]:
    """
    Draw a split point uniformly from [1, N-1].

    With a noise threshold the point is redrawn until both parents are
    quiet there. After `max_retries` failed draws an unconstrained point
    is used instead.

    Args:
        parent_a: First parent
        parent_b: Second parent
        num_samples: Individual length N
        rng: Random number generator
        noise_threshold: Maximum absolute amplitude at the split (optional)
        max_retries: Draw limit for the constrained search

    Returns:
        Tuple of (point, fell_back)
    """
    if noise_threshold is None:
        return int(rng.integers(1, num_samples)), False

    for _ in range(max_retries):
        point = int(rng.integers(1, num_samples))
        if is_quiet_point(parent_a, parent_b, point, noise_threshold):
            return point, False

    point = int(rng.integers(1, num_samples))
    logger.warning(
        "No split point below noise threshold %g after %d draws; using unconstrained point %d",
        noise_threshold, max_retries, point
    )
    return point, True


def apply_crossover(
    population: Population,
    selection_size: int,
    population_size: int,
    num_samples: int,
    rng: np.random.Generator,
    noise_threshold: Optional[float] = None,
    max_retries: int = 1000
) -> Tuple[Population, int]:
    """
    Replace everything below the elite set with children of the elites.

    The population must already be sorted. Rows [0, selection_size) are
    kept unchanged; every other row becomes a one-point crossover of two
    distinct elites chosen uniformly at random.

    Args:
        population: Sorted population
        selection_size: Number of elites
        population_size: Number of individuals
        num_samples: Individual length
        rng: Random number generator
        noise_threshold: Optional quiet-splice threshold
        max_retries: Draw limit for the constrained split point

    Returns:
        Tuple of (new_population, fallback_count) where fallback_count is
        the number of children that used an unconstrained point
    """
    if num_samples < 2:
        raise ValueError(f"Crossover needs at least 2 samples per individual, got {num_samples}")

    parents = population.samples
    children = parents.copy()
    fallbacks = 0

    for i in range(selection_size, population_size):
        idx_a, idx_b = rng.choice(selection_size, size=2, replace=False)
        parent_a, parent_b = parents[idx_a], parents[idx_b]

        point, fell_back = choose_crossover_point(
            parent_a, parent_b, num_samples, rng, noise_threshold, max_retries
        )
        fallbacks += fell_back

        children[i] = one_point_crossover(parent_a, parent_b, point)

    # Children are unevaluated
    fitness = population.fitness.copy()
    fitness[selection_size:] = np.inf
    errors = list(population.errors[:selection_size]) + [None] * (population_size - selection_size)

    return Population(samples=children, fitness=fitness, errors=errors), fallbacks
