"""
Population initialization and ranking.
"""

import numpy as np

from .data_models import Population


def decay_envelope(num_samples: int, sample_rate: float, t60: float) -> np.ndarray:
    """
    Amplitude envelope that falls 60 dB over `t60` seconds.

    Args:
        num_samples: Envelope length
        sample_rate: Sample rate (Hz)
        t60: Target decay time (s)

    Returns:
        Array of 10 ** (-3 t / t60)
    """
    t = np.arange(num_samples) / sample_rate
    return 10.0 ** (-3.0 * t / t60)


def initialize_population(
    num_samples: int,
    population_size: int,
    sample_rate: float,
    t60: float,
    rng: np.random.Generator
) -> Population:
    """
    Build the initial population of exponentially decaying noise bursts.

    Each individual is uniform noise in [-1, 1] shaped by the target decay
    envelope, so the search starts near plausible reverberant tails.

    Args:
        num_samples: Length of every individual
        population_size: Number of individuals
        sample_rate: Sample rate (Hz)
        t60: Target decay time (s)
        rng: Random number generator

    Returns:
        Unevaluated Population (fitness = +inf)
    """
    envelope = decay_envelope(num_samples, sample_rate, t60)
    noise = rng.uniform(-1.0, 1.0, size=(population_size, num_samples))
    return Population(samples=noise * envelope)


def sort_population(population: Population) -> Population:
    """Sort in place by ascending fitness and return the population."""
    population.sort()
    return population


def population_statistics(population: Population) -> dict:
    """
    Summary statistics of the current fitness values.

    Returns:
        Dictionary with best, median and worst finite fitness and finite count
    """
    finite = population.fitness[np.isfinite(population.fitness)]

    stats = {
        'size': len(population),
        'finite_count': int(len(finite)),
        'best': float(np.min(finite)) if len(finite) else float('inf'),
        'median': float(np.median(finite)) if len(finite) else float('inf'),
        'worst': float(np.max(finite)) if len(finite) else float('inf'),
    }

    return stats
