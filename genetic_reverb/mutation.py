"""
Mutation operators for genetic reverb synthesis.

Every sample of every individual, elites included, is perturbed
independently with the configured probability. Perturbations are
relative to the sample's own magnitude so the decay envelope survives.
"""

import numpy as np

from .data_models import Population


def mutation_mask(shape, mutation_rate: float, rng: np.random.Generator) -> np.ndarray:
    """Boolean mask selecting each position with probability `mutation_rate`."""
    return rng.random(shape) < mutation_rate


def mutate_population(
    population: Population,
    mutation_rate: float,
    rng: np.random.Generator,
    scale: float = 1.0
) -> int:
    """
    Perturb the population in place.

    Selected samples become x + scale * N(0, 1) * |x|.

    Args:
        population: Population to mutate
        mutation_rate: Per-sample mutation probability
        rng: Random number generator
        scale: Relative standard deviation of the perturbation

    Returns:
        Number of mutated samples
    """
    if mutation_rate <= 0:
        return 0

    samples = population.samples
    mask = mutation_mask(samples.shape, mutation_rate, rng)
    count = int(np.count_nonzero(mask))
    if count == 0:
        return 0

    selected = samples[mask]
    samples[mask] = selected + scale * rng.standard_normal(count) * np.abs(selected)

    # Mutated rows must be re-evaluated
    touched = np.any(mask, axis=1)
    population.fitness[touched] = np.inf
    for i in np.flatnonzero(touched):
        population.errors[i] = None

    return count


def mutation_statistics(original: np.ndarray, mutated: np.ndarray) -> dict:
    """
    Calculate statistics about a mutation step.

    Args:
        original: Samples before mutation
        mutated: Samples after mutation

    Returns:
        Dictionary with change counts and rates
    """
    changed = original != mutated

    stats = {
        'total_samples': int(original.size),
        'samples_changed': int(np.count_nonzero(changed)),
        'individuals_changed': int(np.count_nonzero(np.any(changed, axis=-1))) if original.ndim > 1 else int(changed.any()),
    }
    stats['change_rate'] = stats['samples_changed'] / max(stats['total_samples'], 1)

    return stats
