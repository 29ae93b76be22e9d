"""
Fitness evaluation for candidate impulse responses.

Fitness is a weighted sum of squared relative descriptor errors:

    fitness = sum_d w_d * ((measured_d - target_d) / |target_d|) ** 2

Descriptors with a zero target use the absolute error instead. A descriptor
is active when its weight is non-zero and a target value exists. Any
non-finite active descriptor makes the candidate unselectable (+inf).
"""

from typing import Optional, Tuple
import math

import numpy as np

from .acoustics import analyze
from .data_models import (
    AcousticDescriptors,
    DescriptorErrors,
    FitnessWeights,
    TargetDescriptors,
    DESCRIPTOR_NAMES,
)


def active_descriptors(target: TargetDescriptors, weights: FitnessWeights) -> list[str]:
    """Names of the descriptors that take part in scoring."""
    return [
        name for name in DESCRIPTOR_NAMES
        if weights.get(name) != 0 and target.get(name) is not None
    ]


def score_descriptors(
    descriptors: AcousticDescriptors,
    target: TargetDescriptors,
    weights: Optional[FitnessWeights] = None
) -> Tuple[float, DescriptorErrors]:
    """
    Score measured descriptors against a target.

    Args:
        descriptors: Measured descriptors
        target: Target profile
        weights: Descriptor weights (defaults: BR unweighted)

    Returns:
        Tuple of (fitness, descriptor_errors)
    """
    if weights is None:
        weights = FitnessWeights()

    fitness = 0.0
    errors = {}

    for name in active_descriptors(target, weights):
        measured = descriptors.get(name)
        wanted = target.get(name)

        error = measured - wanted
        errors[name] = error

        if not math.isfinite(error):
            fitness = math.inf
            continue

        relative = error / abs(wanted) if wanted != 0 else error
        fitness += weights.get(name) * relative ** 2

    return fitness, DescriptorErrors(**errors)


def evaluate_fitness(
    ir: np.ndarray,
    target: TargetDescriptors,
    sample_rate: float,
    weights: Optional[FitnessWeights] = None
) -> Tuple[float, DescriptorErrors, AcousticDescriptors]:
    """
    Analyze one candidate and score it.

    Pure function of its inputs; safe to call from several threads.

    Args:
        ir: Candidate impulse response
        target: Target profile
        sample_rate: Sample rate (Hz)
        weights: Descriptor weights

    Returns:
        Tuple of (fitness, descriptor_errors, descriptors)
    """
    descriptors = analyze(ir, sample_rate)
    fitness, errors = score_descriptors(descriptors, target, weights)
    return fitness, errors, descriptors
