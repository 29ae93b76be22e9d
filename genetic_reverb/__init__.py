"""
Genetic Reverb - evolutionary synthesis of room impulse responses

This package searches the space of decaying signals for an impulse
response whose measured acoustic descriptors match a target profile.

Key Features:
- Acoustic analysis (T60, EDT, ITDG, predelay, C80, bass ratio)
- Elitist GA with one-point crossover and per-sample mutation
- Reproducible runs from a single seeded random generator
- Optional threaded fitness evaluation
- Host helpers for stereo generation, normalization and resampling

Modules:
- data_models: Core data structures (targets, descriptors, population, results)
- acoustics: Descriptor extraction from an impulse response
- fitness: Scoring of candidates against a target
- population: Initialization and ranking
- crossover: One-point and quiet-splice crossover
- mutation: Relative Gaussian per-sample mutation
- evolution: Generation loop and `synthesize` entry point
- rendering: Quality presets and stereo/host-rate rendering
- io_utils: IR, history, log and summary persistence
- cli / orchestration: Run configuration handling and mode workflows
"""

__version__ = "0.1.0"
__author__ = "Genetic Reverb Team"

from .data_models import (
    AcousticDescriptors,
    DescriptorErrors,
    FitnessWeights,
    GAConfig,
    InvalidConfigurationError,
    Population,
    SynthesisResult,
    TargetDescriptors,
    TerminationReason,
)
from .acoustics import analyze
from .fitness import evaluate_fitness
from .evolution import EvolutionDriver, synthesize

__all__ = [
    "AcousticDescriptors",
    "DescriptorErrors",
    "FitnessWeights",
    "GAConfig",
    "InvalidConfigurationError",
    "Population",
    "SynthesisResult",
    "TargetDescriptors",
    "TerminationReason",
    "analyze",
    "evaluate_fitness",
    "EvolutionDriver",
    "synthesize",
]
