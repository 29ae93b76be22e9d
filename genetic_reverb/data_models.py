"""
Data models for genetic reverb synthesis.

Core data structures representing target profiles, measured descriptors,
the population matrix, run state and synthesis results.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, Any
import math

import numpy as np


class InvalidConfigurationError(ValueError):
    """Raised when a GA or IR configuration can not be run."""
    pass


DESCRIPTOR_NAMES = ("t60", "edt", "itdg", "c80", "br")


@dataclass(frozen=True)
class TargetDescriptors:
    """
    Acoustic profile the search is steered towards.

    Attributes:
        t60: Reverberation time (s)
        itdg: Initial time delay gap (s)
        edt: Early decay time (s)
        c80: Clarity (dB)
        br: Bass ratio (dB), optional; only scored when weighted
    """
    t60: float
    itdg: float
    edt: float
    c80: float
    br: Optional[float] = None

    def get(self, name: str) -> Optional[float]:
        return getattr(self, name)

    def to_dict(self) -> dict[str, Optional[float]]:
        return asdict(self)


@dataclass(frozen=True)
class FitnessWeights:
    """
    Per-descriptor weights of the fitness function.

    A weight of zero makes the descriptor inactive. Bass ratio is
    unweighted by default.
    """
    t60: float = 1.0
    edt: float = 1.0
    itdg: float = 1.0
    c80: float = 1.0
    br: float = 0.0

    def __post_init__(self):
        for name in DESCRIPTOR_NAMES:
            weight = getattr(self, name)
            if not math.isfinite(weight) or weight < 0:
                raise InvalidConfigurationError(
                    f"Fitness weight '{name}' must be a finite non-negative number, got {weight}"
                )

    def get(self, name: str) -> float:
        return getattr(self, name)

    @classmethod
    def from_dict(cls, data: Optional[dict[str, float]]) -> "FitnessWeights":
        if not data:
            return cls()
        unknown = set(data) - set(DESCRIPTOR_NAMES)
        if unknown:
            raise InvalidConfigurationError(f"Unknown fitness weights: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})


@dataclass(frozen=True)
class AcousticDescriptors:
    """Descriptors measured from one impulse response (seconds / dB)."""
    t60: float
    edt: float
    itdg: float
    predelay: float
    c80: float
    br: float

    def get(self, name: str) -> float:
        return getattr(self, name)

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class DescriptorErrors:
    """Signed error (measured - target) per descriptor; None when inactive."""
    t60: Optional[float] = None
    edt: Optional[float] = None
    itdg: Optional[float] = None
    c80: Optional[float] = None
    br: Optional[float] = None

    def to_dict(self) -> dict[str, Optional[float]]:
        return asdict(self)


@dataclass
class GAConfig:
    """
    Genetic algorithm parameters.

    Attributes:
        population_size: Number of IRs per generation
        selection_size: Number of elites kept and used as parents
        num_generations: Generation budget (history holds num_generations + 1 values)
        fitness_threshold: Stop once best-ever fitness falls below this value
        mutation_rate: Per-sample mutation probability
        plateau_length: Stop after this many generations without improvement (optional)
        noise_threshold: Crossover points must be quieter than this in both parents (optional)
        max_crossover_retries: Resampling cap for the constrained crossover point
        mutation_scale: Relative size of the Gaussian perturbation
        workers: Threads used for fitness evaluation
    """
    population_size: int
    selection_size: int
    num_generations: int
    fitness_threshold: float
    mutation_rate: float
    plateau_length: Optional[int] = None
    noise_threshold: Optional[float] = None
    max_crossover_retries: int = 1000
    mutation_scale: float = 1.0
    workers: int = 1

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            InvalidConfigurationError: If any parameter is out of range
        """
        if self.selection_size <= 1:
            raise InvalidConfigurationError(
                f"selection_size must be at least 2, got {self.selection_size}"
            )
        if self.selection_size >= self.population_size:
            raise InvalidConfigurationError(
                f"selection_size ({self.selection_size}) must be smaller than "
                f"population_size ({self.population_size})"
            )
        if self.num_generations < 0:
            raise InvalidConfigurationError(
                f"num_generations must be non-negative, got {self.num_generations}"
            )
        if self.plateau_length is not None and self.plateau_length < 1:
            raise InvalidConfigurationError(
                f"plateau_length must be positive, got {self.plateau_length}"
            )
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise InvalidConfigurationError(
                f"mutation_rate must be within [0, 1], got {self.mutation_rate}"
            )
        if self.noise_threshold is not None and self.noise_threshold <= 0:
            raise InvalidConfigurationError(
                f"noise_threshold must be positive, got {self.noise_threshold}"
            )
        if self.max_crossover_retries < 1:
            raise InvalidConfigurationError(
                f"max_crossover_retries must be positive, got {self.max_crossover_retries}"
            )
        if self.workers < 1:
            raise InvalidConfigurationError(f"workers must be positive, got {self.workers}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GAConfig":
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise InvalidConfigurationError(f"Unknown GA parameters: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_ir_parameters(sample_rate: float, num_samples: int) -> None:
    """Raise InvalidConfigurationError for unusable IR dimensions."""
    if sample_rate <= 0:
        raise InvalidConfigurationError(f"sample_rate must be positive, got {sample_rate}")
    if num_samples < 2:
        # Crossover splits at a point in [1, N-1]
        raise InvalidConfigurationError(f"num_samples must be at least 2, got {num_samples}")


@dataclass
class Population:
    """
    Candidate IRs with their fitness values and descriptor errors.

    Row i of `samples`, `fitness[i]` and `errors[i]` always describe the
    same individual; every reordering goes through `reorder`.
    """
    samples: np.ndarray
    fitness: Optional[np.ndarray] = None
    errors: Optional[list] = None

    def __post_init__(self):
        """Fill in unevaluated fitness and error slots."""
        self.samples = np.asarray(self.samples, dtype=float)
        if self.samples.ndim != 2:
            raise ValueError("Population samples must be a 2-D array (individuals x samples)")
        if self.fitness is None:
            self.fitness = np.full(len(self.samples), np.inf)
        else:
            self.fitness = np.asarray(self.fitness, dtype=float)
        if self.errors is None:
            self.errors = [None] * len(self.samples)
        if len(self.fitness) != len(self.samples) or len(self.errors) != len(self.samples):
            raise ValueError("Population samples, fitness and errors must have equal length")

    def __len__(self) -> int:
        return self.samples.shape[0]

    @property
    def num_samples(self) -> int:
        return self.samples.shape[1]

    def copy(self) -> "Population":
        return Population(
            samples=self.samples.copy(),
            fitness=self.fitness.copy(),
            errors=list(self.errors),
        )

    def reorder(self, order) -> None:
        """Apply one permutation to samples, fitness and errors together."""
        order = np.asarray(order)
        self.samples = self.samples[order]
        self.fitness = self.fitness[order]
        self.errors = [self.errors[i] for i in order]

    def sort(self) -> None:
        """
        Rank individuals by ascending fitness.

        Ties keep their current order. NaN fitness ranks as +inf.
        """
        keys = np.where(np.isnan(self.fitness), np.inf, self.fitness)
        self.reorder(np.argsort(keys, kind="stable"))

    def is_sorted(self) -> bool:
        keys = np.where(np.isnan(self.fitness), np.inf, self.fitness)
        return bool(np.all(keys[:-1] <= keys[1:]))


class TerminationReason(Enum):
    """Why a synthesis run stopped."""
    CONVERGED = "converged"
    PLATEAU = "plateau"
    MAX_GENERATIONS = "max_generations"
    CANCELLED = "cancelled"


@dataclass
class RunState:
    """Mutable state of one evolution run, owned by the driver."""
    generation: int = 0
    best_individual: Optional[np.ndarray] = None
    best_fitness: float = math.inf
    best_errors: Optional[DescriptorErrors] = None
    best_descriptors: Optional[AcousticDescriptors] = None
    plateau_counter: int = 0
    fitness_history: list[float] = field(default_factory=list)
    termination: Optional[TerminationReason] = None


@dataclass
class GenerationRecord:
    """
    One row of the per-generation run log.

    Attributes:
        generation: Generation index (0 = initial population)
        generation_best: Best fitness in this generation
        best_fitness: Best-ever fitness after this generation
        median_fitness: Median fitness in this generation
        finite_count: Individuals with finite fitness
        plateau_counter: Generations without improvement
        crossover_fallbacks: Unconstrained crossover points used to build this generation
        elapsed: Seconds spent evaluating this generation
    """
    generation: int
    generation_best: float
    best_fitness: float
    median_fitness: float
    finite_count: int
    plateau_counter: int
    crossover_fallbacks: int = 0
    elapsed: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a flat dictionary for CSV export."""
        return {
            "generation": self.generation,
            "generation_best": self.generation_best,
            "best_fitness": self.best_fitness,
            "median_fitness": self.median_fitness,
            "finite_count": self.finite_count,
            "plateau_counter": self.plateau_counter,
            "crossover_fallbacks": self.crossover_fallbacks,
            "elapsed": round(self.elapsed, 6),
        }


@dataclass
class SynthesisResult:
    """
    Output of one synthesis run.

    Attributes:
        impulse_response: Best-ever individual
        best_fitness: Its fitness value
        fitness_history: Best-ever fitness after each generation
        descriptor_errors: Signed errors of the best individual
        descriptors: Measured descriptors of the best individual
        generations: Index of the last evaluated generation
        termination: Why the run stopped
        seed: Seed of the random generator, when one was given
        generation_log: Per-generation records
    """
    impulse_response: np.ndarray
    best_fitness: float
    fitness_history: list[float]
    descriptor_errors: Optional[DescriptorErrors]
    descriptors: Optional[AcousticDescriptors]
    generations: int
    termination: TerminationReason
    seed: Optional[int] = None
    generation_log: list[GenerationRecord] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """YAML-friendly summary of the run."""
        return {
            "best_fitness": float(self.best_fitness),
            "generations": self.generations,
            "termination": self.termination.value,
            "seed": self.seed,
            "num_samples": int(len(self.impulse_response)),
            "descriptors": _plain(self.descriptors.to_dict()) if self.descriptors else None,
            "descriptor_errors": _plain(self.descriptor_errors.to_dict()) if self.descriptor_errors else None,
        }


def _plain(values: dict[str, Any]) -> dict[str, Any]:
    return {k: (float(v) if v is not None else None) for k, v in values.items()}
