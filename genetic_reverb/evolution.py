"""
Evolution driver for genetic reverb synthesis.

Runs the generation loop:

    INITIALIZING -> EVALUATING -> RANKED -> TERMINATED
                                         -> REPRODUCING -> EVALUATING ...

Each generation evaluates every individual, sorts the population, updates
the best-ever individual, records history and then either stops or breeds
the next generation (elitist crossover followed by mutation).

Random numbers come from a single numpy Generator advanced sequentially
through initialization, crossover and mutation. Fitness evaluation uses no
random numbers, so evaluating with several worker threads gives the same
result as evaluating serially.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional
import logging
import time

import numpy as np

from .data_models import (
    FitnessWeights,
    GAConfig,
    GenerationRecord,
    InvalidConfigurationError,
    Population,
    RunState,
    SynthesisResult,
    TargetDescriptors,
    TerminationReason,
    validate_ir_parameters,
)
from .fitness import evaluate_fitness
from .population import initialize_population, population_statistics
from .crossover import apply_crossover
from .mutation import mutate_population


logger = logging.getLogger(__name__)


class EvolutionDriver:
    """
    Owns the population and run state of one synthesis run.

    Args:
        target: Target descriptors
        ga_config: GA parameters
        sample_rate: IR sample rate (Hz)
        num_samples: IR length (samples)
        rng: Random number generator (a seeded one makes runs reproducible)
        weights: Fitness weights
        verbose: Print per-generation progress
        should_stop: Optional callable polled once per generation boundary

    Raises:
        InvalidConfigurationError: If the configuration is invalid
    """

    def __init__(
        self,
        target: TargetDescriptors,
        ga_config: GAConfig,
        sample_rate: float,
        num_samples: int,
        rng: np.random.Generator,
        weights: Optional[FitnessWeights] = None,
        verbose: bool = False,
        should_stop: Optional[Callable[[], bool]] = None
    ):
        ga_config.validate()
        validate_ir_parameters(sample_rate, num_samples)
        if not target.t60 > 0:
            raise InvalidConfigurationError(f"Target T60 must be positive, got {target.t60}")

        self.target = target
        self.config = ga_config
        self.sample_rate = sample_rate
        self.num_samples = num_samples
        self.rng = rng
        self.weights = weights or FitnessWeights()
        self.verbose = verbose
        self.should_stop = should_stop

        self.population: Optional[Population] = None
        self.state = RunState()
        self.generation_log: list[GenerationRecord] = []
        self._pending_fallbacks = 0

    def initialize(self) -> None:
        """Create generation 0."""
        if self.verbose:
            print("Initializing population...")
        self.population = initialize_population(
            self.num_samples,
            self.config.population_size,
            self.sample_rate,
            self.target.t60,
            self.rng
        )
        self.state = RunState()
        self.generation_log = []
        self._pending_fallbacks = 0

    def _evaluate_one(self, ir: np.ndarray):
        return evaluate_fitness(ir, self.target, self.sample_rate, self.weights)

    def evaluate(self) -> None:
        """Evaluate every individual; results land in per-row slots."""
        samples = self.population.samples

        if self.config.workers > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                results = list(executor.map(self._evaluate_one, samples))
        else:
            results = [self._evaluate_one(ir) for ir in samples]

        for i, (fitness, errors, _) in enumerate(results):
            self.population.fitness[i] = fitness
            self.population.errors[i] = errors

    def rank(self) -> float:
        """
        Sort the population and update the best-ever individual.

        Returns:
            Best fitness of this generation
        """
        self.population.sort()
        generation_best = float(self.population.fitness[0])
        state = self.state

        if generation_best < state.best_fitness:
            state.best_fitness = generation_best
            state.best_individual = self.population.samples[0].copy()
            state.best_errors = self.population.errors[0]
            state.plateau_counter = 0
        else:
            state.plateau_counter += 1

        state.fitness_history.append(state.best_fitness)
        return generation_best

    def check_termination(self) -> Optional[TerminationReason]:
        """Termination test in priority order; None means keep going."""
        state = self.state
        config = self.config

        if state.best_fitness < config.fitness_threshold:
            return TerminationReason.CONVERGED
        if config.plateau_length is not None and state.plateau_counter >= config.plateau_length:
            return TerminationReason.PLATEAU
        if state.generation >= config.num_generations:
            return TerminationReason.MAX_GENERATIONS
        if self.should_stop is not None and self.should_stop():
            return TerminationReason.CANCELLED
        return None

    def reproduce(self) -> None:
        """Breed the next generation: crossover, then mutation of everyone."""
        config = self.config
        self.population, fallbacks = apply_crossover(
            self.population,
            config.selection_size,
            config.population_size,
            self.num_samples,
            self.rng,
            noise_threshold=config.noise_threshold,
            max_retries=config.max_crossover_retries
        )
        mutated = mutate_population(
            self.population, config.mutation_rate, self.rng, scale=config.mutation_scale
        )
        self._pending_fallbacks = fallbacks
        logger.debug("Generation %d bred: %d crossover fallbacks, %d samples mutated",
                     self.state.generation + 1, fallbacks, mutated)

    def _record(self, generation_best: float, elapsed: float) -> None:
        stats = population_statistics(self.population)
        self.generation_log.append(
            GenerationRecord(
                generation=self.state.generation,
                generation_best=generation_best,
                best_fitness=self.state.best_fitness,
                median_fitness=stats['median'],
                finite_count=stats['finite_count'],
                plateau_counter=self.state.plateau_counter,
                crossover_fallbacks=self._pending_fallbacks,
                elapsed=elapsed
            )
        )

    def step(self) -> Optional[TerminationReason]:
        """
        Run one generation: evaluate, rank, record and check termination.

        Returns:
            Termination reason, or None if the next generation should be bred
        """
        start = time.perf_counter()
        self.evaluate()
        generation_best = self.rank()
        self._record(generation_best, time.perf_counter() - start)

        logger.debug("Generation %d: best fitness %g (plateau %d)",
                     self.state.generation, self.state.best_fitness, self.state.plateau_counter)
        if self.verbose:
            print(f"Generation {self.state.generation}: best fitness value {self.state.best_fitness:g}")

        return self.check_termination()

    def run(self, seed: Optional[int] = None) -> SynthesisResult:
        """
        Run the generation loop until a termination condition holds.

        Args:
            seed: Seed to report in the result (informational)

        Returns:
            SynthesisResult with the best-ever individual
        """
        self.initialize()

        while True:
            reason = self.step()
            if reason is not None:
                break
            self.reproduce()
            self.state.generation += 1

        self.state.termination = reason
        if self.verbose:
            print(_TERMINATION_MESSAGES[reason])

        return self._result(seed)

    def _result(self, seed: Optional[int]) -> SynthesisResult:
        state = self.state

        best = state.best_individual
        if best is None:
            # Every individual scored +inf; fall back to the current leader
            best = self.population.samples[0].copy()
            state.best_errors = self.population.errors[0]

        best_descriptors = self._evaluate_one(best)[2]
        state.best_descriptors = best_descriptors

        return SynthesisResult(
            impulse_response=best,
            best_fitness=state.best_fitness,
            fitness_history=list(state.fitness_history),
            descriptor_errors=state.best_errors,
            descriptors=best_descriptors,
            generations=state.generation,
            termination=state.termination,
            seed=seed,
            generation_log=list(self.generation_log)
        )


_TERMINATION_MESSAGES = {
    TerminationReason.CONVERGED: "Optimal solution found.",
    TerminationReason.PLATEAU: "Local optimal solution found.",
    TerminationReason.MAX_GENERATIONS: "Maximum number of generations reached.",
    TerminationReason.CANCELLED: "Run cancelled.",
}


def synthesize(
    target: TargetDescriptors,
    ga_config: GAConfig,
    sample_rate: float,
    num_samples: int,
    rng_seed: Optional[int] = None,
    weights: Optional[FitnessWeights] = None,
    verbose: bool = False,
    should_stop: Optional[Callable[[], bool]] = None
) -> SynthesisResult:
    """
    Evolve an impulse response matching the target descriptors.

    Args:
        target: Target descriptors
        ga_config: GA parameters
        sample_rate: IR sample rate (Hz)
        num_samples: IR length (samples)
        rng_seed: Seed for reproducible runs (random if None)
        weights: Fitness weights (BR unweighted by default)
        verbose: Print per-generation progress
        should_stop: Optional cancellation callback, polled per generation

    Returns:
        SynthesisResult

    Raises:
        InvalidConfigurationError: If the configuration is invalid
    """
    rng = np.random.default_rng(rng_seed)
    driver = EvolutionDriver(
        target, ga_config, sample_rate, num_samples, rng,
        weights=weights, verbose=verbose, should_stop=should_stop
    )
    return driver.run(seed=rng_seed)
