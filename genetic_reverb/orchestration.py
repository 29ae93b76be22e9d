"""
Orchestration module for genetic reverb synthesis.

Implements synthesize, stereo and analyze mode workflows.
"""

from typing import Dict
from pathlib import Path
import time

import numpy as np

from .acoustics import analyze
from .cli import (
    build_ga_config,
    build_target,
    build_weights,
    format_value,
    resolve_num_samples,
)
from .data_models import DESCRIPTOR_NAMES
from .evolution import synthesize
from .io_utils import (
    create_run_folder,
    load_impulse_response,
    save_fitness_history,
    save_generation_log,
    save_impulse_response,
    save_run_summary,
)
from .rendering import generate_stereo_irs


def _resolve_seed(run_config: Dict) -> int:
    seed = run_config.get('random_seed')
    if seed is None:
        seed = int(np.random.default_rng().integers(0, 2**31))
    return int(seed)


def run_synthesize_mode(run_config: Dict) -> None:
    """
    Evolve one impulse response and write it with its diagnostics.

    Args:
        run_config: Run configuration dict from YAML

    Algorithm:
        1. Build target, weights and GA config
        2. Setup seed (run_config['random_seed'] or random)
        3. Create output directory: run_config['output']['root']
        4. Run the evolution loop
        5. Save ir.npy, fitness_history.csv, generation_log.csv, summary.yaml
        6. Optionally save a plot
        7. Print summary report

    Returns:
        None (writes to disk)
    """
    print("=" * 70)
    print("SYNTHESIZE MODE")
    print("=" * 70)

    target = build_target(run_config)
    weights = build_weights(run_config)
    ga_config = build_ga_config(run_config)
    sample_rate = float(run_config['ir']['sample_rate'])
    num_samples = resolve_num_samples(run_config)

    seed = _resolve_seed(run_config)
    print(f"Random seed: {seed}")
    print(f"Target: T60={target.t60}s ITDG={target.itdg}s EDT={target.edt}s C80={target.c80}dB"
          + (f" BR={target.br}dB" if target.br is not None else ""))
    print(f"Population: {ga_config.population_size} (elite {ga_config.selection_size}), "
          f"up to {ga_config.num_generations} generations")
    print(f"IR: {num_samples} samples at {sample_rate:g} Hz")

    output_root = create_run_folder(
        run_config['output']['root'], run_config['output'].get('overwrite', False)
    )
    overwrite = run_config['output'].get('overwrite', False)
    print(f"Output directory: {output_root}\n")

    start_time = time.time()
    result = synthesize(
        target, ga_config, sample_rate, num_samples,
        rng_seed=seed, weights=weights, verbose=run_config.get('verbose', True)
    )
    elapsed = time.time() - start_time

    ir_path = save_impulse_response(result.impulse_response, output_root / 'ir.npy', overwrite)
    history_path = save_fitness_history(result.fitness_history, output_root / 'fitness_history.csv', overwrite)
    log_path = save_generation_log(result.generation_log, output_root / 'generation_log.csv', overwrite)
    summary_path = save_run_summary(
        result,
        output_root / 'summary.yaml',
        extra={
            'sample_rate': sample_rate,
            'target': target.to_dict(),
            'ga': ga_config.to_dict(),
            'elapsed_seconds': round(elapsed, 3),
        },
        overwrite=overwrite
    )

    if run_config['output'].get('plots', True):
        _save_plot(result, sample_rate, output_root / 'synthesis.png')

    print()
    print("=" * 70)
    print("SUMMARY")
    print("=" * 70)
    print(f"Termination: {result.termination.value} after generation {result.generations}")
    print(f"Best fitness: {format_value(result.best_fitness)}")
    print(f"Elapsed: {elapsed:.2f} seconds")
    _print_descriptor_table(result.descriptors.to_dict(), target.to_dict(),
                            result.descriptor_errors.to_dict() if result.descriptor_errors else {})
    print(f"Impulse response: {ir_path}")
    print(f"Fitness history: {history_path}")
    print(f"Generation log: {log_path}")
    print(f"Summary: {summary_path}")


def run_stereo_mode(run_config: Dict) -> None:
    """
    Generate a left/right IR pair at the host sample rate.

    Args:
        run_config: Run configuration dict from YAML

    Returns:
        None (writes to disk)
    """
    print("=" * 70)
    print("STEREO MODE")
    print("=" * 70)

    target = build_target(run_config)
    weights = build_weights(run_config)
    ga_config = build_ga_config(run_config)
    stereo_config = run_config['stereo']
    ir_sample_rate = int(run_config['ir']['sample_rate'])
    host_sample_rate = int(stereo_config['host_sample_rate'])

    seed = _resolve_seed(run_config)
    print(f"Random seed: {seed}")
    print(f"Synthesis rate: {ir_sample_rate} Hz, host rate: {host_sample_rate} Hz")

    output_root = create_run_folder(
        run_config['output']['root'], run_config['output'].get('overwrite', False)
    )
    overwrite = run_config['output'].get('overwrite', False)
    print(f"Output directory: {output_root}\n")

    rendered = generate_stereo_irs(
        target,
        ga_config,
        host_sample_rate,
        left_delay_ms=stereo_config.get('left_delay_ms', 0.0),
        right_delay_ms=stereo_config.get('right_delay_ms', 0.0),
        stereo=stereo_config.get('enabled', True),
        normalize_stereo=stereo_config.get('normalize_stereo', False),
        ir_sample_rate=ir_sample_rate,
        length_factor=run_config['ir'].get('length_factor', 1.5),
        weights=weights,
        rng_seed=seed,
        verbose=run_config.get('verbose', True)
    )

    pair = np.stack((rendered['left'], rendered['right']))
    ir_path = save_impulse_response(pair, output_root / 'ir_stereo.npy', overwrite)

    for channel, result in rendered['results'].items():
        save_fitness_history(result.fitness_history, output_root / f'fitness_history_{channel}.csv', overwrite)
        save_run_summary(result, output_root / f'summary_{channel}.yaml',
                         extra={'channel': channel, 'target': target.to_dict()}, overwrite=overwrite)

    print()
    print("=" * 70)
    print("SUMMARY")
    print("=" * 70)
    for channel, result in rendered['results'].items():
        print(f"{channel}: best fitness {format_value(result.best_fitness)} "
              f"({result.termination.value}, generation {result.generations})")
    print(f"Buffer length: {rendered['buffer_length']} samples")
    print(f"Stereo impulse response: {ir_path}")


def run_analyze_mode(run_config: Dict) -> None:
    """
    Measure the descriptors of an existing impulse response.

    Args:
        run_config: Run configuration dict from YAML

    Returns:
        None (prints a report)
    """
    print("=" * 70)
    print("ANALYZE MODE")
    print("=" * 70)

    ir_path = Path(run_config['input']['impulse_response'])
    sample_rate = float(run_config['ir']['sample_rate'])
    print(f"Loading impulse response from: {ir_path}")

    ir = load_impulse_response(ir_path)
    descriptors = analyze(ir, sample_rate)

    target = None
    if isinstance(run_config.get('target'), dict):
        target = run_config['target']

    print(f"Samples: {len(ir)} at {sample_rate:g} Hz ({len(ir) / sample_rate:.3f} s)")
    _print_descriptor_table(descriptors.to_dict(), target or {}, {})
    print(f"  {'predelay':<9} {format_value(descriptors.predelay)}")


def _print_descriptor_table(measured: Dict, target: Dict, errors: Dict) -> None:
    print()
    print(f"  {'':<9} {'measured':>12} {'target':>12} {'error':>12}")
    for name in DESCRIPTOR_NAMES:
        print(f"  {name:<9} {format_value(measured.get(name)):>12} "
              f"{format_value(target.get(name)):>12} {format_value(errors.get(name)):>12}")
    print()


def _save_plot(result, sample_rate: float, plot_path: Path) -> None:
    print(f"\nGenerating visualization plot...")
    try:
        from .visualization import plot_synthesis_result
        plot_synthesis_result(result, sample_rate, save_path=plot_path)
        print(f"  Plot: {plot_path}")
    except Exception as e:
        print(f"  Plot failed: {e}")
