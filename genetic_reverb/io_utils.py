"""
I/O utilities for genetic reverb synthesis.

Handles impulse response persistence, fitness history and generation log
CSVs, YAML run summaries and run folder management.
"""

import csv
from pathlib import Path
from typing import Optional, Union
from datetime import datetime

import numpy as np
import yaml

from .data_models import GenerationRecord, SynthesisResult


def save_impulse_response(
    ir: np.ndarray,
    output_path: Union[str, Path],
    overwrite: bool = False
) -> Path:
    """
    Save an impulse response as a NumPy .npy file.

    Args:
        ir: Impulse response (1-D, or channels x samples)
        output_path: Path for output file
        overwrite: If True, overwrite existing file

    Returns:
        Path to saved file

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Output file already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    np.save(output_path, np.asarray(ir, dtype=float))

    return output_path


def load_impulse_response(ir_path: Union[str, Path]) -> np.ndarray:
    """
    Load an impulse response saved with `save_impulse_response`.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the array is not one-dimensional
    """
    ir_path = Path(ir_path)

    if not ir_path.exists():
        raise FileNotFoundError(f"Impulse response not found: {ir_path}")

    ir = np.load(ir_path)
    if ir.ndim != 1:
        raise ValueError(f"Expected a 1-D impulse response in {ir_path}, got shape {ir.shape}")

    return ir.astype(float)


def save_fitness_history(
    history: list[float],
    output_path: Union[str, Path],
    overwrite: bool = False
) -> Path:
    """
    Save best-ever fitness per generation to CSV.

    CSV format:
        generation,best_fitness
        0,1.2345
        1,0.9876
        ...

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Fitness history already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(['generation', 'best_fitness'])
        for generation, fitness in enumerate(history):
            writer.writerow([generation, fitness])

    return output_path


def load_fitness_history(history_path: Union[str, Path]) -> list[float]:
    """Read a fitness history CSV back into a list."""
    history_path = Path(history_path)

    if not history_path.exists():
        raise FileNotFoundError(f"Fitness history not found: {history_path}")

    with open(history_path, 'r') as f:
        reader = csv.DictReader(f)
        if 'best_fitness' not in (reader.fieldnames or []):
            raise ValueError(f"Invalid fitness history format in {history_path}")
        return [float(row['best_fitness']) for row in reader]


def save_generation_log(
    records: list[GenerationRecord],
    output_path: Union[str, Path],
    overwrite: bool = False
) -> Path:
    """
    Save per-generation records to CSV.

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Generation log already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='') as f:
        fieldnames = ['generation', 'generation_best', 'best_fitness', 'median_fitness',
                      'finite_count', 'plateau_counter', 'crossover_fallbacks', 'elapsed']
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        for record in records:
            writer.writerow(record.to_dict())

    return output_path


def save_run_summary(
    result: SynthesisResult,
    output_path: Union[str, Path],
    extra: Optional[dict] = None,
    overwrite: bool = False
) -> Path:
    """
    Save a YAML sidecar describing a synthesis run.

    Args:
        result: Synthesis result
        output_path: Path for output YAML
        extra: Additional entries (target, GA config, ...)
        overwrite: If True, overwrite existing file

    Returns:
        Path to saved summary

    Raises:
        FileExistsError: If file exists and overwrite=False
    """
    output_path = Path(output_path)

    if output_path.exists() and not overwrite:
        raise FileExistsError(f"Summary file already exists: {output_path}")

    output_path.parent.mkdir(parents=True, exist_ok=True)

    summary = result.summary()
    summary['saved_at'] = datetime.now().isoformat()
    if extra:
        summary.update(extra)

    with open(output_path, 'w') as f:
        yaml.safe_dump(summary, f, default_flow_style=False, sort_keys=False)

    return output_path


def create_run_folder(
    root: Union[str, Path],
    overwrite: bool = False
) -> Path:
    """
    Create the output folder for a run.

    Raises:
        FileExistsError: If folder exists and overwrite=False
    """
    root = Path(root)

    if root.exists() and not overwrite:
        raise FileExistsError(
            f"Output directory already exists: {root}\n"
            f"Set 'output.overwrite: true' in config to overwrite"
        )

    root.mkdir(parents=True, exist_ok=True)

    return root
