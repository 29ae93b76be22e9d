"""
Visualization for synthesis runs.

Plots the best impulse response, its Schroeder decay curve and the fitness
history of a run.
"""

from pathlib import Path
from typing import Optional, Tuple, Union

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np

from .acoustics import T30_END_DB, T30_START_DB, schroeder_curve
from .data_models import SynthesisResult


def plot_impulse_response(ir: np.ndarray, sample_rate: float, ax) -> None:
    """Waveform against time."""
    t = np.arange(len(ir)) / sample_rate
    ax.plot(t, ir, linewidth=0.5, color='steelblue')
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Amplitude')
    ax.set_title('Impulse Response')
    ax.grid(True, alpha=0.3)


def plot_decay_curve(ir: np.ndarray, sample_rate: float, ax) -> None:
    """Schroeder curve of the raw IR with the T30 evaluation range marked."""
    _, edc_db = schroeder_curve(np.asarray(ir, dtype=float))
    t = np.arange(len(ir)) / sample_rate

    ax.plot(t, edc_db, color='darkred')
    for level in (T30_START_DB, T30_END_DB):
        ax.axhline(level, linestyle='--', color='gray', alpha=0.6)
    ax.set_ylim(bottom=-90, top=5)
    ax.set_xlabel('Time (s)')
    ax.set_ylabel('Energy (dB)')
    ax.set_title('Energy Decay Curve')
    ax.grid(True, alpha=0.3)


def plot_fitness_history(history: list[float], ax) -> None:
    """Best-ever fitness per generation (log scale when possible)."""
    values = np.asarray(history, dtype=float)
    generations = np.arange(len(values))
    finite = np.isfinite(values)

    ax.plot(generations[finite], values[finite], marker='o', markersize=3)
    if np.any(finite) and np.all(values[finite] > 0):
        ax.set_yscale('log')
    ax.set_xlabel('Generation')
    ax.set_ylabel('Fitness Value')
    ax.set_title('Best Fitness')
    ax.grid(True, alpha=0.3)


def plot_synthesis_result(
    result: SynthesisResult,
    sample_rate: float,
    save_path: Optional[Union[str, Path]] = None,
    figsize: Tuple[int, int] = (12, 9)
):
    """
    Create a three-panel figure for a synthesis run.

    Args:
        result: Synthesis result
        sample_rate: IR sample rate (Hz)
        save_path: Optional PNG path
        figsize: Figure size (width, height)

    Returns:
        The matplotlib figure
    """
    fig, (ax_ir, ax_edc, ax_fit) = plt.subplots(3, 1, figsize=figsize)

    plot_impulse_response(result.impulse_response, sample_rate, ax_ir)
    plot_decay_curve(result.impulse_response, sample_rate, ax_edc)
    plot_fitness_history(result.fitness_history, ax_fit)

    fig.suptitle(f"Best fitness {result.best_fitness:.4g} ({result.termination.value})")
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        plt.close(fig)

    return fig
