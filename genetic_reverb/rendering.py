"""
Host-side helpers for turning synthesized IRs into playable filters.

Covers what a plugin host does around `synthesize`: quality presets, IR
length and buffer tier sizing, per-channel generation with independent
predelay, stereo level balancing, peak normalization and resampling from
the synthesis rate to the host rate.
"""

from dataclasses import replace
from fractions import Fraction
from typing import Dict, Optional, Tuple
import math

import numpy as np
from scipy.signal import resample_poly

from .data_models import FitnessWeights, GAConfig, InvalidConfigurationError, TargetDescriptors
from .evolution import synthesize


IR_SAMPLE_RATE = 16000
BASE_BUFFER_LENGTH = 22500
MAX_ILD_DB = 3.0
PEAK_LEVEL = 0.99


QUALITY_PROFILES: Dict[str, GAConfig] = {
    'low': GAConfig(population_size=10, selection_size=4, num_generations=5,
                    plateau_length=2, fitness_threshold=1e-2, mutation_rate=0.001),
    'medium': GAConfig(population_size=20, selection_size=8, num_generations=10,
                       plateau_length=3, fitness_threshold=1e-3, mutation_rate=0.001),
    'high': GAConfig(population_size=30, selection_size=12, num_generations=25,
                     plateau_length=5, fitness_threshold=1e-3, mutation_rate=0.005),
    'max': GAConfig(population_size=50, selection_size=20, num_generations=50,
                    plateau_length=10, fitness_threshold=1e-4, mutation_rate=0.01),
}


def get_quality_profile(name: str) -> GAConfig:
    """
    Look up a GA preset by name (case-insensitive).

    Raises:
        InvalidConfigurationError: If the profile does not exist
    """
    key = name.lower()
    if key not in QUALITY_PROFILES:
        raise InvalidConfigurationError(
            f"Unknown quality profile: '{name}'. Must be one of {sorted(QUALITY_PROFILES)}"
        )
    return replace(QUALITY_PROFILES[key])


def ir_length_for(t60: float, sample_rate: float, factor: float = 1.5) -> int:
    """Number of samples needed to hold `factor` x T60 seconds."""
    return int(math.ceil(factor * t60 * sample_rate))


def buffer_length_tier(num_samples: int, base: int = BASE_BUFFER_LENGTH) -> int:
    """
    Smallest base * 2**k (k >= 0) holding `num_samples`.

    Convolution filters are kept per tier so a new IR only swaps the
    filter that matches its length.
    """
    if num_samples <= base:
        return base
    return base * 2 ** math.ceil(math.log2(num_samples / base))


def normalize_signal(signal: np.ndarray, peak: float = PEAK_LEVEL) -> np.ndarray:
    """Scale so the largest absolute sample equals `peak`; silence is returned as is."""
    signal = np.asarray(signal, dtype=float)
    current = np.max(np.abs(signal)) if signal.size else 0.0
    if current == 0 or not np.isfinite(current):
        return signal.copy()
    return signal * (peak / current)


def rms(signal: np.ndarray) -> float:
    return float(np.sqrt(np.mean(np.square(signal)))) if len(signal) else 0.0


def normalize_rms(left: np.ndarray, right: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Scale both channels to the mean of their RMS levels."""
    rms_left, rms_right = rms(left), rms(right)
    if rms_left == 0 or rms_right == 0:
        return left.copy(), right.copy()
    level = (rms_left + rms_right) / 2.0
    return left * (level / rms_left), right * (level / rms_right)


def limit_ild(
    left: np.ndarray,
    right: np.ndarray,
    max_ild_db: float = MAX_ILD_DB
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Limit the interaural level difference between two channels.

    The louder channel is attenuated until the RMS difference is at most
    `max_ild_db` dB. Channels already within the limit are unchanged.
    """
    rms_left, rms_right = rms(left), rms(right)
    if rms_left == 0 or rms_right == 0:
        return left.copy(), right.copy()

    ild = 20.0 * math.log10(rms_left / rms_right)
    if abs(ild) <= max_ild_db:
        return left.copy(), right.copy()

    excess = 10.0 ** (-(abs(ild) - max_ild_db) / 20.0)
    if ild > 0:
        return left * excess, right.copy()
    return left.copy(), right * excess


def apply_predelay(ir: np.ndarray, delay_samples: int) -> np.ndarray:
    """Shift an IR right by `delay_samples`, keeping its length."""
    if delay_samples < 0:
        raise ValueError(f"Predelay must be non-negative, got {delay_samples}")
    out = np.zeros_like(ir)
    if delay_samples < len(ir):
        out[delay_samples:] = ir[:len(ir) - delay_samples]
    return out


def resample_ir(
    ir: np.ndarray,
    from_rate: int,
    to_rate: int,
    length: Optional[int] = None
) -> np.ndarray:
    """
    Polyphase resampling of an IR, zero-padded or truncated to `length`.

    Args:
        ir: Impulse response at `from_rate`
        from_rate: Source sample rate (Hz)
        to_rate: Destination sample rate (Hz)
        length: Output length (defaults to the resampled length)

    Returns:
        Resampled impulse response
    """
    ratio = Fraction(int(to_rate), int(from_rate))
    if ratio == 1:
        out = np.asarray(ir, dtype=float).copy()
    else:
        out = resample_poly(ir, ratio.numerator, ratio.denominator)

    if length is None:
        return out
    if len(out) >= length:
        return out[:length]
    return np.concatenate((out, np.zeros(length - len(out))))


def generate_stereo_irs(
    target: TargetDescriptors,
    ga_config: GAConfig,
    host_sample_rate: int,
    left_delay_ms: float = 0.0,
    right_delay_ms: float = 0.0,
    stereo: bool = True,
    normalize_stereo: bool = False,
    ir_sample_rate: int = IR_SAMPLE_RATE,
    length_factor: float = 1.5,
    weights: Optional[FitnessWeights] = None,
    rng_seed: Optional[int] = None,
    verbose: bool = False
) -> Dict[str, object]:
    """
    Generate left/right IRs at the host sample rate.

    One IR is synthesized per channel (or one shared IR in mono). Stereo
    pairs are level-balanced (equal RMS, or ILD-limited), normalized to a
    0.99 peak, resampled to the host rate, padded to the buffer tier and
    delayed by the per-channel predelay.

    Args:
        target: Target descriptors
        ga_config: GA parameters (typically a quality profile)
        host_sample_rate: Output sample rate (Hz)
        left_delay_ms: Left channel predelay (ms)
        right_delay_ms: Right channel predelay (ms)
        stereo: Synthesize independent channels
        normalize_stereo: Equalize RMS instead of limiting the ILD
        ir_sample_rate: Synthesis sample rate (Hz)
        length_factor: IR length as a multiple of the target T60
        weights: Fitness weights
        rng_seed: Seed for reproducible runs
        verbose: Print per-generation progress

    Returns:
        Dictionary with 'left', 'right', 'buffer_length' and per-channel 'results'
    """
    num_samples = ir_length_for(target.t60, ir_sample_rate, length_factor)
    host_length = int(math.ceil(num_samples * host_sample_rate / ir_sample_rate))
    buffer_length = buffer_length_tier(host_length)

    rng = np.random.default_rng(rng_seed)
    channels = ['left', 'right'] if stereo else ['left']

    results = {}
    for channel in channels:
        seed = int(rng.integers(0, 2**31))
        results[channel] = synthesize(
            target, ga_config, ir_sample_rate, num_samples,
            rng_seed=seed, weights=weights, verbose=verbose
        )

    left = results['left'].impulse_response
    if stereo:
        right = results['right'].impulse_response
        if normalize_stereo:
            left, right = normalize_rms(left, right)
        else:
            left, right = limit_ild(left, right)
        # Common gain keeps the balance
        pair = normalize_signal(np.stack((left, right)))
        left, right = pair[0], pair[1]
    else:
        left = normalize_signal(left)
        right = left
        results['right'] = results['left']

    left = resample_ir(left, ir_sample_rate, host_sample_rate, buffer_length)
    right = resample_ir(right, ir_sample_rate, host_sample_rate, buffer_length)

    left = apply_predelay(left, int(round(left_delay_ms * host_sample_rate / 1000)))
    right = apply_predelay(right, int(round(right_delay_ms * host_sample_rate / 1000)))

    return {
        'left': left,
        'right': right,
        'buffer_length': buffer_length,
        'results': results,
    }
